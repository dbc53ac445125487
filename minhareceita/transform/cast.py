"""Conversions from the Federal Revenue CSV fields to Python values.

Empty fields become ``None`` so that a missing value (JSON ``null``) can be
told apart from an actual zero, false or empty value.
"""

from __future__ import annotations

import re
from datetime import date

_INTEGER = re.compile(r"[+-]?[0-9]+")
_FLOAT = re.compile(
    r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|[+-]?(?:inf|infinity|nan)",
    re.IGNORECASE,
)
_DATE_INPUT = re.compile(r"([0-9]{4})([0-9]{2})([0-9]{2})")
_DATE_OUTPUT = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def to_int(value: str) -> int | None:
    """Parse an integer field; an empty field is ``None``."""
    if value == "":
        return None
    if not _INTEGER.fullmatch(value):
        raise ValueError(f"error converting {value} to int")
    return int(value)


def to_float(value: str) -> float | None:
    """Parse a decimal field that may use a comma as separator."""
    if value == "":
        return None
    normalized = value.replace(",", ".")
    if not _FLOAT.fullmatch(normalized):
        raise ValueError(f"error converting {value} to float")
    return float(normalized)


def to_bool(value: str) -> bool | None:
    """Map ``S`` to True and ``N`` to False (any case); anything else is ``None``."""
    return {"S": True, "N": False}.get(value.upper())


def _only_zeros(value: str) -> bool:
    try:
        return to_int(value) == 0
    except ValueError:
        return False


def to_date(value: str) -> date | None:
    """Parse a ``YYYYMMDD`` date; empty or all-zero fields are ``None``."""
    if value == "" or _only_zeros(value):
        return None
    match = _DATE_INPUT.fullmatch(value)
    if match is None:
        raise ValueError(f"error converting {value} to date")
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as err:
        raise ValueError(f"error converting {value} to date: {err}") from err


def format_date(value: date) -> str:
    """Format a date as ``YYYY-MM-DD``, as served in the JSON output."""
    return value.isoformat()


def parse_date(value: str) -> date | None:
    """Parse a ``YYYY-MM-DD`` date (optionally quoted); empty is ``None``."""
    text = value.strip('"')
    if text == "":
        return None
    if not _DATE_OUTPUT.fullmatch(text):
        raise ValueError(f"error parsing {value} as YYYY-MM-DD")
    return date.fromisoformat(text)