from datetime import date

import pytest

from minhareceita.transform.cast import (
    format_date,
    parse_date,
    to_bool,
    to_date,
    to_float,
    to_int,
)


@pytest.mark.parametrize("value,expected", [("42", 42), ("", None)])
def test_to_int_success(value, expected):
    assert to_int(value) == expected


@pytest.mark.parametrize("value", ["4.2", "foobar"])
def test_to_int_failure(value):
    with pytest.raises(ValueError):
        to_int(value)


@pytest.mark.parametrize(
    "value,expected", [("42", 42.0), ("0.42", 0.42), ("0,42", 0.42), ("", None)]
)
def test_to_float_success(value, expected):
    assert to_float(value) == expected


def test_to_float_failure():
    with pytest.raises(ValueError):
        to_float("foobar")


@pytest.mark.parametrize(
    "value,expected",
    [
        ("S", True),
        ("s", True),
        ("N", False),
        ("n", False),
        ("", None),
        (" ", None),
        ("42", None),
    ],
)
def test_to_bool(value, expected):
    assert to_bool(value) is expected


@pytest.mark.parametrize(
    "value,expected",
    [("19940717", date(1994, 7, 17)), ("", None), ("00000000", None)],
)
def test_to_date_success(value, expected):
    assert to_date(value) == expected


def test_to_date_failure():
    with pytest.raises(ValueError):
        to_date("foobar")


def test_to_date_invalid_month():
    with pytest.raises(ValueError):
        to_date("19941317")


def test_parse_and_format_date():
    parsed = parse_date('"1967-06-30"')
    assert (parsed.year, parsed.month, parsed.day) == (1967, 6, 30)
    assert format_date(parsed) == "1967-06-30"


def test_parse_date_empty():
    assert parse_date('""') is None


def test_parse_date_invalid():
    with pytest.raises(ValueError):
        parse_date("30/06/1967")


def test_date_round_trip_from_input_format():
    assert parse_date(format_date(to_date("19670630"))) == to_date("19670630")