"""Lookup tables that turn codes in the source files into descriptions."""

from __future__ import annotations

from dataclasses import dataclass

from minhareceita.transform.archive import (
    SEPARATOR,
    ArchivedCSV,
    SourceType,
    cities_lookup,
    paths_for_source,
)

_SOURCES = (
    SourceType.MOTIVES,
    SourceType.CITIES,
    SourceType.COUNTRIES,
    SourceType.CNAES,
    SourceType.QUALIFICATIONS,
    SourceType.NATURES,
)


@dataclass
class Lookups:
    """All code-to-description tables used while building company records."""

    motives: dict[int, str]
    cities: dict[int, str]
    countries: dict[int, str]
    cnaes: dict[int, str]
    qualifications: dict[int, str]
    natures: dict[int, str]
    ibge: dict[int, str]


def load_lookup(path) -> dict[int, str]:
    """Read a zipped two-column CSV as a code-to-description table."""
    with ArchivedCSV(path, SEPARATOR) as archive:
        return archive.to_lookup()


def load_lookups(directory) -> Lookups:
    """Load every lookup table from the files in ``directory``."""
    tables = [
        load_lookup(path)
        for kind in _SOURCES
        for path in paths_for_source(kind, directory)
    ]
    if len(tables) != len(_SOURCES):
        raise ValueError(
            f"error creating look up tables, expected {len(_SOURCES)} items, got {len(tables)}"
        )
    return Lookups(*tables, ibge=cities_lookup(directory))