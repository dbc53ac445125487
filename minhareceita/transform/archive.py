"""Reading of the zipped, semicolon-separated CSV files from the Federal Revenue."""

from __future__ import annotations

import csv
import io
import os
import re
import zipfile
from enum import Enum
from typing import Iterable, Iterator

from minhareceita.transform.cast import to_int

SEPARATOR = ";"
NATIONAL_TREASURE_FILE_NAME = "TABMUN.CSV"

_MULTIPLE_SPACES = re.compile(r"[\t\n\f\r ]{2,}")
_CHUNK_SIZE = 32 * 1024


class SourceType(str, Enum):
    """Groups of source files, named after the text in their file names."""

    VENUES = "Estabelecimentos"
    MOTIVES = "Motivos"
    BASE = "Empresas"
    CITIES = "Municipios"
    CNAES = "Cnaes"
    COUNTRIES = "Paises"
    NATURES = "Naturezas"
    PARTNERS = "Socios"
    QUALIFICATIONS = "Qualificacoes"
    TAXES = "Simples"


def _records(lines: Iterable[str], separator: str, origin: str) -> Iterator[list[str]]:
    """Yield CSV records, requiring every record to have as many fields as the first."""
    reader = csv.reader(lines, delimiter=separator, strict=True)
    expected = None
    try:
        for row in reader:
            if not row:
                continue
            if expected is None:
                expected = len(row)
            elif len(row) != expected:
                raise ValueError(
                    f"record on line {reader.line_num} of {origin}: wrong number of fields"
                )
            yield row
    except csv.Error as err:
        raise ValueError(f"error reading archived csv line from {origin}: {err}") from err


class ArchivedCSV:
    """The first CSV file inside a ZIP archive, decoded from ISO-8859-1."""

    def __init__(self, path, separator: str = SEPARATOR) -> None:
        self.path = os.fspath(path)
        self.separator = separator
        self._zip = zipfile.ZipFile(self.path)
        member = next((i for i in self._zip.infolist() if not i.is_dir()), None)
        if member is None:
            self._zip.close()
            stem = os.path.splitext(os.path.basename(self.path))[0]
            raise ValueError(f"could not find file {stem} in the archive {self.path}")
        self.member = member
        self._file = io.TextIOWrapper(
            self._zip.open(member), encoding="latin-1", newline=""
        )
        lines = (line.replace("\x00", "") for line in self._file)
        self._rows = _records(lines, separator, self.path)

    def __iter__(self) -> Iterator[list[str]]:
        while (row := self.read()) is not None:
            yield row

    def read(self) -> list[str] | None:
        """Return the next cleaned-up record, or ``None`` at the end of the file."""
        row = next(self._rows, None)
        if row is None:
            return None
        return [_MULTIPLE_SPACES.sub(" ", field) for field in row]

    def count_lines(self) -> int:
        """Count the line breaks in the archived file without consuming the reader."""
        with self._zip.open(self.member) as raw:
            return sum(
                chunk.count(b"\n") for chunk in iter(lambda: raw.read(_CHUNK_SIZE), b"")
            )

    def close(self) -> None:
        self._file.close()
        self._zip.close()

    def __enter__(self) -> ArchivedCSV:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def to_lookup(self) -> dict[int, str]:
        """Read the remaining records as a mapping of integer code to description."""
        lookup: dict[int, str] = {}
        for row in self:
            try:
                key = to_int(row[0])
            except ValueError:
                key = None
            if key is None:
                raise ValueError(f"error converting key {row[0]} to int in {self.path}")
            if len(row) < 2:
                raise ValueError(f"missing description for key {row[0]} in {self.path}")
            lookup[key] = row[1]
        return lookup


def paths_for_source(kind, directory) -> list[str]:
    """List the files in ``directory`` whose names contain the source type name."""
    name = (kind.value if isinstance(kind, SourceType) else str(kind)).lower()
    directory = os.fspath(directory)
    paths = []
    for entry in sorted(os.scandir(directory), key=lambda e: e.name):
        if entry.is_dir() or os.path.splitext(entry.name)[1] == ".md5":
            continue
        if name in entry.name.lower():
            paths.append(os.path.join(directory, entry.name))
    return paths


def cities_lookup(directory) -> dict[int, str]:
    """Map the Federal Revenue city codes to IBGE city codes."""
    path = os.path.join(os.fspath(directory), NATIONAL_TREASURE_FILE_NAME)
    lookup: dict[int, str] = {}
    with open(path, encoding="latin-1", newline="") as handle:
        for row in _records(handle, SEPARATOR, path):
            try:
                code = to_int(row[0])
            except ValueError:
                code = None
            if code is None:
                raise ValueError(f"error converting {row[0]} to int in {path}")
            if len(row) < 5:
                raise ValueError(f"missing IBGE code for city {row[0]} in {path}")
            lookup[code] = row[4]
    return lookup