import os
import zipfile

import pytest

from minhareceita.transform.archive import (
    SEPARATOR,
    ArchivedCSV,
    SourceType,
    cities_lookup,
    paths_for_source,
)

MOTIVES = (
    '"00";"SEM MOTIVO"\n'
    '"01";"EXTINCAO POR ENCERRAMENTO LIQUIDACAO VOLUNTARIA"\n'
).encode("latin-1")


def _zip(path, name, data):
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(name, data)
    return str(path)


@pytest.fixture
def motives(tmp_path):
    return _zip(tmp_path / "Motivos.zip", "F.K03200$Z.D21112.MOTICSV", MOTIVES)


def test_read(motives):
    with ArchivedCSV(motives, SEPARATOR) as archive:
        got = list(archive)
    assert got == [
        ["00", "SEM MOTIVO"],
        ["01", "EXTINCAO POR ENCERRAMENTO LIQUIDACAO VOLUNTARIA"],
    ]


def test_read_returns_none_at_the_end(motives):
    with ArchivedCSV(motives, SEPARATOR) as archive:
        assert archive.read() == ["00", "SEM MOTIVO"]
        assert archive.read()[0] == "01"
        assert archive.read() is None


def test_close(motives):
    archive = ArchivedCSV(motives, SEPARATOR)
    archive.close()
    with pytest.raises(ValueError):
        archive.read()


def test_to_lookup(motives):
    with ArchivedCSV(motives, SEPARATOR) as archive:
        assert archive.to_lookup() == {
            0: "SEM MOTIVO",
            1: "EXTINCAO POR ENCERRAMENTO LIQUIDACAO VOLUNTARIA",
        }


def test_to_lookup_invalid_key(tmp_path):
    path = _zip(tmp_path / "Motivos.zip", "m.csv", b'"xx";"SEM MOTIVO"\n')
    with ArchivedCSV(path, SEPARATOR) as archive:
        with pytest.raises(ValueError):
            archive.to_lookup()


def test_cleans_fields(tmp_path):
    data = b'"01";"A  B\x00C";"N\xc3O"\n'
    path = _zip(tmp_path / "Motivos.zip", "m.csv", data)
    with ArchivedCSV(path, SEPARATOR) as archive:
        assert archive.read() == ["01", "A BC", "NÃO"]


def test_count_lines_does_not_consume(motives):
    with ArchivedCSV(motives, SEPARATOR) as archive:
        assert archive.count_lines() == 2
        assert len(list(archive)) == 2


def test_archive_without_files(tmp_path):
    path = tmp_path / "Motivos.zip"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("folder/", b"")
    with pytest.raises(ValueError):
        ArchivedCSV(path, SEPARATOR)


def test_wrong_number_of_fields(tmp_path):
    path = _zip(tmp_path / "Motivos.zip", "m.csv", b'"00";"A"\n"01";"B";"C"\n')
    with ArchivedCSV(path, SEPARATOR) as archive:
        assert archive.read() == ["00", "A"]
        with pytest.raises(ValueError):
            archive.read()


def test_paths_for_source(tmp_path):
    for name in ("Estabelecimentos0.zip", "Motivos.zip", "Empresas1.zip", "Empresas0.zip"):
        _zip(tmp_path / name, "x.csv", b"")
    (tmp_path / "Empresas0.zip.md5").write_text("abc")
    os.mkdir(tmp_path / "Empresas_dir")
    directory = str(tmp_path)
    assert paths_for_source(SourceType.VENUES, directory) == [
        os.path.join(directory, "Estabelecimentos0.zip")
    ]
    assert paths_for_source(SourceType.MOTIVES, directory) == [
        os.path.join(directory, "Motivos.zip")
    ]
    assert paths_for_source(SourceType.BASE, directory) == [
        os.path.join(directory, "Empresas0.zip"),
        os.path.join(directory, "Empresas1.zip"),
    ]


def test_cities_lookup(tmp_path):
    (tmp_path / "TABMUN.CSV").write_bytes(
        b"9701;BRASILIA;DF;DISTRITO FEDERAL;5300108\n0001;GUAJARA-MIRIM;RO;RONDONIA;1100106\n"
    )
    lookup = cities_lookup(tmp_path)
    assert lookup[9701] == "5300108"
    assert lookup[1] == "1100106"


def test_cities_lookup_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        cities_lookup(tmp_path)