import io
import zipfile

import pytest

from minhareceita.sample import make_sample, sample, sample_lines


def _zip(path, member, lines):
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(member, "".join(f"{line}\n" for line in lines))


@pytest.fixture
def data_dir(tmp_path):
    directory = tmp_path / "data"
    directory.mkdir()
    _zip(directory / "Empresas0.zip", "EMPRECSV", ["a;1", "b;2", "c;3"])
    _zip(directory / "Motivos.zip", "MOTICSV", ["00;SEM MOTIVO", "01;OUTRO", "02;MAIS"])
    (directory / "TABMUN.CSV").write_text("1;A;B;C;11\n2;D;E;F;22\n3;G;H;I;33\n")
    (directory / "updated_at.txt").write_text("2022-11-24")
    return directory


def _files(directory):
    return sorted(p.name for p in directory.iterdir() if p.is_file())


def test_copies_existing_updated_at(data_dir, tmp_path):
    out = tmp_path / "out"
    sample(data_dir, out, 2, "")
    assert _files(out) == ["Empresas0.zip", "Motivos.zip", "TABMUN.CSV", "updated_at.txt"]
    assert (out / "updated_at.txt").read_text() == "2022-11-24"


def test_ignores_missing_updated_at(data_dir, tmp_path):
    (data_dir / "updated_at.txt").unlink()
    out = tmp_path / "out"
    sample(data_dir, out, 2, "")
    assert len(_files(out)) == 3


def test_invalid_updated_at_date_is_skipped(data_dir, tmp_path):
    (data_dir / "updated_at.txt").unlink()
    out = tmp_path / "out"
    sample(data_dir, out, 2, "17-10-2022")
    assert "updated_at.txt" not in _files(out)
    assert len(_files(out)) == 3


def test_updated_at_from_user_input(data_dir, tmp_path):
    (data_dir / "updated_at.txt").unlink()
    out = tmp_path / "out"
    sample(data_dir, out, 2, "2023-01-15")
    assert len(_files(out)) == 4
    assert (out / "updated_at.txt").read_text() == "2023-01-15"


def test_zip_sample_has_limited_lines(data_dir, tmp_path):
    out = tmp_path / "out"
    sample(data_dir, out, 2, "")
    with zipfile.ZipFile(out / "Empresas0.zip") as archive:
        assert archive.namelist() == ["Empresas0"]
        assert archive.read("Empresas0") == b"a;1\nb;2\n"


def test_csv_sample_has_limited_lines(data_dir, tmp_path):
    out = tmp_path / "out"
    out.mkdir()
    make_sample(data_dir / "TABMUN.CSV", out, 1)
    assert (out / "TABMUN.CSV").read_text() == "1;A;B;C;11\n"


def test_same_directory_raises(data_dir):
    with pytest.raises(ValueError, match="cannot be the same"):
        sample(data_dir, data_dir, 2, "")


def test_no_zip_files_raises(tmp_path):
    src = tmp_path / "empty"
    src.mkdir()
    with pytest.raises(ValueError, match="no zip files"):
        sample(src, tmp_path / "out", 2, "")


def test_missing_national_treasure_file_raises(data_dir, tmp_path):
    (data_dir / "TABMUN.CSV").unlink()
    with pytest.raises(FileNotFoundError):
        sample(data_dir, tmp_path / "out", 2, "")


def test_unknown_extension_raises(tmp_path):
    src = tmp_path / "notes.txt"
    src.write_text("hello\n")
    with pytest.raises(ValueError, match=".txt"):
        make_sample(src, tmp_path, 2)


@pytest.mark.parametrize(
    "data, limit, expected",
    [
        (b"one\ntwo\nthree\n", 2, b"one\ntwo\n"),
        (b"one\r\ntwo\r\n", 5, b"one\ntwo\n"),
        (b"last line without break", 3, b"last line without break\n"),
        (b"one\ntwo\n", 0, b""),
    ],
)
def test_sample_lines(data, limit, expected):
    writer = io.BytesIO()
    sample_lines(io.BytesIO(data), writer, limit)
    assert writer.getvalue() == expected