import zipfile

import pytest

from minhareceita.check import (
    CheckError,
    check,
    check_checksum,
    check_zip_file,
    check_zip_files,
    checksum_for,
    create_checksum,
)

BAD_ZIP_FILE = "BAD_FILE.zip"
MD5_EMPTY = "d41d8cd98f00b204e9800998ecf8427e"
MD5_ABC = "900150983cd24fb0d6963f7d28e17f72"


def make_zip(path, name="data.csv", content=b"a;b\nc;d\n", compression=zipfile.ZIP_DEFLATED):
    with zipfile.ZipFile(path, "w", compression=compression) as archive:
        archive.writestr(name, content)
    return path


def make_good_zips(directory):
    make_zip(directory / "Simples.zip")
    make_zip(directory / "Motivos.zip", content=b"00;SEM MOTIVO\n")


def make_bad_zip(directory):
    path = directory / BAD_ZIP_FILE
    path.write_bytes(b"")
    return path


def test_check_zip_files_failure(tmp_path):
    make_good_zips(tmp_path)
    bad = make_bad_zip(tmp_path)
    got = check_zip_files(tmp_path)
    assert set(got) == {str(bad)}


def test_check_zip_files_success(tmp_path):
    make_good_zips(tmp_path)
    assert check_zip_files(tmp_path) == {}


def test_check_zip_files_empty_directory(tmp_path):
    with pytest.raises(CheckError, match="no zip files found"):
        check_zip_files(tmp_path)


def test_check_zip_file_valid(tmp_path):
    path = make_zip(tmp_path / "Simples.zip")
    assert check_zip_file(path) is None


def test_check_zip_file_not_a_zip(tmp_path):
    path = make_bad_zip(tmp_path)
    with pytest.raises(CheckError) as info:
        check_zip_file(path)
    assert str(info.value).startswith(f"error opening {path}:")


def test_check_zip_file_corrupted_member(tmp_path):
    path = make_zip(
        tmp_path / "Broken.zip",
        content=b"hello world unique content",
        compression=zipfile.ZIP_STORED,
    )
    raw = path.read_bytes()
    path.write_bytes(raw.replace(b"hello world unique", b"jello world unique"))
    with pytest.raises(CheckError) as info:
        check_zip_file(path)
    assert str(info.value).startswith("error reading data.csv in")


def test_check_raises_without_delete(tmp_path):
    make_good_zips(tmp_path)
    bad = make_bad_zip(tmp_path)
    with pytest.raises(CheckError, match="error checking the zip files above"):
        check(tmp_path, False)
    assert bad.exists()


def test_check_deletes_bad_files(tmp_path):
    make_good_zips(tmp_path)
    bad = make_bad_zip(tmp_path)
    check(tmp_path, True)
    assert not bad.exists()
    assert (tmp_path / "Simples.zip").exists()


def test_check_without_zip_files(tmp_path):
    with pytest.raises(CheckError, match="error checking zip files in"):
        check(tmp_path, False)


def test_checksum_for_known_values(tmp_path):
    empty = tmp_path / "empty"
    empty.write_bytes(b"")
    abc = tmp_path / "abc"
    abc.write_bytes(b"abc")
    assert checksum_for(empty) == MD5_EMPTY
    assert checksum_for(abc) == MD5_ABC


def test_checksum_for_missing_file(tmp_path):
    with pytest.raises(CheckError):
        checksum_for(tmp_path / "no-dir" / "Estabelecimentos0.zip")


def test_create_checksum(tmp_path):
    (tmp_path / "abc.txt").write_bytes(b"abc")
    (tmp_path / "empty.txt").write_bytes(b"")
    (tmp_path / ".hidden").write_bytes(b"ignored")
    (tmp_path / "sub").mkdir()
    create_checksum(tmp_path)
    assert sorted(p.name for p in tmp_path.glob("*.md5")) == ["abc.txt.md5", "empty.txt.md5"]
    assert (tmp_path / "abc.txt.md5").read_text() == MD5_ABC
    assert (tmp_path / "empty.txt.md5").read_text() == MD5_EMPTY


def test_create_checksum_missing_directory(tmp_path):
    with pytest.raises(CheckError):
        create_checksum(tmp_path / "no-dir")


def _dir_with_checksums(path, files):
    path.mkdir()
    for name, content in files.items():
        (path / name).write_bytes(content)
    create_checksum(path)
    return path


FILES = {"Empresas0.zip": b"first", "Socios0.zip": b"second"}


def test_check_checksum_match(tmp_path):
    src = _dir_with_checksums(tmp_path / "src", FILES)
    target = _dir_with_checksums(tmp_path / "target", FILES)
    assert check_checksum(src, target) is None
    assert len(list(src.glob("*.md5"))) == 2


def test_check_checksum_no_checksum_files(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    with pytest.raises(CheckError, match="has no checksum files"):
        check_checksum(src, tmp_path)


def test_check_checksum_missing_target_file(tmp_path):
    src = _dir_with_checksums(tmp_path / "src", FILES)
    target = _dir_with_checksums(tmp_path / "target", {"Socios0.zip": b"second"})
    with pytest.raises(CheckError, match="Empresas0.zip.md5"):
        check_checksum(src, target)


def test_check_checksum_mismatch(tmp_path):
    src = _dir_with_checksums(tmp_path / "src", FILES)
    target = _dir_with_checksums(tmp_path / "target", FILES)
    (target / "Empresas0.zip.md5").write_text("different data")
    with pytest.raises(CheckError, match="got different checksum") as info:
        check_checksum(src, target)
    assert "Empresas0.zip.md5" in str(info.value)
    assert "Socios0.zip.md5" not in str(info.value)