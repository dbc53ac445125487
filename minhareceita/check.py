"""Integrity checks for the downloaded files: ZIP archives and MD5 checksums."""

from __future__ import annotations

import glob
import hashlib
import logging
import os
import zipfile
import zlib
from concurrent.futures import ThreadPoolExecutor
from contextlib import suppress
from functools import partial

from tqdm import tqdm

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024
_READ_ERRORS = (
    OSError,
    EOFError,
    RuntimeError,
    NotImplementedError,
    zipfile.BadZipFile,
    zlib.error,
)


class CheckError(Exception):
    """Raised when downloaded files fail an integrity check."""


def _glob(directory, pattern: str) -> list[str]:
    return sorted(glob.glob(os.path.join(glob.escape(os.fspath(directory)), pattern)))


def check_zip_file(path) -> None:
    """Read every member of a ZIP archive, raising CheckError if any is broken."""
    path = os.fspath(path)
    try:
        archive = zipfile.ZipFile(path)
    except (OSError, zipfile.BadZipFile) as err:
        raise CheckError(f"error opening {path}: {err}") from err
    with archive:
        for member in archive.infolist():
            if member.is_dir():
                continue
            try:
                with archive.open(member) as handle:
                    for _ in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                        pass
            except _READ_ERRORS as err:
                raise CheckError(
                    f"error reading {member.filename} in {path}: {err}"
                ) from err


def _attempt(path: str) -> CheckError | None:
    try:
        check_zip_file(path)
    except CheckError as err:
        logger.error("%s\tFAILED with\t%s", path, err)
        return err
    return None


def check_zip_files(directory) -> dict[str, CheckError]:
    """Check all ZIP files in ``directory``; return the failures by path."""
    paths = _glob(directory, "*.zip")
    if not paths:
        raise CheckError("no zip files found")
    logger.info("Checking %d files…", len(paths))
    with ThreadPoolExecutor() as pool:
        results = list(pool.map(_attempt, paths))
    return {path: err for path, err in zip(paths, results) if err is not None}


def check(directory, delete: bool = False) -> None:
    """Check the ZIP files in ``directory``, deleting the broken ones if asked to."""
    try:
        fails = check_zip_files(directory)
    except CheckError as err:
        raise CheckError(f"error checking zip files in {directory}: {err}") from err
    if not fails:
        return
    if not delete:
        raise CheckError("error checking the zip files above")
    for path in fails:
        logger.info("Deleting %s", path)
        with suppress(OSError):
            os.remove(path)


def checksum_for(path) -> str:
    """Hex MD5 digest of a file's content."""
    digest = hashlib.md5()
    try:
        with open(path, "rb") as handle:
            for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as err:
        raise CheckError(f"error reading {path}: {err}") from err
    return digest.hexdigest()


def _same_checksum(src: str, target) -> bool:
    other = os.path.join(os.fspath(target), os.path.basename(src))
    try:
        source_sum = checksum_for(src)
    except CheckError as err:
        raise CheckError(f"error getting {src} checksum: {err}") from err
    try:
        target_sum = checksum_for(other)
    except CheckError as err:
        raise CheckError(f"error getting {other} checksum: {err}") from err
    return source_sum == target_sum


def check_checksum(src, target) -> None:
    """Compare the checksum files in ``src`` with the ones in ``target``."""
    paths = _glob(src, "*.md5")
    if not paths:
        raise CheckError(
            f"target directory {target} has no checksum files to compare with"
        )
    not_equal: list[str] = []
    with tqdm(total=len(paths), desc="Checking files checksum") as bar, ThreadPoolExecutor() as pool:
        for path, equal in zip(paths, pool.map(partial(_same_checksum, target=target), paths)):
            bar.update()
            if not equal:
                not_equal.append(path)
    if not_equal:
        raise CheckError(f"got different checksum for file(s): {not_equal}")
    logger.info("OK!")


def _write_checksum(path: str) -> None:
    try:
        digest = checksum_for(path)
    except CheckError as err:
        raise CheckError(f"error getting checksum for {path}: {err}") from err
    out = f"{path}.md5"
    try:
        with open(out, "w", encoding="ascii") as handle:
            handle.write(digest)
    except OSError as err:
        raise CheckError(f"error writing {out} checksum file: {err}") from err


def create_checksum(src) -> None:
    """Create a ``.md5`` file next to each visible file in ``src``."""
    src = os.fspath(src)
    try:
        names = sorted(os.listdir(src))
    except OSError as err:
        raise CheckError(f"error reading {src} directory: {err}") from err
    files = [
        os.path.join(src, name)
        for name in names
        if not name.startswith(".") and not os.path.isdir(os.path.join(src, name))
    ]
    with tqdm(total=len(files), desc="Creating checksum files") as bar, ThreadPoolExecutor() as pool:
        for _ in pool.map(_write_checksum, files):
            bar.update()