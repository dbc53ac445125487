"""Small samples of the source files, for quick manual runs of the process."""

from __future__ import annotations

import glob
import logging
import os
import shutil
import zipfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from itertools import islice
from typing import BinaryIO

from tqdm import tqdm

from minhareceita.download import FEDERAL_REVENUE_UPDATED_AT
from minhareceita.transform.archive import NATIONAL_TREASURE_FILE_NAME
from minhareceita.transform.cast import parse_date

logger = logging.getLogger(__name__)

MAX_LINES = 10000
TARGET_DIR = "sample"


def sample_lines(reader: BinaryIO, writer: BinaryIO, max_lines: int) -> None:
    """Copy the first ``max_lines`` lines of ``reader`` to ``writer``."""
    for line in islice(reader, max(0, max_lines)):
        line = line.rstrip(b"\n")
        if line.endswith(b"\r"):
            line = line[:-1]
        writer.write(line + b"\n")


def _sample_from_csv(src: str, out_dir: str, max_lines: int) -> None:
    out = os.path.join(out_dir, os.path.basename(src))
    with open(src, "rb") as reader, open(out, "wb") as writer:
        sample_lines(reader, writer, max_lines)


def _sample_from_zip(src: str, out_dir: str, max_lines: int) -> None:
    name = os.path.basename(src)
    base = os.path.splitext(name)[0]
    out = os.path.join(out_dir, name)
    with zipfile.ZipFile(src) as archive:
        member = next((i for i in archive.infolist() if not i.is_dir()), None)
        if member is None:
            return
        with archive.open(member) as reader, zipfile.ZipFile(
            out, "w", compression=zipfile.ZIP_DEFLATED
        ) as target, target.open(base, "w") as writer:
            sample_lines(reader, writer, max_lines)


def _sample_updated_at(src: str, out_dir: str, updated_at: str) -> None:
    out = os.path.join(out_dir, os.path.basename(src))
    if not os.path.exists(src):
        if not updated_at:
            logger.info("%s not found", src)
            return
        try:
            parse_date(updated_at)
        except ValueError:
            logger.info(
                "%s will not be created, date %s is not YYYY-MM-DD",
                FEDERAL_REVENUE_UPDATED_AT,
                updated_at,
            )
            return
        with open(out, "w", encoding="utf-8") as handle:
            handle.write(updated_at)
        return
    shutil.copyfile(src, out)


def make_sample(src, out_dir, max_lines: int, updated_at: str = "") -> None:
    """Create the sample of a single source file in ``out_dir``."""
    src = os.fspath(src)
    out_dir = os.fspath(out_dir)
    if os.path.basename(src) == FEDERAL_REVENUE_UPDATED_AT:
        _sample_updated_at(src, out_dir, updated_at)
        return
    ext = os.path.splitext(src)[1].lower()
    if ext == ".zip":
        _sample_from_zip(src, out_dir, max_lines)
    elif ext == ".csv":
        _sample_from_csv(src, out_dir, max_lines)
    else:
        raise ValueError(f"no make sample handler for {ext}")


def sample(src, target, max_lines: int = MAX_LINES, updated_at: str = "") -> None:
    """Copy the first ``max_lines`` lines of each source file into ``target``."""
    src = os.fspath(src)
    target = os.fspath(target)
    if src == target:
        raise ValueError("data directory and target directory cannot be the same")
    os.makedirs(target, exist_ok=True)
    paths = sorted(glob.glob(os.path.join(glob.escape(src), "*.zip")))
    if not paths:
        raise ValueError(f"source directory {src} has no zip files")
    paths.extend(
        os.path.join(src, name)
        for name in (NATIONAL_TREASURE_FILE_NAME, FEDERAL_REVENUE_UPDATED_AT)
    )
    with tqdm(total=len(paths), desc="Creating sample files") as bar, ThreadPoolExecutor() as pool:
        futures = [
            pool.submit(make_sample, path, target, max_lines, updated_at)
            for path in paths
        ]
        for future in as_completed(futures):
            bar.update()
            future.result()