"""Discovery and download of the Federal Revenue and National Treasure files."""

from __future__ import annotations

import json
import logging
import os
import posixpath
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from functools import partial
from typing import Any, Callable, TypeVar
from urllib.parse import urlsplit

import requests
from tqdm import tqdm

from minhareceita.transform.update import UPDATED_AT_FILE_NAME

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1_048_576
DEFAULT_MAX_RETRIES = 32
DEFAULT_MAX_PARALLEL = 16
DEFAULT_TIMEOUT = timedelta(minutes=3)

FEDERAL_REVENUE_UPDATED_AT = UPDATED_AT_FILE_NAME
FEDERAL_REVENUE_URL = (
    "https://dados.gov.br/api/publico/conjuntos-dados/"
    "cadastro-nacional-da-pessoa-juridica-cnpj"
)
FEDERAL_REVENUE_FORMAT = "zip+csv"
FEDERAL_REVENUE_DATE_FORMAT = "%d/%m/%Y %H:%M:%S"

CKAN_PKG_PATH = "/ckan/api/3/action/package_show?id="
NATIONAL_TREASURE_BASE_URL = "https://www.tesourotransparente.gov.br"
NATIONAL_TREASURE_PKG_ID = "abb968cb-3710-4f85-89cf-875c91b9c7f6"

_STREAM_CHUNK = 64 * 1024

Handler = Callable[[str, str], list[str]]
T = TypeVar("T")


class DownloadError(Exception):
    """Raised when listing or downloading the source files fails."""


def _file_name(url: str) -> str:
    return posixpath.basename(urlsplit(url).path)


def _get_json(url: str) -> Any:
    try:
        response = requests.get(url)
    except requests.RequestException as err:
        raise DownloadError(f"error getting {url}: {err}") from err
    with response:
        if response.status_code != 200:
            raise DownloadError(
                f"{url} responded with {response.status_code} {response.reason}"
            )
        try:
            return response.json()
        except ValueError as err:
            raise DownloadError(f"could not unmarshal {url} json response: {err}") from err


def _parse_modified(value: Any) -> datetime | None:
    if value is None or value == "null":
        return None
    try:
        return datetime.strptime(str(value), FEDERAL_REVENUE_DATE_FORMAT)
    except ValueError as err:
        raise DownloadError(
            f"could not parse date/time {value} as {FEDERAL_REVENUE_DATE_FORMAT}: {err}"
        ) from err


def save_updated_at(directory, when: date) -> None:
    """Write the extraction date as ``YYYY-MM-DD`` into the data directory."""
    path = os.path.join(os.fspath(directory), FEDERAL_REVENUE_UPDATED_AT)
    try:
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(f"{when.year:04d}-{when.month:02d}-{when.day:02d}")
    except OSError as err:
        raise DownloadError(f"could not create {path}: {err}") from err


def federal_revenue_get_urls(url: str, directory, updated_at: bool = True) -> list[str]:
    """List the ZIP files in the Federal Revenue data set, saving its date if asked."""
    data = _get_json(url)
    if not isinstance(data, dict):
        raise DownloadError(f"could not unmarshal {url} json response: not an object")
    found: list[str] = []
    latest = datetime.min
    for resource in data.get("resources") or []:
        if resource.get("format") == FEDERAL_REVENUE_FORMAT:
            found.append(resource.get("url", ""))
        modified = _parse_modified(resource.get("metadata_modified"))
        if modified is not None and modified > latest:
            latest = modified
    if updated_at:
        try:
            save_updated_at(directory, latest)
        except DownloadError as err:
            raise DownloadError(f"could not save the update at date: {err}") from err
    return found


def national_treasure_get_urls(base_url: str, directory) -> list[str]:
    """List the files of the National Treasure cities package from its CKAN API."""
    url = f"{base_url}{CKAN_PKG_PATH}{NATIONAL_TREASURE_PKG_ID}"
    data = _get_json(url)
    if not isinstance(data, dict) or not data.get("success"):
        raise DownloadError(f"error in ckan api response:\n{json.dumps(data)}")
    resources = (data.get("result") or {}).get("resources") or []
    return [resource.get("url", "") for resource in resources]


def get_urls(url: str, handler: Handler, directory, skip: bool) -> list[str]:
    """URLs listed by ``handler``, leaving out files already in ``directory`` if skipping."""
    try:
        found = handler(url, directory)
    except DownloadError as err:
        raise DownloadError(f"error getting urls: {err}") from err
    if not skip:
        return found
    directory = os.fspath(directory)
    return [u for u in found if not os.path.exists(os.path.join(directory, _file_name(u)))]


def _write_stream(response: requests.Response, path: str) -> None:
    with open(path, "wb") as handle:
        for chunk in response.iter_content(_STREAM_CHUNK):
            handle.write(chunk)


def simple_download(url: str, directory) -> None:
    """Download a whole file with a single request."""
    path = os.path.join(os.fspath(directory), _file_name(url))
    try:
        with requests.get(url, stream=True) as response:
            response.raise_for_status()
            _write_stream(response, path)
    except requests.RequestException as err:
        raise DownloadError(f"error requesting {url}: {err}") from err
    except OSError as err:
        raise DownloadError(f"error writing to {path}: {err}") from err


@dataclass(frozen=True)
class _Chunk:
    url: str
    path: str
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start + 1


def _retrying(action: Callable[[], T], retries: int) -> T:
    attempts = 0
    while True:
        try:
            return action()
        except (requests.RequestException, DownloadError, OSError) as err:
            attempts += 1
            if 0 <= retries < attempts:
                raise DownloadError(f"giving up after {attempts} attempt(s): {err}") from err
            logger.debug("retrying after error: %s", err)


def _probe(url: str, path: str, timeout: float) -> int | None:
    """Total size of the file at ``url``, or None when it was downloaded right away."""
    with requests.get(url, headers={"Range": "bytes=0-0"}, stream=True, timeout=timeout) as response:
        if response.status_code == 416:
            open(path, "wb").close()
            return None
        response.raise_for_status()
        if response.status_code == 206:
            total = response.headers.get("Content-Range", "").rpartition("/")[2]
            if total.isdigit():
                return int(total)
        else:
            _write_stream(response, path)
            return None
    with requests.get(url, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        _write_stream(response, path)
    return None


def _fetch_chunk(chunk: _Chunk, timeout: float) -> int:
    headers = {"Range": f"bytes={chunk.start}-{chunk.end}"}
    response = requests.get(chunk.url, headers=headers, timeout=timeout)
    response.raise_for_status()
    data = response.content
    if response.status_code != 206:
        data = data[chunk.start : chunk.end + 1]
    if len(data) != chunk.size:
        raise DownloadError(
            f"expected {chunk.size} bytes from {chunk.url} at {chunk.start}, got {len(data)}"
        )
    with open(chunk.path, "r+b") as handle:
        handle.seek(chunk.start)
        handle.write(data)
    return len(data)


def _seconds(timeout) -> float:
    if isinstance(timeout, timedelta):
        return timeout.total_seconds()
    return float(timeout)


def download_files(
    directory,
    urls: list[str],
    parallel: int = DEFAULT_MAX_PARALLEL,
    retries: int = DEFAULT_MAX_RETRIES,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    timeout=DEFAULT_TIMEOUT,
    restart: bool = False,
) -> None:
    """Download files using many HTTP requests, each for a small byte range."""
    directory = os.fspath(directory)
    seconds = _seconds(timeout)
    size_of_chunk = max(1, chunk_size)
    chunks: list[_Chunk] = []
    with tqdm(total=0, unit="B", unit_scale=True, desc="Downloading") as bar:
        for url in urls:
            path = os.path.join(directory, _file_name(url))
            size = _retrying(partial(_probe, url, path, seconds), retries)
            if size is None:
                continue
            bar.total += size
            bar.refresh()
            if not restart and os.path.exists(path) and os.path.getsize(path) == size:
                bar.update(size)
                continue
            with open(path, "wb") as handle:
                handle.truncate(size)
            chunks.extend(
                _Chunk(url, path, start, min(start + size_of_chunk, size) - 1)
                for start in range(0, size, size_of_chunk)
            )
        if not chunks:
            return
        with ThreadPoolExecutor(max_workers=max(1, parallel)) as pool:
            futures = [
                pool.submit(_retrying, partial(_fetch_chunk, chunk, seconds), retries)
                for chunk in chunks
            ]
            for future in as_completed(futures):
                bar.update(future.result())


def _download_national_treasure(directory, skip: bool) -> None:
    # this server claims to accept ranges but answers with the whole file
    try:
        found = get_urls(NATIONAL_TREASURE_BASE_URL, national_treasure_get_urls, directory, skip)
    except DownloadError as err:
        raise DownloadError(
            f"error gathering resources for national treasure download: {err}"
        ) from err
    for url in found:
        simple_download(url, directory)


def download(
    directory,
    timeout=DEFAULT_TIMEOUT,
    skip: bool = False,
    restart: bool = False,
    parallel: int = DEFAULT_MAX_PARALLEL,
    retries: int = DEFAULT_MAX_RETRIES,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """Download all the source files into ``directory``."""
    logger.info("Downloading file(s) from the National Treasure…")
    try:
        _download_national_treasure(directory, skip)
    except DownloadError as err:
        raise DownloadError(f"error downloading files from the national treasure: {err}") from err
    logger.info("Downloading files from the Federal Revenue…")
    try:
        found = get_urls(FEDERAL_REVENUE_URL, federal_revenue_get_urls, directory, skip)
    except DownloadError as err:
        raise DownloadError(f"error gathering resources for download: {err}") from err
    if not found:
        return
    try:
        download_files(directory, found, parallel, retries, chunk_size, timeout, restart)
    except DownloadError as err:
        raise DownloadError(f"error downloading files from the federal revenue: {err}") from err


def urls(directory, skip: bool = False) -> list[str]:
    """Print and return, sorted, the URLs of the files to be downloaded."""
    sources: list[tuple[str, Handler]] = [
        (FEDERAL_REVENUE_URL, partial(federal_revenue_get_urls, updated_at=False)),
        (NATIONAL_TREASURE_BASE_URL, national_treasure_get_urls),
    ]
    found: list[str] = []
    for url, handler in sources:
        try:
            found.extend(get_urls(url, handler, directory, skip))
        except DownloadError as err:
            raise DownloadError(f"error gathering resources for download: {err}") from err
    found.sort()
    print("\n".join(found))
    return found