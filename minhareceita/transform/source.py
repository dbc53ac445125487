"""Groups of archived CSV files of the same kind, and CNPJ sharding."""

from __future__ import annotations

import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor

from minhareceita.transform.archive import (
    SEPARATOR,
    ArchivedCSV,
    SourceType,
    paths_for_source,
)

NUM_OF_SHARDS = 256

logger = logging.getLogger(__name__)


class Source:
    """All the archived CSV files of one source type in a directory."""

    def __init__(self, kind: SourceType, directory) -> None:
        logger.info("Loading %s files…", kind.value)
        self.kind = kind
        self.directory = directory
        self.files = paths_for_source(kind, directory)
        self.readers: list[ArchivedCSV] = []
        self.create_readers()
        try:
            self.total_lines = self._count_lines()
        except Exception:
            self.close()
            raise

    def _count_lines(self) -> int:
        if not self.readers:
            return 0
        with ThreadPoolExecutor(max_workers=len(self.readers)) as pool:
            return sum(pool.map(ArchivedCSV.count_lines, self.readers))

    def create_readers(self) -> None:
        readers: list[ArchivedCSV] = []
        try:
            for path in self.files:
                readers.append(ArchivedCSV(path, SEPARATOR))
        except Exception:
            for reader in readers:
                reader.close()
            raise
        self.readers = readers

    def reset_readers(self) -> None:
        """Close the readers and open them again from the start of each file."""
        self.close()
        self.create_readers()

    def close(self) -> None:
        for reader in self.readers:
            reader.close()


def shard(number: str) -> int:
    """Map a CNPJ (or its 8-digit base) to a shard between 0 and 255."""
    base = number.translate(str.maketrans("", "", "./-"))[:8]
    return int(hashlib.md5(base.encode()).hexdigest()[:2], 16)