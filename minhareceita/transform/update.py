"""Merging base CNPJ, partner and tax data into the company records."""

from __future__ import annotations

import logging
import os
from collections import defaultdict
from typing import Callable, Protocol, Sequence

from tqdm import tqdm

from minhareceita.transform.archive import SourceType
from minhareceita.transform.lookups import Lookups
from minhareceita.transform.records import add_base, add_partners, add_tax
from minhareceita.transform.source import Source, shard

logger = logging.getLogger(__name__)

UPDATED_AT_FILE_NAME = "updated_at.txt"
UPDATED_AT_KEY = "updated-at"

_HANDLERS: dict[SourceType, Callable[[Lookups, list[str]], tuple[str, str]]] = {
    SourceType.BASE: add_base,
    SourceType.PARTNERS: add_partners,
    SourceType.TAXES: add_tax,
}


class Database(Protocol):
    """What the transform steps need from the database."""

    def create_companies(self, batch: Sequence[Sequence]) -> None: ...

    def create_index(self) -> None: ...

    def update_companies(self, data: Sequence[Sequence[str]]) -> None: ...

    def add_partners(self, data: Sequence[Sequence[str]]) -> None: ...

    def meta_save(self, key: str, value: str) -> None: ...

    def pre_load(self) -> None: ...

    def post_load(self) -> None: ...


def optimize_batch(batch: Sequence[Sequence[str]]) -> list[tuple[str, str]]:
    """Merge the updates of the same base CNPJ into a single update.

    JSON objects are merged and JSON arrays are concatenated by joining the
    texts, so every update of a batch must be of the same shape.
    """
    merged: dict[str, str] = {}
    for base, text in batch:
        existing = merged.get(base)
        merged[base] = text if existing is None else f"{existing[:-1]}, {text[1:]}"
    return list(merged.items())


def save_updated_at(db: Database, directory) -> None:
    """Store the extraction date found in the data directory as metadata."""
    logger.info("Saving the updated at date to the database…")
    path = os.path.join(os.fspath(directory), UPDATED_AT_FILE_NAME)
    with open(path, encoding="utf-8") as handle:
        value = handle.read()
    db.meta_save(UPDATED_AT_KEY, value)


class UpdateTask:
    """Adds base CNPJ, partners and taxes information to existing companies."""

    def __init__(self, directory, db: Database, batch_size: int, lookups: Lookups) -> None:
        self.db = db
        self.batch_size = batch_size
        self.lookups = lookups
        self.sources: list[Source] = []
        try:
            for kind in (SourceType.BASE, SourceType.PARTNERS, SourceType.TAXES):
                self.sources.append(Source(kind, directory))
        except Exception:
            self.close()
            raise
        self.total_lines = sum(source.total_lines for source in self.sources)

    def __enter__(self) -> UpdateTask:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _send(self, partners: bool, batch: list[tuple[str, str]]) -> int:
        if not batch:
            return 0
        send = self.db.add_partners if partners else self.db.update_companies
        try:
            send(optimize_batch(batch))
        except Exception:
            # retry line by line for a more precise error
            for line in batch:
                try:
                    send([line])
                except Exception as err:
                    logger.error("could not update company details: %s\n\t%s", err, line)
                    raise
        return len(batch)

    def _updates(self):
        """Yield each update with the key of the batch it belongs to."""
        for source in self.sources:
            handler = _HANDLERS[source.kind]
            partners = source.kind is SourceType.PARTNERS
            for reader in source.readers:
                for row in reader:
                    try:
                        update = handler(self.lookups, row)
                    except (ValueError, IndexError) as err:
                        raise ValueError(f"error processing {row}: {err}") from err
                    yield (shard(row[0]), partners), update

    def run(self) -> None:
        """Read every source file and send the updates in batches."""
        try:
            if self.total_lines == 0:
                return
            batches: dict[tuple[int, bool], list[tuple[str, str]]] = defaultdict(list)
            with tqdm(
                total=self.total_lines,
                desc="Adding base CNPJ, partners and taxes info",
            ) as bar:
                for key, update in self._updates():
                    batch = batches[key]
                    batch.append(update)
                    if len(batch) >= self.batch_size:
                        bar.update(self._send(key[1], batches.pop(key)))
                for (_, partners), batch in batches.items():
                    bar.update(self._send(partners, batch))
        finally:
            self.close()

    def close(self) -> None:
        for source in self.sources:
            source.close()