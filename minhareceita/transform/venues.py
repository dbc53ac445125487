"""Creation of one JSON record per CNPJ from the venues files."""

from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Iterator

from tqdm import tqdm

from minhareceita.transform.archive import SourceType
from minhareceita.transform.company import Company, new_company
from minhareceita.transform.lookups import load_lookups
from minhareceita.transform.source import Source
from minhareceita.transform.update import Database, UpdateTask, save_updated_at

MAX_PARALLEL_DB_QUERIES = 8
BATCH_SIZE = 8192


def save_batch(db: Database, batch: list[Company]) -> int:
    """Save a batch of companies and return how many were saved."""
    if not batch:
        return 0
    rows = []
    for company in batch:
        try:
            number = int(company.cnpj)
        except ValueError as err:
            raise ValueError(f"could not convert cnpj {company.cnpj} to int") from err
        rows.append((number, company.to_json()))
    db.create_companies(rows)
    return len(rows)


class VenuesTask:
    """Reads the venues files and creates the initial company records."""

    def __init__(self, directory, db: Database, batch_size: int, privacy: bool) -> None:
        self.directory = directory
        self.db = db
        self.batch_size = batch_size
        self.privacy = privacy
        self.source = Source(SourceType.VENUES, directory)
        try:
            self.lookups = load_lookups(directory)
        except Exception:
            self.source.close()
            raise

    def _batches(self) -> Iterator[list[Company]]:
        batch: list[Company] = []
        for reader in self.source.readers:
            for row in reader:
                try:
                    batch.append(new_company(row, self.lookups, self.privacy))
                except (ValueError, IndexError) as err:
                    raise ValueError(f"error parsing company from {row!r}: {err}") from err
                if len(batch) >= self.batch_size:
                    yield batch
                    batch = []
        if batch:
            yield batch

    def run(self, max_parallel: int) -> None:
        """Save all companies using up to ``max_parallel`` concurrent saves."""
        workers = max(1, max_parallel)
        try:
            with tqdm(
                total=self.source.total_lines,
                desc="Creating the JSON data for each CNPJ",
            ) as bar, ThreadPoolExecutor(max_workers=workers) as pool:
                pending: set[Future[int]] = set()
                for batch in self._batches():
                    if len(pending) >= workers:
                        done, pending = wait(pending, return_when=FIRST_COMPLETED)
                        for future in done:
                            bar.update(future.result())
                    pending.add(pool.submit(save_batch, self.db, batch))
                for future in pending:
                    bar.update(future.result())
        finally:
            self.source.close()
        self.db.create_index()


def transform(
    directory,
    db: Database,
    max_parallel_db_queries: int = MAX_PARALLEL_DB_QUERIES,
    batch_size: int = BATCH_SIZE,
    privacy: bool = True,
) -> None:
    """Create one database record per CNPJ from the downloaded files."""
    db.pre_load()
    save_updated_at(db, directory)
    venues = VenuesTask(directory, db, batch_size, privacy)
    venues.run(max_parallel_db_queries)
    with UpdateTask(directory, db, batch_size, venues.lookups) as update:
        update.run()
    db.post_load()