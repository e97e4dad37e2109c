"""
DatasetRegistry — per-session, year-keyed cache of Datasets.

Remote loads are de-duplicated: concurrent load_year() calls for the same
year share one fetch. Entries are never evicted; a re-upload overwrites
the slot with a new Dataset.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from rental_analytics.config import ARCHIVABLE_YEARS, YEAR_MODE_MIN_RECORDS
from rental_analytics.data.errors import DatasetLoadError, DatasetNotLoadedError
from rental_analytics.data.normalize import compute_content_hash, dataset_from_payload, modal_year
from rental_analytics.data.remote import RemoteDatasetStore
from rental_analytics.data.schemas import Dataset, UploadAck, UploadOffer, YearModeCheck


# ---------------------------------------------------------------------------
# Year-mode sanity check
# ---------------------------------------------------------------------------

def verify_year_mode(dataset: Dataset, requested_year: int) -> YearModeCheck:
    """Check that most records fall in the requested year.

    With fewer than YEAR_MODE_MIN_RECORDS dated records there isn't enough
    signal and the check passes.
    """
    dates = [r.date for r in dataset.records if r.date is not None]
    if len(dates) < YEAR_MODE_MIN_RECORDS:
        return YearModeCheck(requested_year, None, len(dates), ok=True)
    mode = modal_year(dates)
    return YearModeCheck(requested_year, mode, len(dates), ok=(mode == requested_year))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class DatasetRegistry:
    """Cache of one Dataset per year plus the in-flight fetch for each year."""

    def __init__(
        self,
        remote: RemoteDatasetStore | None = None,
        archivable_years: frozenset[int] | set[int] = ARCHIVABLE_YEARS,
    ) -> None:
        self._remote = remote
        self._archivable_years = frozenset(archivable_years)
        self._datasets: dict[int, Dataset] = {}
        self._hashes: dict[int, str] = {}
        self._local_years: set[int] = set()
        self._inflight: dict[int, asyncio.Task] = {}
        self.warnings: dict[int, YearModeCheck] = {}

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def __contains__(self, year: int) -> bool:
        return year in self._datasets

    def get(self, year: int) -> Optional[Dataset]:
        return self._datasets.get(year)

    def require(self, year: int) -> Dataset:
        dataset = self._datasets.get(year)
        if dataset is None:
            raise DatasetNotLoadedError(f"No dataset loaded for {year}")
        return dataset

    def years(self) -> list[int]:
        """Cached years, most recent first."""
        return sorted(self._datasets, reverse=True)

    def loading_years(self) -> list[int]:
        return sorted(self._inflight)

    def content_hash(self, year: int) -> Optional[str]:
        return self._hashes.get(year)

    # ------------------------------------------------------------------
    # Remote loads
    # ------------------------------------------------------------------

    async def stored_years(self) -> dict[int, dict]:
        """Metadata for years the remote store holds (empty without a store)."""
        if self._remote is None:
            return {}
        return await self._remote.available_years()

    async def load_year(self, year: int) -> Dataset:
        """Return the Dataset for `year`, fetching it at most once.

        Cached → returned immediately. Already in flight → the same pending
        fetch is awaited. A failed fetch leaves no entry and can be retried.
        """
        cached = self._datasets.get(year)
        if cached is not None:
            return cached

        task = self._inflight.get(year)
        if task is None:
            task = asyncio.ensure_future(self._fetch(year))
            self._inflight[year] = task
        # shield: one caller giving up must not cancel the shared fetch
        return await asyncio.shield(task)

    async def _fetch(self, year: int) -> Dataset:
        if self._remote is None:
            self._inflight.pop(year, None)
            raise DatasetLoadError(year, f"No remote store configured; cannot load {year}")

        print(f"  Loading {year} from remote store...")
        try:
            payload = await self._remote.fetch(year)
            if year in self._local_years:
                # an upload landed while fetching; it is newer than the stored copy
                print(f"  {year}: keeping the local upload received during the fetch")
                return self._datasets[year]
            dataset = dataset_from_payload(payload, year)

            check = verify_year_mode(dataset, year)
            if not check.ok:
                print(f"  Warning: year mismatch — requested {year}, found mostly {check.mode_year}")
                self.warnings[year] = check
            else:
                self.warnings.pop(year, None)

            self._datasets[year] = dataset
            self._hashes[year] = compute_content_hash(dataset.records)
            self._local_years.discard(year)
            print(f"  {year}: {dataset.total_records:,} records, {len(dataset.stations)} stations")
            return dataset
        except Exception as exc:
            print(f"  Warning: failed to load {year}: {exc}")
            raise DatasetLoadError(year) from exc
        finally:
            self._inflight.pop(year, None)

    # ------------------------------------------------------------------
    # Local uploads & archival
    # ------------------------------------------------------------------

    def add_local(self, dataset: Dataset, content_hash: str) -> Optional[UploadOffer]:
        """Insert a freshly parsed Dataset under its own year.

        Returns an UploadOffer when that year may be archived; forwarding it
        is the caller's decision (see archive()).
        """
        year = dataset.year
        self._datasets[year] = dataset
        self._hashes[year] = content_hash
        self._local_years.add(year)
        # a local dataset's year is its own modal year, so it can't mismatch
        self.warnings.pop(year, None)

        if year in self._archivable_years:
            return UploadOffer(year=year, content_hash=content_hash, total_records=dataset.total_records)
        return None

    async def archive(self, year: int) -> UploadAck:
        """Forward a locally ingested year to the remote store (explicit opt-in)."""
        dataset = self._datasets.get(year)
        content_hash = self._hashes.get(year)
        if dataset is None or content_hash is None or year not in self._local_years:
            raise DatasetNotLoadedError(f"No locally uploaded dataset for {year} to archive")
        if year not in self._archivable_years:
            raise ValueError(f"Year {year} is not eligible for permanent storage")
        if self._remote is None:
            raise DatasetLoadError(year, "No remote store configured")

        return await self._remote.upload(year, dataset.to_payload(), content_hash)
