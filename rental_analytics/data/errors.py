"""
Exception hierarchy for ingestion, registry, and store failures.
"""
from __future__ import annotations


class RentalAnalyticsError(Exception):
    """Base exception for all rental analytics failures."""


class IngestError(RentalAnalyticsError, ValueError):
    """A file could not be turned into a Dataset. No partial data is produced."""


class MissingColumnError(IngestError):
    """A required column (station, date, days, charge) could not be resolved."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required column(s): {', '.join(self.missing)}")


class NoValidRecordsError(IngestError):
    """Every row was rejected (blank station, bad date, or non-positive days)."""


class UnsupportedFileError(IngestError):
    """The upload is not a spreadsheet type we can read."""


class DatasetLoadError(RentalAnalyticsError):
    """Fetching a year from the remote store failed. Safe to retry."""

    def __init__(self, year: int, message: str | None = None) -> None:
        self.year = year
        super().__init__(message or f"Failed to download data for {year}")


class DatasetNotFoundError(RentalAnalyticsError, LookupError):
    """The remote store holds no data for the requested year."""


class DatasetNotLoadedError(RentalAnalyticsError, LookupError):
    """The registry has no cached dataset for the requested year."""
