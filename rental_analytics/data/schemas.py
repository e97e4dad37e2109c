"""
Record, dataset, and comparison schemas.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from rental_analytics.config import ALL


# ---------------------------------------------------------------------------
# Records & datasets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RentalRecord:
    """One accepted rental row."""
    id: int                  # row index in the source sheet
    station: str
    station_key: str
    group: str
    group_key: str
    date: dt.date
    month_key: str           # YYYY-MM
    display_date: str        # "Jan 2024"
    day: int                 # 1-31
    days: float
    charge: float
    year: int

    def to_payload(self) -> dict:
        """Wire form used for storage and the content hash."""
        return {
            "id": self.id,
            "station": self.station,
            "stationKey": self.station_key,
            "group": self.group,
            "groupKey": self.group_key,
            "date": self.date.isoformat(),
            "monthKey": self.month_key,
            "displayDate": self.display_date,
            "day": self.day,
            "days": float(self.days),
            "charge": float(self.charge),
            "year": self.year,
        }


@dataclass(frozen=True)
class Dataset:
    """Immutable snapshot of one year's (or one upload's) records."""
    records: tuple[RentalRecord, ...] = ()
    stations: tuple[str, ...] = ()
    groups: tuple[str, ...] = ()
    months: tuple[str, ...] = ()
    total_records: int = 0
    year: int = 0

    def to_payload(self) -> list[dict]:
        return [r.to_payload() for r in self.records]

    def summary(self) -> dict:
        return {
            "year": self.year,
            "total_records": self.total_records,
            "stations": list(self.stations),
            "groups": list(self.groups),
            "months": list(self.months),
        }


# ---------------------------------------------------------------------------
# Off-thread ingestion messages
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IngestRequest:
    content: bytes
    filename: str


@dataclass(frozen=True)
class IngestResponse:
    status: str                          # "success" | "failure"
    dataset: Optional[Dataset] = None
    content_hash: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


# ---------------------------------------------------------------------------
# Registry / store results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class YearModeCheck:
    requested_year: int
    mode_year: Optional[int]
    dated_records: int
    ok: bool

    @property
    def message(self) -> str:
        if self.ok:
            return ""
        return (f"The data for {self.requested_year} appears to contain mostly "
                f"records from {self.mode_year}.")


@dataclass(frozen=True)
class UploadOffer:
    """A locally ingested year that may be forwarded to permanent storage."""
    year: int
    content_hash: str
    total_records: int


@dataclass(frozen=True)
class UploadAck:
    year: int
    status: str                          # "uploaded" | "already-current"
    version: int
    content_hash: str


# ---------------------------------------------------------------------------
# Comparison filters
# ---------------------------------------------------------------------------

class DateRange(str, Enum):
    ALL = "all"
    FIRST_THIRD = "1-10"
    SECOND_THIRD = "11-20"
    LAST_THIRD = "21-end"

    def contains(self, day: int) -> bool:
        if self is DateRange.FIRST_THIRD:
            return 1 <= day <= 10
        if self is DateRange.SECOND_THIRD:
            return 11 <= day <= 20
        if self is DateRange.LAST_THIRD:
            return day >= 21
        return True


@dataclass
class ComparisonFilter:
    """Station / group / day-of-month selection applied to both years."""
    station: str = ALL
    groups: tuple[str, ...] = (ALL,)
    date_range: DateRange = DateRange.ALL

    @property
    def station_key(self) -> str | None:
        """None means no station filter."""
        key = self.station.strip().lower()
        if not key or key == ALL.lower():
            return None
        return key

    @property
    def group_keys(self) -> frozenset[str] | None:
        """None means no group filter."""
        keys = [g.strip().lower() for g in self.groups]
        if not keys or ALL.lower() in keys:
            return None
        return frozenset(keys)

    @property
    def label(self) -> str:
        parts = [
            "All Stations" if self.station_key is None else self.station.strip(),
            "All Groups" if self.group_keys is None else ", ".join(g.strip() for g in self.groups),
        ]
        if self.date_range is not DateRange.ALL:
            parts.append(f"Days {self.date_range.value}")
        return "  |  ".join(parts)


# ---------------------------------------------------------------------------
# Comparison output
# ---------------------------------------------------------------------------

@dataclass
class MetricSet:
    revenue: float = 0.0
    days: float = 0.0
    count: int = 0
    rate: float = 0.0
    has_data: bool = False


@dataclass(frozen=True)
class VarianceSet:
    """Signed fractional change per metric. None = undefined (no meaningful ratio)."""
    revenue: Optional[float] = None
    days: Optional[float] = None
    rate: Optional[float] = None


@dataclass(frozen=True)
class AlignedMonth:
    month_index: int                     # 0-11
    month_name: str
    primary: MetricSet
    comparison: MetricSet
    variance: VarianceSet


@dataclass(frozen=True)
class ComparisonTotals:
    primary: MetricSet
    comparison: MetricSet
    variance: VarianceSet


@dataclass(frozen=True)
class ComparisonResult:
    aligned_months: list[AlignedMonth] = field(default_factory=list)
    totals: Optional[ComparisonTotals] = None
