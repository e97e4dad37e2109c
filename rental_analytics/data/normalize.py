"""
Column detection, row normalization, dataset assembly, content hashing.
"""
from __future__ import annotations

import datetime as dt
import hashlib
import json
from collections import Counter
from typing import Iterable, Mapping

from rental_analytics.config import COLUMN_CANDIDATES, REQUIRED_FIELDS, DEFAULT_GROUP
from rental_analytics.data.errors import MissingColumnError, NoValidRecordsError
from rental_analytics.data.parsers import parse_date, parse_number
from rental_analytics.data.schemas import Dataset, RentalRecord


# ---------------------------------------------------------------------------
# Column detection
# ---------------------------------------------------------------------------

def find_column(columns: Iterable[str], candidates: list[str]) -> str | None:
    """Return the first column matching a candidate (exact or substring, case-insensitive).

    Candidates are tried in priority order; within a candidate, columns are
    tried in sheet order.
    """
    columns = list(columns)
    for candidate in candidates:
        for col in columns:
            name = str(col).strip().lower()
            if name == candidate or candidate in name:
                return col
    return None


def resolve_columns(columns: Iterable[str]) -> dict[str, str | None]:
    """Map each logical field to a sheet column. Raises if a required one is missing."""
    columns = list(columns)
    resolved = {
        fld: find_column(columns, candidates)
        for fld, candidates in COLUMN_CANDIDATES.items()
    }
    missing = [fld for fld in REQUIRED_FIELDS if resolved.get(fld) is None]
    if missing:
        raise MissingColumnError(missing)
    return resolved


# ---------------------------------------------------------------------------
# Record helpers
# ---------------------------------------------------------------------------

def make_key(value: str) -> str:
    return value.strip().lower()


def _month_key(date: dt.date) -> str:
    return f"{date.year}-{date.month:02d}"


def _display_date(date: dt.date) -> str:
    return f"{date:%b %Y}"


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:  # NaN
        return ""
    return str(value).strip()


def modal_year(dates: Iterable[dt.date]) -> int | None:
    """Most frequent calendar year; ties go to the earliest year."""
    counts = Counter(d.year for d in dates)
    if not counts:
        return None
    return max(sorted(counts), key=counts.get)


def build_dataset(records: list[RentalRecord], year: int | None = None) -> Dataset:
    """Assemble a Dataset and its sorted station/group/month indexes.

    Without an explicit year, the dataset year is the modal record year.
    """
    if year is None:
        year = modal_year(r.date for r in records) or 0
    return Dataset(
        records=tuple(records),
        stations=tuple(sorted({r.station for r in records})),
        groups=tuple(sorted({r.group for r in records})),
        months=tuple(sorted({r.month_key for r in records})),
        total_records=len(records),
        year=year,
    )


# ---------------------------------------------------------------------------
# Row normalization
# ---------------------------------------------------------------------------

def normalize_rows(rows: list[Mapping]) -> Dataset:
    """Turn raw sheet rows (header → cell dicts) into a Dataset.

    Rows with a blank station, an unreadable date, or days <= 0 are skipped.
    Raises MissingColumnError / NoValidRecordsError.
    """
    if not rows:
        raise NoValidRecordsError("The file contains no data rows")

    cols = resolve_columns(rows[0].keys())
    station_col, date_col = cols["station"], cols["date"]
    days_col, charge_col, group_col = cols["days"], cols["charge"], cols["group"]

    records: list[RentalRecord] = []
    for index, row in enumerate(rows):
        station = _cell_text(row.get(station_col))
        if not station:
            continue

        date = parse_date(row.get(date_col))
        if date is None:
            continue

        days = parse_number(row.get(days_col))
        if days <= 0:
            continue
        charge = parse_number(row.get(charge_col))

        group = _cell_text(row.get(group_col)) if group_col else ""
        group = group or DEFAULT_GROUP

        records.append(RentalRecord(
            id=index,
            station=station,
            station_key=make_key(station),
            group=group,
            group_key=make_key(group),
            date=date,
            month_key=_month_key(date),
            display_date=_display_date(date),
            day=date.day,
            days=float(days),
            charge=float(charge),
            year=date.year,
        ))

    if not records:
        raise NoValidRecordsError(
            f"No valid records found in {len(rows):,} rows "
            "(every row had a blank station, an unreadable date, or non-positive days)"
        )
    return build_dataset(records)


# ---------------------------------------------------------------------------
# Content hash
# ---------------------------------------------------------------------------

def canonical_json(records: Iterable[RentalRecord]) -> str:
    payload = [r.to_payload() for r in records]
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compute_content_hash(records: Iterable[RentalRecord]) -> str:
    """SHA-256 hex digest over the canonical serialized records."""
    return hashlib.sha256(canonical_json(records).encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Rebuild from stored JSON
# ---------------------------------------------------------------------------

def record_from_payload(raw: Mapping, index: int) -> RentalRecord | None:
    """Rebuild one record from its wire form, back-filling derived fields.

    Older stored data may lack stationKey/groupKey. Entries that break the
    record invariant are dropped (None).
    """
    station = _cell_text(raw.get("station"))
    date = parse_date(raw.get("date"))
    days = parse_number(raw.get("days"))
    if not station or date is None or days <= 0:
        return None

    group = _cell_text(raw.get("group")) or DEFAULT_GROUP
    return RentalRecord(
        id=int(raw.get("id", index)),
        station=station,
        station_key=raw.get("stationKey") or make_key(station),
        group=group,
        group_key=raw.get("groupKey") or make_key(group),
        date=date,
        month_key=raw.get("monthKey") or _month_key(date),
        display_date=raw.get("displayDate") or _display_date(date),
        day=int(raw.get("day") or date.day),
        days=float(days),
        charge=float(parse_number(raw.get("charge"))),
        year=int(raw.get("year") or date.year),
    )


def dataset_from_payload(payload: list[Mapping], year: int) -> Dataset:
    """Reconstruct a Dataset for `year` from stored wire records."""
    records = []
    for i, raw in enumerate(payload):
        rec = record_from_payload(raw, i)
        if rec is not None:
            records.append(rec)
    return build_dataset(records, year=year)
