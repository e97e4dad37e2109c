"""Shared fixtures: small rental sheets as CSV and XLSX bytes."""

from __future__ import annotations

import datetime as dt
import io

import pandas as pd
import pytest

from rental_analytics.data.normalize import build_dataset
from rental_analytics.data.schemas import RentalRecord

HEADER = ["Check-Out Station", "Check-Out Date", "Days", "Rental Charge", "Charged Group"]


def sheet_rows() -> list[list]:
    """Six valid rentals across two stations, plus three rows that must be skipped."""
    return [
        ["Airport", dt.date(2024, 1, 5), 3, 300.0, "SUV"],
        ["Airport", dt.date(2024, 1, 15), 2, 150.0, "Compact"],
        ["Downtown", dt.date(2024, 1, 25), 1, 80.0, "Compact"],
        ["Airport", dt.date(2024, 2, 3), 4, 400.0, "SUV"],
        ["Downtown", dt.date(2024, 3, 12), 5, 450.0, ""],
        ["Airport", dt.date(2024, 3, 28), 2, 210.5, "SUV"],
        ["", dt.date(2024, 4, 1), 3, 100.0, "SUV"],
        ["Airport", "not a date", 3, 100.0, "SUV"],
        ["Downtown", dt.date(2024, 4, 2), 0, 100.0, "SUV"],
    ]


def _csv_cell(value) -> str:
    if isinstance(value, dt.date):
        return f"{value:%d/%m/%Y}"
    return str(value)


@pytest.fixture
def csv_bytes() -> bytes:
    lines = [",".join(HEADER)]
    lines += [",".join(_csv_cell(v) for v in row) for row in sheet_rows()]
    return ("\n".join(lines) + "\n").encode("utf-8")


@pytest.fixture
def xlsx_bytes() -> bytes:
    rows = [[pd.Timestamp(v) if isinstance(v, dt.date) else v for v in row] for row in sheet_rows()]
    df = pd.DataFrame(rows, columns=HEADER)
    buf = io.BytesIO()
    df.to_excel(buf, index=False, engine="openpyxl")
    return buf.getvalue()


def make_record(
    date: dt.date,
    days: float,
    charge: float,
    station: str = "Airport",
    group: str = "SUV",
    index: int = 0,
) -> RentalRecord:
    return RentalRecord(
        id=index,
        station=station,
        station_key=station.lower(),
        group=group,
        group_key=group.lower(),
        date=date,
        month_key=f"{date.year}-{date.month:02d}",
        display_date=f"{date:%b %Y}",
        day=date.day,
        days=float(days),
        charge=float(charge),
        year=date.year,
    )


def make_dataset(entries: list[tuple], year: int | None = None):
    """Build a Dataset from (date, days, charge[, station[, group]]) tuples."""
    records = [make_record(*entry, index=i) for i, entry in enumerate(entries)]
    return build_dataset(records, year=year)
