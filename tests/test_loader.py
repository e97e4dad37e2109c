"""Tests for spreadsheet reading and the off-thread ingestion pipeline."""

from __future__ import annotations

import asyncio
import datetime as dt
from concurrent.futures import ThreadPoolExecutor

import pytest

from rental_analytics.data.errors import IngestError, MissingColumnError, UnsupportedFileError
from rental_analytics.data.loader import ingest, ingest_bytes, ingest_file, read_first_sheet, run_ingest_job
from rental_analytics.data.schemas import IngestRequest


def test_ingest_csv_builds_dataset(csv_bytes) -> None:
    """The sample CSV keeps six rentals and detects 2024."""
    dataset, content_hash = ingest_bytes(csv_bytes, "rentals.csv")

    assert (
        dataset.total_records == 6
        and dataset.year == 2024
        and dataset.stations == ("Airport", "Downtown")
        and dataset.groups == ("Compact", "SUV", "Unknown")
        and dataset.months == ("2024-01", "2024-02", "2024-03")
        and dataset.records[0].date == dt.date(2024, 1, 5)
        and len(content_hash) == 64
    )


def test_csv_and_xlsx_hash_identically(csv_bytes, xlsx_bytes) -> None:
    """The same rows exported as CSV text or native Excel cells hash the same."""
    _, csv_hash = ingest_bytes(csv_bytes, "rentals.csv")
    xlsx_dataset, xlsx_hash = ingest_bytes(xlsx_bytes, "rentals.xlsx")

    assert xlsx_dataset.total_records == 6 and csv_hash == xlsx_hash


def test_semicolon_csv_with_european_numbers() -> None:
    """Semicolon-delimited exports use comma decimals."""
    content = (
        "Station;Date;Days;Rental Charge\n"
        "Airport;05.01.2024;3;1.234,56\n"
        "Airport;06.01.2024;2;54,10\n"
    ).encode("utf-8")
    dataset, _ = ingest_bytes(content, "export.csv")

    assert [r.charge for r in dataset.records] == pytest.approx([1234.56, 54.1])


def test_utf8_bom_header_is_detected() -> None:
    """A BOM on the first header cell must not break column detection."""
    content = "\ufeffStation,Date,Days,Amount\nAirport,05/01/2024,1,10\n".encode("utf-8")
    dataset, _ = ingest_bytes(content, "bom.csv")

    assert dataset.total_records == 1


def test_unsupported_extension_is_rejected() -> None:
    with pytest.raises(UnsupportedFileError):
        read_first_sheet(b"whatever", "rentals.pdf")


def test_corrupt_workbook_raises_ingest_error() -> None:
    """Bytes that are not a workbook surface as an ingestion failure."""
    with pytest.raises(IngestError):
        read_first_sheet(b"definitely not a zip archive", "rentals.xlsx")


def test_missing_columns_fail_ingestion() -> None:
    content = b"Station,Date\nAirport,05/01/2024\n"
    with pytest.raises(MissingColumnError):
        ingest_bytes(content, "partial.csv")


def test_ingest_file_reads_from_disk(tmp_path, xlsx_bytes) -> None:
    path = tmp_path / "rentals_2024.xlsx"
    path.write_bytes(xlsx_bytes)
    dataset, _ = ingest_file(path)

    assert dataset.total_records == 6


def test_run_ingest_job_reports_failure_instead_of_raising() -> None:
    """The worker entry point answers every request with exactly one response."""
    response = run_ingest_job(IngestRequest(content=b"Station\nAirport\n", filename="bad.csv"))

    assert not response.ok and response.dataset is None and "Missing required column" in response.error


def test_async_ingest_with_executor(csv_bytes) -> None:
    """Parsing on a supplied executor returns the same result as inline parsing."""
    expected, expected_hash = ingest_bytes(csv_bytes, "rentals.csv")

    async def run():
        with ThreadPoolExecutor(max_workers=1) as pool:
            return await ingest(csv_bytes, "rentals.csv", executor=pool)

    dataset, content_hash = asyncio.run(run())

    assert dataset == expected and content_hash == expected_hash


def test_async_ingest_raises_on_failed_response() -> None:
    async def run():
        with ThreadPoolExecutor(max_workers=1) as pool:
            return await ingest(b"", "empty.csv", executor=pool)

    with pytest.raises(IngestError):
        asyncio.run(run())


def test_async_ingest_in_worker_process(csv_bytes) -> None:
    """Without an executor the job and its response cross a process boundary."""
    expected, expected_hash = ingest_bytes(csv_bytes, "rentals.csv")
    dataset, content_hash = asyncio.run(ingest(csv_bytes, "rentals.csv"))

    assert dataset == expected and content_hash == expected_hash
