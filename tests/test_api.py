"""API tests against an app backed by a temporary file store."""

from __future__ import annotations

import gzip
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

import rental_analytics.config as config
from rental_analytics.api import router_comparison
from rental_analytics.data.remote import FileDatasetStore
from rental_analytics.main import create_app


@pytest.fixture
def client_factory(tmp_path, monkeypatch):
    """Build clients that share one store directory, parsing uploads on a thread."""
    monkeypatch.setattr(config, "STORE_FOLDER", tmp_path / "store")
    monkeypatch.setattr(config, "REPORTS_FOLDER", tmp_path / "reports")
    monkeypatch.setattr(router_comparison, "REPORTS_FOLDER", tmp_path / "reports")
    pool = ThreadPoolExecutor(max_workers=1)

    def make():
        app = create_app(FileDatasetStore(tmp_path / "store", archivable_years={2023, 2024}))
        client = TestClient(app)
        client.__enter__()
        app.state.ingest_executor = pool
        opened.append(client)
        return client

    opened: list[TestClient] = []
    yield make
    for client in opened:
        client.__exit__(None, None, None)
    pool.shutdown()


@pytest.fixture
def client(client_factory):
    return client_factory()


def _upload(client, content: bytes, filename: str = "rentals.csv"):
    return client.post("/api/upload", files={"file": (filename, content, "application/octet-stream")})


def test_health_reports_empty_cache(client) -> None:
    response = client.get("/api/health")
    assert response.status_code == 200 and response.json()["cached_years"] == []


def test_upload_parses_and_offers_archive(client, csv_bytes) -> None:
    """An upload is cached under its detected year; archiving is only offered."""
    response = _upload(client, csv_bytes)
    body = response.json()
    years = client.get("/api/years").json()

    assert (
        response.status_code == 200
        and body["status"] == "parsed"
        and body["archive_offered"] is True
        and body["dataset"]["year"] == 2024
        and body["dataset"]["total_records"] == 6
        and len(body["dataset"]["content_hash"]) == 64
        and years["cached"] == [2024]
        and years["stored"] == {}
    )


def test_gzipped_upload_is_decompressed(client, xlsx_bytes) -> None:
    response = _upload(client, gzip.compress(xlsx_bytes), "rentals.xlsx.gz")
    assert response.status_code == 200 and response.json()["filename"] == "rentals.xlsx"


def test_bad_upload_returns_400(client) -> None:
    missing = _upload(client, b"Station,Date\nAirport,05/01/2024\n")
    unsupported = _upload(client, b"%PDF-1.4", "rentals.pdf")

    assert (
        missing.status_code == 400
        and "Missing required column" in missing.json()["detail"]
        and unsupported.status_code == 400
    )


def test_comparison_without_baseline_has_null_variances(client, csv_bytes) -> None:
    _upload(client, csv_bytes)
    response = client.get("/api/comparison", params={"primary_year": 2024})
    body = response.json()
    jan = body["aligned_months"][0]

    assert (
        response.status_code == 200
        and len(body["aligned_months"]) == 12
        and jan["primary"]["count"] == 3
        and jan["primary"]["revenue"] == 530.0
        and jan["variance"] == {"revenue": None, "days": None, "rate": None}
        and body["totals"]["primary"]["count"] == 6
    )


def test_comparison_filters_and_missing_year(client, csv_bytes) -> None:
    _upload(client, csv_bytes)
    filtered = client.get("/api/comparison", params=[
        ("primary_year", 2024), ("station", "downtown"), ("group", "Compact"), ("group", "Unknown"),
    ]).json()
    bad_range = client.get("/api/comparison", params={"primary_year": 2024, "date_range": "1-15"})
    missing = client.get("/api/comparison", params={"primary_year": 2024, "comparison_year": 2023})

    assert (
        filtered["totals"]["primary"]["count"] == 2
        and filtered["totals"]["primary"]["revenue"] == 530.0
        and bad_range.status_code == 400
        and missing.status_code == 404
    )


def test_archive_then_load_in_new_session(client_factory, csv_bytes) -> None:
    """An archived year can be loaded by a later session with the same hash."""
    first = client_factory()
    uploaded = _upload(first, csv_bytes).json()
    archived = first.post("/api/years/2024/archive")
    again = first.post("/api/years/2024/archive")

    second = client_factory()
    stored = second.get("/api/years").json()["stored"]
    loaded = second.post("/api/years/2024/load")
    filters = second.get("/api/years/2024/filters")

    assert (
        archived.status_code == 200
        and archived.json()["status"] == "uploaded"
        and again.json()["status"] == "already-current"
        and stored["2024"]["version"] == 1
        and loaded.status_code == 200
        and loaded.json()["warning"] is None
        and loaded.json()["dataset"]["content_hash"] == uploaded["dataset"]["content_hash"]
        and filters.json()["stations"] == ["Airport", "Downtown"]
    )


def test_archive_and_load_errors(client) -> None:
    not_local = client.post("/api/years/2024/archive")
    not_stored = client.post("/api/years/2023/load")
    not_loaded = client.get("/api/years/2023/filters")

    assert not_local.status_code == 404 and not_stored.status_code == 502 and not_loaded.status_code == 404


def test_export_returns_workbook(client, csv_bytes, tmp_path) -> None:
    _upload(client, csv_bytes)
    response = client.get("/api/comparison/export", params={"primary_year": 2024})

    assert (
        response.status_code == 200
        and response.content[:2] == b"PK"
        and (tmp_path / "reports" / "Rental_Comparison_2024.xlsx").exists()
    )


def test_filters_narrow_groups_to_selected_station(client, csv_bytes) -> None:
    """Group options follow the station choice; All keeps every group."""
    _upload(client, csv_bytes)
    downtown = client.get("/api/years/2024/filters", params={"station": "downtown"}).json()
    airport = client.get("/api/years/2024/filters", params={"station": "Airport"}).json()
    everything = client.get("/api/years/2024/filters", params={"station": "All"}).json()

    assert (
        downtown["groups"] == ["Compact", "Unknown"]
        and airport["groups"] == ["Compact", "SUV"]
        and everything["groups"] == ["Compact", "SUV", "Unknown"]
        and downtown["stations"] == ["Airport", "Downtown"]
    )


def test_app_parses_uploads_in_its_own_worker_process(tmp_path, monkeypatch, csv_bytes) -> None:
    """The lifespan provides one process pool that serves every upload."""
    monkeypatch.setattr(config, "STORE_FOLDER", tmp_path / "store")
    monkeypatch.setattr(config, "REPORTS_FOLDER", tmp_path / "reports")
    app = create_app(FileDatasetStore(tmp_path / "store"))

    with TestClient(app) as client:
        pool = app.state.ingest_executor
        first = _upload(client, csv_bytes)
        second = _upload(client, csv_bytes)
        same_pool = app.state.ingest_executor is pool

    assert (
        isinstance(pool, ProcessPoolExecutor)
        and same_pool
        and first.status_code == 200
        and second.json()["dataset"]["total_records"] == 6
    )
