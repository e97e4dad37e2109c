"""Tests for the directory-backed dataset store."""

from __future__ import annotations

import asyncio
import json

import pytest

from rental_analytics.data.errors import DatasetNotFoundError
from rental_analytics.data.remote import FileDatasetStore

HASH_A = "a" * 64
HASH_B = "b" * 64
RECORDS = [{"id": 0, "station": "Airport", "date": "2024-01-05", "days": 3.0, "charge": 300.0}]


def test_upload_writes_records_metadata_and_audit(tmp_path) -> None:
    """A first upload stores version 1 and logs one audit entry."""
    store = FileDatasetStore(tmp_path, archivable_years={2024})
    ack = asyncio.run(store.upload(2024, RECORDS, HASH_A))

    meta = json.loads((tmp_path / "metadata.json").read_text())["years"]["2024"]
    audit = (tmp_path / "logs" / "audit.jsonl").read_text().splitlines()

    assert (
        ack.status == "uploaded"
        and ack.version == 1
        and meta["hash"] == HASH_A
        and meta["rowCount"] == 1
        and meta["status"] == "active"
        and (tmp_path / meta["recordsPath"]).exists()
        and len(audit) == 1
        and json.loads(audit[0])["action"] == "finalize_upload"
    )


def test_fetch_returns_stored_records(tmp_path) -> None:
    store = FileDatasetStore(tmp_path, archivable_years={2024})
    asyncio.run(store.upload(2024, RECORDS, HASH_A))

    assert asyncio.run(store.fetch(2024)) == RECORDS


def test_same_hash_is_already_current(tmp_path) -> None:
    """Re-uploading identical content writes nothing new."""
    store = FileDatasetStore(tmp_path, archivable_years={2024})
    asyncio.run(store.upload(2024, RECORDS, HASH_A))
    ack = asyncio.run(store.upload(2024, RECORDS, HASH_A))

    files = list((tmp_path / "data" / "2024").glob("*_records.json"))
    assert ack.status == "already-current" and ack.version == 1 and len(files) == 1


def test_new_hash_bumps_version(tmp_path) -> None:
    store = FileDatasetStore(tmp_path, archivable_years={2024})
    asyncio.run(store.upload(2024, RECORDS, HASH_A))
    ack = asyncio.run(store.upload(2024, RECORDS + RECORDS, HASH_B))
    years = asyncio.run(store.available_years())

    assert ack.version == 2 and years[2024]["hash"] == HASH_B and years[2024]["rowCount"] == 2


def test_upload_rejects_ineligible_year_and_bad_hash(tmp_path) -> None:
    store = FileDatasetStore(tmp_path, archivable_years={2024})
    with pytest.raises(ValueError):
        asyncio.run(store.upload(2019, RECORDS, HASH_A))
    with pytest.raises(ValueError):
        asyncio.run(store.upload(2024, RECORDS, "not-a-hash"))


def test_fetch_unknown_year_raises_not_found(tmp_path) -> None:
    store = FileDatasetStore(tmp_path)
    with pytest.raises(DatasetNotFoundError):
        asyncio.run(store.fetch(2024))


def test_fetch_locates_records_by_hash_without_stored_path(tmp_path) -> None:
    """Older metadata without recordsPath still resolves through the hash in the filename."""
    year_dir = tmp_path / "data" / "2023"
    year_dir.mkdir(parents=True)
    (year_dir / f"1700000000000_{HASH_A}_records.json").write_text(json.dumps(RECORDS))
    (tmp_path / "metadata.json").write_text(json.dumps(
        {"years": {"2023": {"status": "active", "version": 1, "hash": HASH_A}}}
    ))

    assert asyncio.run(FileDatasetStore(tmp_path).fetch(2023)) == RECORDS
