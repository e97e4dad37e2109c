"""
Remote dataset store — the boundary the registry loads years from and
archives years to.

FileDatasetStore keeps the same layout as the cloud bucket:
    metadata.json                               per-year status / version / hash
    data/<year>/<timestamp>_<hash>_records.json record arrays (wire form)
    logs/audit.jsonl                            one line per finalized upload
"""
from __future__ import annotations

import asyncio
import json
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from rental_analytics.config import ARCHIVABLE_YEARS, STORE_FOLDER
from rental_analytics.data.errors import DatasetNotFoundError
from rental_analytics.data.schemas import UploadAck

_HASH_RE = re.compile(r"^[a-f0-9]{64}$")


class RemoteDatasetStore(Protocol):
    async def fetch(self, year: int) -> list[dict]:
        """Return the stored wire records for a year."""
        ...

    async def upload(self, year: int, records: list[dict], content_hash: str) -> UploadAck:
        """Store records for a year; no-op ("already-current") if the hash matches."""
        ...

    async def available_years(self) -> dict[int, dict]:
        """Per-year metadata for every year the store knows about."""
        ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class FileDatasetStore:
    """Directory-backed RemoteDatasetStore."""

    def __init__(
        self,
        root: Path = STORE_FOLDER,
        archivable_years: frozenset[int] | set[int] = ARCHIVABLE_YEARS,
    ) -> None:
        self.root = Path(root)
        self.archivable_years = frozenset(archivable_years)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    def _metadata_path(self) -> Path:
        return self.root / "metadata.json"

    def _read_metadata(self) -> dict:
        if not self._metadata_path.exists():
            return {"years": {}, "lastUpdated": _now_iso()}
        meta = json.loads(self._metadata_path.read_text(encoding="utf-8"))
        meta.setdefault("years", {})
        return meta

    def _write_metadata(self, meta: dict) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        tmp = self._metadata_path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(meta, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self._metadata_path)

    def _append_audit(self, entry: dict) -> None:
        log_path = self.root / "logs" / "audit.jsonl"
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "a", encoding="utf-8") as fh:
            fh.write(json.dumps(entry) + "\n")

    # ------------------------------------------------------------------
    # Blocking implementations (run via asyncio.to_thread)
    # ------------------------------------------------------------------

    def _fetch_sync(self, year: int) -> list[dict]:
        entry = self._read_metadata()["years"].get(str(year))
        if not entry or not entry.get("hash"):
            raise DatasetNotFoundError(f"No stored data for {year}")

        records_path = entry.get("recordsPath")
        if records_path:
            path = self.root / records_path
        else:
            # older metadata without a stored path: locate the file by hash
            matches = sorted((self.root / "data" / str(year)).glob(f"*_{entry['hash']}_records.json"))
            path = matches[-1] if matches else None
        if path is None or not path.exists():
            raise DatasetNotFoundError(f"Stored records for {year} are missing")

        records = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(records, list):
            raise ValueError(f"Stored records for {year} are not a JSON array")
        return records

    def _upload_sync(self, year: int, records: list[dict], content_hash: str) -> UploadAck:
        if year not in self.archivable_years:
            raise ValueError(f"Year {year} is not archivable (allowed: {sorted(self.archivable_years)})")
        if not _HASH_RE.match(content_hash or ""):
            raise ValueError("content_hash must be a 64-character hex SHA-256 digest")

        meta = self._read_metadata()
        current = meta["years"].get(str(year), {})
        if current.get("hash") == content_hash:
            print(f"  {year}: data is already up to date (v{current.get('version', 0)})")
            return UploadAck(year=year, status="already-current",
                             version=int(current.get("version", 0)), content_hash=content_hash)

        rel_path = Path("data") / str(year) / f"{int(time.time() * 1000)}_{content_hash}_records.json"
        dest = self.root / rel_path
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(json.dumps(records), encoding="utf-8")

        now = _now_iso()
        version = int(current.get("version", 0)) + 1
        meta["years"][str(year)] = {
            "status": "active",
            "version": version,
            "hash": content_hash,
            "rowCount": len(records),
            "lastUpdated": now,
            "recordsPath": rel_path.as_posix(),
        }
        meta["lastUpdated"] = now
        self._write_metadata(meta)
        self._append_audit({"timestamp": now, "action": "finalize_upload", "year": year, "hash": content_hash})

        print(f"  {year}: stored {len(records):,} records (v{version}) → {rel_path.as_posix()}")
        return UploadAck(year=year, status="uploaded", version=version, content_hash=content_hash)

    def _available_years_sync(self) -> dict[int, dict]:
        return {int(y): entry for y, entry in self._read_metadata()["years"].items()}

    # ------------------------------------------------------------------
    # RemoteDatasetStore interface
    # ------------------------------------------------------------------

    async def fetch(self, year: int) -> list[dict]:
        return await asyncio.to_thread(self._fetch_sync, year)

    async def upload(self, year: int, records: list[dict], content_hash: str) -> UploadAck:
        return await asyncio.to_thread(self._upload_sync, year, records, content_hash)

    async def available_years(self) -> dict[int, dict]:
        return await asyncio.to_thread(self._available_years_sync)
