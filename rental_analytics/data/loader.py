"""
Spreadsheet reading and the ingestion pipeline (file → Dataset + content hash).

Parsing runs in a worker process: the caller sends one IngestRequest and
gets back exactly one IngestResponse.
"""
from __future__ import annotations

import asyncio
import codecs
import io
import zipfile
from concurrent.futures import Executor, ProcessPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from pathlib import Path

import pandas as pd

from rental_analytics.config import ACCEPTED_EXTENSIONS, EXCEL_EXTENSIONS
from rental_analytics.data.errors import IngestError, UnsupportedFileError
from rental_analytics.data.normalize import compute_content_hash, normalize_rows
from rental_analytics.data.schemas import Dataset, IngestRequest, IngestResponse


# ---------------------------------------------------------------------------
# Reading the first sheet
# ---------------------------------------------------------------------------

def _decode_text(content: bytes) -> str:
    """Decode CSV bytes: UTF-16 (BOM), UTF-8 (with or without BOM), else cp1252."""
    if content.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return content.decode("utf-16")
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("cp1252", errors="replace")


def _sniff_delimiter(text: str) -> str:
    header = text.split("\n", 1)[0]
    counts = {sep: header.count(sep) for sep in (",", ";", "\t")}
    best = max(counts, key=counts.get)
    return best if counts[best] else ","


def read_first_sheet(content: bytes, filename: str) -> list[dict]:
    """Read the first sheet of a spreadsheet into header → cell dicts.

    CSV cells are kept as raw text so the number/date heuristics see exactly
    what the export contained. Excel cells keep their native types.
    """
    ext = Path(filename).suffix.lower()
    if ext not in ACCEPTED_EXTENSIONS:
        raise UnsupportedFileError(
            f"Unsupported file type '{ext or filename}'. "
            f"Accepted: {', '.join(sorted(ACCEPTED_EXTENSIONS))}"
        )

    try:
        if ext in EXCEL_EXTENSIONS:
            df = pd.read_excel(io.BytesIO(content), sheet_name=0, dtype=object,
                               keep_default_na=False, engine="openpyxl")
        else:
            text = _decode_text(content)
            df = pd.read_csv(io.StringIO(text), sep=_sniff_delimiter(text), dtype=str,
                             keep_default_na=False, skipinitialspace=True)
    except pd.errors.EmptyDataError:
        return []
    except (ValueError, KeyError, OSError, zipfile.BadZipFile) as exc:
        raise IngestError(f"Could not read {filename}: {exc}") from exc

    return df.to_dict("records")


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def ingest_bytes(content: bytes, filename: str) -> tuple[Dataset, str]:
    """Parse a spreadsheet into (Dataset, content hash). Raises IngestError."""
    rows = read_first_sheet(content, filename)
    dataset = normalize_rows(rows)
    content_hash = compute_content_hash(dataset.records)
    skipped = len(rows) - dataset.total_records
    print(f"  {filename}: {len(rows):,} rows → {dataset.total_records:,} records "
          f"(year {dataset.year}, {skipped:,} skipped)")
    return dataset, content_hash


def ingest_file(filepath: str | Path) -> tuple[Dataset, str]:
    filepath = Path(filepath)
    return ingest_bytes(filepath.read_bytes(), filepath.name)


def run_ingest_job(request: IngestRequest) -> IngestResponse:
    """Worker entry point. Always returns a response, never raises for bad input."""
    try:
        dataset, content_hash = ingest_bytes(request.content, request.filename)
    except IngestError as exc:
        return IngestResponse(status="failure", error=str(exc))
    return IngestResponse(status="success", dataset=dataset, content_hash=content_hash)


async def ingest(
    content: bytes,
    filename: str,
    executor: Executor | None = None,
) -> tuple[Dataset, str]:
    """Parse a file off the event loop and return (Dataset, content hash).

    Without an executor, a single-worker process pool is created for this
    one job and shut down once its response arrives.
    """
    loop = asyncio.get_running_loop()
    request = IngestRequest(content=content, filename=filename)

    own_executor = executor is None
    if own_executor:
        executor = ProcessPoolExecutor(max_workers=1)
    try:
        response = await loop.run_in_executor(executor, run_ingest_job, request)
    except BrokenProcessPool as exc:
        raise IngestError(f"Parser worker for {filename} exited unexpectedly") from exc
    finally:
        if own_executor:
            executor.shutdown(wait=False)

    if not response.ok:
        raise IngestError(response.error or "Unknown error parsing file")
    return response.dataset, response.content_hash
