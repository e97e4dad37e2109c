"""
Upload endpoints: ingest a spreadsheet into the session, archive a year.
"""
from __future__ import annotations

import gzip

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile

from rental_analytics.data.errors import DatasetLoadError, DatasetNotLoadedError, IngestError
from rental_analytics.data.loader import ingest
from rental_analytics.data.registry import DatasetRegistry
from rental_analytics.api.dependencies import get_registry
from rental_analytics.api.response_models import ArchiveResponse, UploadResponse
from rental_analytics.api.router_meta import dataset_summary

router = APIRouter(prefix="/api", tags=["upload"])


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    registry: DatasetRegistry = Depends(get_registry),
):
    """Parse an uploaded spreadsheet and cache it under its detected year.

    The response says whether the year may be archived; archiving is a
    separate, explicit call to /api/years/{year}/archive.
    """
    if not file.filename:
        raise HTTPException(400, "Missing filename")

    # Strip .gz suffix if present (browser gzip-compressed upload)
    filename = file.filename
    content = await file.read()
    if filename.lower().endswith(".gz"):
        filename = filename[:-3]
        try:
            content = gzip.decompress(content)
        except (OSError, EOFError):
            raise HTTPException(400, f"Could not decompress {file.filename}")

    executor = getattr(request.app.state, "ingest_executor", None)
    try:
        dataset, content_hash = await ingest(content, filename, executor=executor)
    except IngestError as e:
        raise HTTPException(400, str(e))

    offer = registry.add_local(dataset, content_hash)
    return UploadResponse(
        status="parsed",
        filename=filename,
        dataset=dataset_summary(dataset, content_hash),
        archive_offered=offer is not None,
    )


@router.post("/years/{year}/archive", response_model=ArchiveResponse)
async def archive_year(year: int, registry: DatasetRegistry = Depends(get_registry)):
    """Forward a locally uploaded year to permanent storage."""
    try:
        ack = await registry.archive(year)
    except DatasetNotLoadedError as e:
        raise HTTPException(404, str(e))
    except ValueError as e:
        raise HTTPException(400, str(e))
    except DatasetLoadError as e:
        raise HTTPException(502, str(e))

    return ArchiveResponse(year=ack.year, status=ack.status, version=ack.version, content_hash=ack.content_hash)
