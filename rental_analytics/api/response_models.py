"""
Pydantic response schemas for the API.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    cached_years: list[int]
    loading_years: list[int]


class YearsResponse(BaseModel):
    cached: list[int]
    loading: list[int]
    stored: dict[str, dict[str, Any]]


class DatasetSummary(BaseModel):
    year: int
    total_records: int
    stations: list[str]
    groups: list[str]
    months: list[str]
    content_hash: Optional[str] = None


class LoadYearResponse(BaseModel):
    dataset: DatasetSummary
    warning: Optional[str] = None


class UploadResponse(BaseModel):
    status: str
    filename: str
    dataset: DatasetSummary
    archive_offered: bool


class ArchiveResponse(BaseModel):
    year: int
    status: str          # "uploaded" | "already-current"
    version: int
    content_hash: str
