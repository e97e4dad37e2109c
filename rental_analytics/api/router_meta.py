"""
Meta endpoints: health, years, per-year load and filter options.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from rental_analytics.config import ALL
from rental_analytics.data.errors import DatasetLoadError
from rental_analytics.data.normalize import make_key
from rental_analytics.data.registry import DatasetRegistry
from rental_analytics.data.schemas import Dataset
from rental_analytics.api.dependencies import get_registry
from rental_analytics.api.response_models import (
    DatasetSummary, HealthResponse, LoadYearResponse, YearsResponse,
)

router = APIRouter(prefix="/api", tags=["meta"])


def dataset_summary(dataset: Dataset, content_hash: str | None = None) -> DatasetSummary:
    return DatasetSummary(**dataset.summary(), content_hash=content_hash)


@router.get("/health", response_model=HealthResponse)
def health(registry: DatasetRegistry = Depends(get_registry)):
    return HealthResponse(
        status="ok",
        cached_years=registry.years(),
        loading_years=registry.loading_years(),
    )


@router.get("/years", response_model=YearsResponse)
async def list_years(registry: DatasetRegistry = Depends(get_registry)):
    """Years cached in this session plus years available in the store."""
    stored = await registry.stored_years()
    return YearsResponse(
        cached=registry.years(),
        loading=registry.loading_years(),
        stored={str(y): meta for y, meta in sorted(stored.items(), reverse=True)},
    )


@router.post("/years/{year}/load", response_model=LoadYearResponse)
async def load_year(year: int, registry: DatasetRegistry = Depends(get_registry)):
    """Load a year from the store into the session cache (no-op if cached)."""
    try:
        dataset = await registry.load_year(year)
    except DatasetLoadError as e:
        raise HTTPException(502, str(e))

    check = registry.warnings.get(year)
    return LoadYearResponse(
        dataset=dataset_summary(dataset, registry.content_hash(year)),
        warning=check.message if check else None,
    )


@router.get("/years/{year}/filters", response_model=DatasetSummary)
def year_filters(
    year: int,
    station: str = Query(ALL, description="Limit groups to those rented at this station"),
    registry: DatasetRegistry = Depends(get_registry),
):
    """Stations, groups, and months available for a cached year.

    With a station, `groups` lists only the groups seen at that station.
    """
    dataset = registry.get(year)
    if dataset is None:
        raise HTTPException(404, f"Year {year} is not loaded")
    summary = dataset_summary(dataset, registry.content_hash(year))

    key = make_key(station)
    if key and key != ALL.lower():
        summary.groups = sorted({r.group for r in dataset.records if r.station_key == key})
    return summary
