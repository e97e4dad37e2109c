"""
FastAPI dependencies — per-app DatasetRegistry, comparison filter parsing.
"""
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Query, Request

from rental_analytics.config import ALL
from rental_analytics.data.registry import DatasetRegistry
from rental_analytics.data.schemas import ComparisonFilter, DateRange


# ---------------------------------------------------------------------------
# Registry (one per app instance, created in the lifespan)
# ---------------------------------------------------------------------------

def get_registry(request: Request) -> DatasetRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(503, "Server not initialized yet")
    return registry


# ---------------------------------------------------------------------------
# Filter parsing from query params
# ---------------------------------------------------------------------------

def parse_filter(
    station: str = Query(ALL, description="Station name or 'All'"),
    group: Optional[list[str]] = Query(None, description="Group name(s); repeat the param for several"),
    date_range: str = Query(DateRange.ALL.value, description="all|1-10|11-20|21-end"),
) -> ComparisonFilter:
    """Parse filter query parameters into a ComparisonFilter."""
    try:
        dr = DateRange(date_range.strip().lower())
    except ValueError:
        raise HTTPException(400, f"Invalid date_range: {date_range}")

    return ComparisonFilter(
        station=station,
        groups=tuple(group) if group else (ALL,),
        date_range=dr,
    )
