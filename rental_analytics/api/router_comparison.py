"""
Comparison endpoints — month-aligned year-over-year metrics (JSON + Excel).
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse

from rental_analytics.config import REPORTS_FOLDER
from rental_analytics.data.errors import DatasetNotLoadedError
from rental_analytics.data.registry import DatasetRegistry
from rental_analytics.data.schemas import ComparisonFilter, ComparisonResult
from rental_analytics.analytics.comparison import compare
from rental_analytics.api.dependencies import get_registry, parse_filter
from rental_analytics.reports import comparison_report

router = APIRouter(prefix="/api", tags=["comparison"])


def _run_comparison(
    registry: DatasetRegistry,
    primary_year: int,
    comparison_year: Optional[int],
    criteria: ComparisonFilter,
) -> ComparisonResult:
    """Compare two cached years. Never fetches; both years must already be loaded."""
    try:
        primary = registry.require(primary_year)
        comparison = registry.require(comparison_year) if comparison_year is not None else None
    except DatasetNotLoadedError as e:
        raise HTTPException(404, str(e))
    return compare(primary, comparison, criteria)


@router.get("/comparison")
def comparison(
    primary_year: int = Query(..., description="Year shown as the primary series"),
    comparison_year: Optional[int] = Query(None, description="Baseline year"),
    criteria: ComparisonFilter = Depends(parse_filter),
    registry: DatasetRegistry = Depends(get_registry),
):
    """Twelve aligned months plus grand totals. Undefined variances are null."""
    result = _run_comparison(registry, primary_year, comparison_year, criteria)
    return comparison_report.generate_json(
        result,
        criteria,
        primary_label=str(primary_year),
        comparison_label=str(comparison_year) if comparison_year is not None else None,
    )


@router.get("/comparison/export")
def comparison_export(
    primary_year: int = Query(...),
    comparison_year: Optional[int] = Query(None),
    criteria: ComparisonFilter = Depends(parse_filter),
    registry: DatasetRegistry = Depends(get_registry),
):
    """The same comparison as a styled Excel workbook."""
    result = _run_comparison(registry, primary_year, comparison_year, criteria)
    suffix = f"_vs_{comparison_year}" if comparison_year is not None else ""
    out_path = REPORTS_FOLDER / f"Rental_Comparison_{primary_year}{suffix}.xlsx"
    comparison_report.generate_excel(
        result,
        out_path,
        criteria,
        primary_label=str(primary_year),
        comparison_label=str(comparison_year) if comparison_year is not None else None,
    )
    return FileResponse(
        path=str(out_path),
        filename=out_path.name,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
