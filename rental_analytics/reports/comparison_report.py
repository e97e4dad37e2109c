"""
Year-over-Year Comparison Report — month table + grand totals, JSON and Excel.
"""
from __future__ import annotations

from pathlib import Path

import pandas as pd

from rental_analytics.data.schemas import ComparisonFilter, ComparisonResult, MetricSet
from rental_analytics.analytics.common import sanitize_for_json
from rental_analytics.analytics.comparison import result_to_dict
from rental_analytics.excel.writer import ExcelWriter


MONTH_COLS = [
    ("month", "text", "Month"),
    ("primary_revenue", "currency", "Revenue"),
    ("comparison_revenue", "currency", "Comparison Revenue"),
    ("revenue_var", "variance", "Revenue Var"),
    ("primary_days", "decimal", "Rental Days"),
    ("comparison_days", "decimal", "Comparison Days"),
    ("days_var", "variance", "Days Var"),
    ("primary_rate", "currency", "Rate / Day"),
    ("comparison_rate", "currency", "Comparison Rate"),
    ("rate_var", "variance", "Rate Var"),
    ("primary_count", "number", "Reservations"),
    ("comparison_count", "number", "Comparison Reservations"),
]


def _flat_row(label: str, primary: MetricSet, comparison: MetricSet, variance) -> dict:
    return {
        "month": label,
        "primary_revenue": primary.revenue,
        "comparison_revenue": comparison.revenue,
        "revenue_var": variance.revenue,
        "primary_days": primary.days,
        "comparison_days": comparison.days,
        "days_var": variance.days,
        "primary_rate": primary.rate,
        "comparison_rate": comparison.rate,
        "rate_var": variance.rate,
        "primary_count": primary.count,
        "comparison_count": comparison.count,
    }


def generate_json(
    result: ComparisonResult,
    criteria: ComparisonFilter | None = None,
    primary_label: str = "Primary",
    comparison_label: str | None = None,
) -> dict:
    criteria = criteria or ComparisonFilter()
    return sanitize_for_json({
        "primary_label": primary_label,
        "comparison_label": comparison_label,
        "filters": {
            "station": criteria.station,
            "groups": list(criteria.groups),
            "date_range": criteria.date_range.value,
            "label": criteria.label,
        },
        **result_to_dict(result),
    })


def generate_excel(
    result: ComparisonResult,
    output_path: str | Path,
    criteria: ComparisonFilter | None = None,
    primary_label: str = "Primary",
    comparison_label: str | None = None,
) -> Path:
    criteria = criteria or ComparisonFilter()
    t = result.totals
    vs = f"{primary_label} vs {comparison_label}" if comparison_label else primary_label
    ew = ExcelWriter()

    ws = ew.add_sheet("Comparison")
    ew.write_title(ws, "RENTAL PERFORMANCE",
                   f"{vs}  |  {criteria.label}  |  Generated {pd.Timestamp.now():%B %d, %Y}")

    row = ew.write_section(ws, 4, f"{primary_label} TOTALS")
    row = ew.write_kpi_row(ws, row, [
        (t.primary.revenue, "REVENUE", "currency"),
        (t.primary.days, "RENTAL DAYS", "decimal"),
        (t.primary.rate, "RATE / DAY", "currency"),
        (t.primary.count, "RESERVATIONS", "number"),
    ])

    if comparison_label:
        row = ew.write_section(ws, row, f"VARIANCE vs {comparison_label}")
        row = ew.write_kpi_row(ws, row, [
            (t.variance.revenue, "REVENUE", "variance"),
            (t.variance.days, "RENTAL DAYS", "variance"),
            (t.variance.rate, "RATE / DAY", "variance"),
        ])

    rows = [_flat_row(m.month_name, m.primary, m.comparison, m.variance) for m in result.aligned_months]
    total = _flat_row("TOTAL", t.primary, t.comparison, t.variance)

    ws_months = ew.add_sheet("By Month")
    ew.write_table(
        ws_months, 1, MONTH_COLS, rows, total_row=total,
        highlight_fn=lambda _i, r: None if r["primary_count"] or r["comparison_count"] else "warning",
    )

    return ew.save(output_path)
