"""
Year-over-year comparison — month-aligned metrics, grand totals, variances.

Pure and synchronous: works only on Datasets already in the registry, so it
can be recomputed on every filter change.
"""
from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from rental_analytics.config import MONTH_NAMES
from rental_analytics.data.schemas import (
    AlignedMonth,
    ComparisonFilter,
    ComparisonResult,
    ComparisonTotals,
    Dataset,
    MetricSet,
    VarianceSet,
)
from rental_analytics.analytics.common import pct_change, safe_divide


# ---------------------------------------------------------------------------
# Per-dataset reduction
# ---------------------------------------------------------------------------

def process_year(dataset: Optional[Dataset], criteria: ComparisonFilter | None = None) -> list[MetricSet]:
    """Filter a dataset and reduce it to 12 monthly MetricSets (index 0 = Jan)."""
    months = [MetricSet() for _ in range(12)]
    if dataset is None:
        return months

    criteria = criteria or ComparisonFilter()
    station_key = criteria.station_key
    group_keys = criteria.group_keys
    date_range = criteria.date_range

    for r in dataset.records:
        if station_key is not None and r.station_key != station_key:
            continue
        if group_keys is not None and r.group_key not in group_keys:
            continue
        if not date_range.contains(r.day):
            continue

        m = months[r.date.month - 1]
        m.revenue += r.charge
        m.days += r.days
        m.count += 1
        m.has_data = True

    for m in months:
        m.rate = safe_divide(m.revenue, m.days)
    return months


def grand_total(metrics: list[MetricSet]) -> MetricSet:
    """Sum every month with data; rate is recomputed from the sums."""
    total = MetricSet()
    for m in metrics:
        if not m.has_data:
            continue
        total.revenue += m.revenue
        total.days += m.days
        total.count += m.count
        total.has_data = True
    total.rate = safe_divide(total.revenue, total.days)
    return total


# ---------------------------------------------------------------------------
# Variance
# ---------------------------------------------------------------------------

def calc_variance(
    primary: float,
    comparison: float,
    primary_has_data: bool,
    comparison_has_data: bool,
) -> float | None:
    """Signed fractional change of primary vs comparison, or None if undefined.

    - no comparison data                      → None (no baseline)
    - comparison == 0: 0 vs 0 with data       → 0.0
                       anything else          → None
    - primary has no data                     → None
    - otherwise                               → (primary - comparison) / comparison
    """
    if not comparison_has_data:
        return None
    if comparison == 0:
        if primary_has_data and primary == 0:
            return 0.0
        return None
    if not primary_has_data:
        return None
    return pct_change(primary, comparison)


def variance_for(primary: MetricSet, comparison: MetricSet) -> VarianceSet:
    return VarianceSet(
        revenue=calc_variance(primary.revenue, comparison.revenue, primary.has_data, comparison.has_data),
        days=calc_variance(primary.days, comparison.days, primary.has_data, comparison.has_data),
        rate=calc_variance(primary.rate, comparison.rate, primary.has_data, comparison.has_data),
    )


# ---------------------------------------------------------------------------
# Alignment
# ---------------------------------------------------------------------------

def align_months(primary: list[MetricSet], comparison: list[MetricSet]) -> list[AlignedMonth]:
    return [
        AlignedMonth(
            month_index=i,
            month_name=name,
            primary=primary[i],
            comparison=comparison[i],
            variance=variance_for(primary[i], comparison[i]),
        )
        for i, name in enumerate(MONTH_NAMES)
    ]


def compare(
    primary: Optional[Dataset],
    comparison: Optional[Dataset] = None,
    criteria: ComparisonFilter | None = None,
) -> ComparisonResult:
    """Month-by-month and grand-total comparison of two datasets.

    A missing comparison dataset yields zeroed, has_data=False comparison
    months, so every variance is None.
    """
    p_months = process_year(primary, criteria)
    c_months = process_year(comparison, criteria)

    p_total = grand_total(p_months)
    c_total = grand_total(c_months)

    return ComparisonResult(
        aligned_months=align_months(p_months, c_months),
        totals=ComparisonTotals(
            primary=p_total,
            comparison=c_total,
            variance=variance_for(p_total, c_total),
        ),
    )


def result_to_dict(result: ComparisonResult) -> dict:
    """JSON-ready form; undefined variances stay None (null)."""
    return {
        "aligned_months": [asdict(m) for m in result.aligned_months],
        "totals": asdict(result.totals) if result.totals else None,
    }
