#!/usr/bin/env python3
"""
Rental Analytics CLI — ingest spreadsheets, compare years, serve the API.

USAGE:
  python -m rental_analytics.cli ingest rentals_2024.xlsx                 # Parse + summary + hash
  python -m rental_analytics.cli ingest rentals_2024.xlsx --archive       # ...and store the year

  python -m rental_analytics.cli compare 2025 --against 2024              # Stored years
  python -m rental_analytics.cli compare rentals_2025.csv --against 2024 --station "Airport"
  python -m rental_analytics.cli compare 2025 --against 2024 --group SUV --group Compact --range 1-10
  python -m rental_analytics.cli compare 2025 --against 2024 --output comparison.xlsx

  python -m rental_analytics.cli years                                    # Years in the store

  python -m rental_analytics.cli serve                                    # Start API server
  python -m rental_analytics.cli serve --port 8000
"""
from __future__ import annotations

import argparse
import asyncio
import os
from pathlib import Path

from rental_analytics.config import ALL, STORE_FOLDER
from rental_analytics.data.errors import RentalAnalyticsError
from rental_analytics.data.loader import ingest_file
from rental_analytics.data.registry import DatasetRegistry
from rental_analytics.data.remote import FileDatasetStore
from rental_analytics.data.schemas import ComparisonFilter, Dataset, DateRange
from rental_analytics.analytics.comparison import compare


def _fmt_var(value: float | None) -> str:
    return "n/a" if value is None else f"{value * 100:+.1f}%"


async def _resolve(source: str, registry: DatasetRegistry) -> tuple[Dataset, str]:
    """A side of the comparison is either a spreadsheet path or a stored year."""
    path = Path(source)
    if path.exists():
        dataset, content_hash = ingest_file(path)
        registry.add_local(dataset, content_hash)
        return dataset, path.name
    return await registry.load_year(int(source)), source


def cmd_ingest(args):
    """Parse a spreadsheet and optionally archive its year."""
    print("\n" + "=" * 70)
    print("  RENTAL ANALYTICS — INGEST")
    print("=" * 70 + "\n")

    dataset, content_hash = ingest_file(args.file)
    print(f"\n  Year:      {dataset.year}")
    print(f"  Records:   {dataset.total_records:,}")
    print(f"  Stations:  {len(dataset.stations)}  ({', '.join(dataset.stations[:8])}{' …' if len(dataset.stations) > 8 else ''})")
    print(f"  Groups:    {len(dataset.groups)}")
    print(f"  Months:    {', '.join(dataset.months)}")
    print(f"  Hash:      {content_hash}")

    if not args.archive:
        return

    registry = DatasetRegistry(FileDatasetStore(Path(args.store)))
    offer = registry.add_local(dataset, content_hash)
    if offer is None:
        print(f"\n  {dataset.year} is not an archivable year — nothing stored.")
        return
    ack = asyncio.run(registry.archive(offer.year))
    print(f"\n  Archive: {ack.status} (v{ack.version})")


def cmd_compare(args):
    """Print a month-aligned comparison, optionally export it to Excel."""
    for source in filter(None, [args.primary, args.against]):
        if not Path(source).exists() and not source.isdigit():
            raise SystemExit(f"  Not a file or a year: '{source}'")

    criteria = ComparisonFilter(
        station=args.station,
        groups=tuple(args.group) if args.group else (ALL,),
        date_range=DateRange(args.range),
    )

    async def _load():
        # a registry per side: a file for year N must not stand in for stored year N
        store = FileDatasetStore(Path(args.store))
        primary = await _resolve(args.primary, DatasetRegistry(store))
        comparison = await _resolve(args.against, DatasetRegistry(store)) if args.against else (None, None)
        return primary, comparison

    (primary, p_label), (comparison, c_label) = asyncio.run(_load())
    result = compare(primary, comparison, criteria)

    print("\n" + "=" * 70)
    title = f"  {p_label} vs {c_label}" if c_label else f"  {p_label}"
    print(title + f"  |  {criteria.label}")
    print("=" * 70)
    print(f"\n{'Month':<7}{'Revenue':>14}{'Var':>9}{'Days':>10}{'Var':>9}{'Rate':>10}{'Var':>9}{'Res':>7}")
    for m in result.aligned_months:
        p, v = m.primary, m.variance
        if not p.has_data and not m.comparison.has_data:
            print(f"{m.month_name:<7}{'—':>14}")
            continue
        print(f"{m.month_name:<7}${p.revenue:>13,.2f}{_fmt_var(v.revenue):>9}"
              f"{p.days:>10,.0f}{_fmt_var(v.days):>9}"
              f"${p.rate:>9,.2f}{_fmt_var(v.rate):>9}{p.count:>7,}")

    t = result.totals
    print("-" * 75)
    print(f"{'TOTAL':<7}${t.primary.revenue:>13,.2f}{_fmt_var(t.variance.revenue):>9}"
          f"{t.primary.days:>10,.0f}{_fmt_var(t.variance.days):>9}"
          f"${t.primary.rate:>9,.2f}{_fmt_var(t.variance.rate):>9}{t.primary.count:>7,}")

    if args.output:
        from rental_analytics.reports.comparison_report import generate_excel
        out = generate_excel(result, args.output, criteria, p_label, c_label)
        print(f"\nReport saved to: {out}\n")


def cmd_years(args):
    """List years held in the store."""
    store = FileDatasetStore(Path(args.store))
    years = asyncio.run(store.available_years())
    if not years:
        print(f"\n  No stored years in {store.root}\n")
        return
    print(f"\nSTORED YEARS ({len(years)}):\n")
    for y in sorted(years, reverse=True):
        meta = years[y]
        print(f"  {y}  v{meta.get('version', 0):<4}{meta.get('rowCount', 0):>10,} rows   "
              f"{meta.get('lastUpdated', '')}")
    print()


def cmd_serve(args):
    """Start the API server."""
    import uvicorn
    print(f"\nStarting Rental Analytics API on port {args.port}...")
    uvicorn.run("rental_analytics.main:app", host="0.0.0.0", port=args.port, reload=args.reload,
                timeout_keep_alive=65)


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Rental Analytics — rental transaction ingestion and year-over-year comparison",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--store", default=str(STORE_FOLDER), help="Dataset store directory")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    # ingest subcommand
    ingest_parser = subparsers.add_parser("ingest", help="Parse a spreadsheet")
    ingest_parser.add_argument("file", help="Spreadsheet (.xlsx, .xlsm, .csv)")
    ingest_parser.add_argument("--archive", action="store_true", help="Store the year if archivable")
    ingest_parser.set_defaults(func=cmd_ingest)

    # compare subcommand
    compare_parser = subparsers.add_parser("compare", help="Compare two years month by month")
    compare_parser.add_argument("primary", help="Spreadsheet path or stored year")
    compare_parser.add_argument("--against", help="Comparison spreadsheet path or stored year")
    compare_parser.add_argument("--station", default=ALL, help="Station filter (default: All)")
    compare_parser.add_argument("--group", action="append", help="Group filter (repeatable)")
    compare_parser.add_argument("--range", default=DateRange.ALL.value,
                                choices=[d.value for d in DateRange], help="Day-of-month range")
    compare_parser.add_argument("--output", help="Write the comparison to this .xlsx file")
    compare_parser.set_defaults(func=cmd_compare)

    # years subcommand
    years_parser = subparsers.add_parser("years", help="List stored years")
    years_parser.set_defaults(func=cmd_years)

    # serve subcommand
    serve_parser = subparsers.add_parser("serve", help="Start API server")
    serve_parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", "8000")), help="Port (default 8000)")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return

    try:
        args.func(args)
    except RentalAnalyticsError as e:
        raise SystemExit(f"  Error: {e}")


if __name__ == "__main__":
    main()
