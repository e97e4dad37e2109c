"""CLI smoke tests against a temporary store."""

from __future__ import annotations

import pytest

from rental_analytics.cli import main


def test_ingest_archive_then_compare_stored_year(tmp_path, csv_bytes, capsys) -> None:
    """A file archived by `ingest --archive` can be compared by year afterwards."""
    store = tmp_path / "store"
    source = tmp_path / "rentals_2024.csv"
    source.write_bytes(csv_bytes)
    report = tmp_path / "out" / "comparison.xlsx"

    main(["--store", str(store), "ingest", str(source), "--archive"])
    main(["--store", str(store), "years"])
    main(["--store", str(store), "compare", "2024", "--against", str(source), "--output", str(report)])
    out = capsys.readouterr().out

    assert (
        "Archive: uploaded (v1)" in out
        and "STORED YEARS (1)" in out
        and "2024 vs rentals_2024.csv" in out
        and "TOTAL" in out
        and report.exists()
    )


def test_compare_rejects_unknown_source(tmp_path) -> None:
    with pytest.raises(SystemExit):
        main(["--store", str(tmp_path), "compare", "not-a-year"])


def test_compare_missing_stored_year_exits_with_error(tmp_path) -> None:
    with pytest.raises(SystemExit, match="Failed to download data for 2023"):
        main(["--store", str(tmp_path), "compare", "2023"])


def test_compare_file_against_stored_year_of_same_number(tmp_path, csv_bytes, capsys) -> None:
    """A 2024 file compared against stored 2024 uses the stored data, not itself."""
    store = tmp_path / "store"
    archived = tmp_path / "rentals_2024.csv"
    archived.write_bytes(csv_bytes)
    revised = tmp_path / "revised_2024.csv"
    revised.write_bytes(b"Station,Date,Days,Rental Charge\nAirport,05/01/2024,1,100\n")

    main(["--store", str(store), "ingest", str(archived), "--archive"])
    capsys.readouterr()
    main(["--store", str(store), "compare", str(revised), "--against", "2024"])
    out = capsys.readouterr().out
    total_line = next(line for line in out.splitlines() if line.startswith("TOTAL"))

    assert "revised_2024.csv vs 2024" in out and "-93.7%" in total_line
