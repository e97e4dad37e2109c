"""Rental Analytics — spreadsheet ingestion and year-over-year rental comparisons."""

__version__ = "1.0.0"
