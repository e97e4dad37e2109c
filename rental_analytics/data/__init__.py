"""Data parsing, normalization, ingestion, and the per-year dataset registry."""
from .parsers import parse_date, parse_number
from .normalize import resolve_columns, normalize_rows, compute_content_hash, dataset_from_payload
from .loader import ingest, ingest_bytes, ingest_file
from .registry import DatasetRegistry, verify_year_mode
from .remote import FileDatasetStore, RemoteDatasetStore
from .schemas import Dataset, RentalRecord, ComparisonFilter, DateRange
