"""
Rental Analytics — Configuration: paths, constants, column candidates.
"""
import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Paths: override with RENTAL_DATA_DIR env var for cloud deployment
# ---------------------------------------------------------------------------
_data_dir = Path(os.environ.get("RENTAL_DATA_DIR", str(Path.home() / "Rental Analytics")))
BASE_FOLDER = _data_dir
STORE_FOLDER = _data_dir / "store"
REPORTS_FOLDER = _data_dir / "reports"

# ---------------------------------------------------------------------------
# Years that may be forwarded to permanent storage
# ---------------------------------------------------------------------------
ARCHIVABLE_YEARS = frozenset(
    int(y) for y in os.environ.get("RENTAL_ARCHIVE_YEARS", "2023,2024,2025").split(",") if y.strip()
)

# ---------------------------------------------------------------------------
# Accepted spreadsheet types (only the first sheet is read)
# ---------------------------------------------------------------------------
EXCEL_EXTENSIONS = {".xlsx", ".xlsm"}
TEXT_EXTENSIONS = {".csv", ".txt"}
ACCEPTED_EXTENSIONS = EXCEL_EXTENSIONS | TEXT_EXTENSIONS

# ---------------------------------------------------------------------------
# Column detection: logical field → candidate substrings (order matters,
# first match wins). Matched case-insensitively against the header row.
# ---------------------------------------------------------------------------
COLUMN_CANDIDATES = {
    "station": ["station", "check-out station", "checkout station"],
    "date": ["check-out date", "checkout date", "date"],
    "days": ["days", "duration"],
    "charge": ["rental charge", "amount", "charge", "price"],
    "group": ["charged group", "car group", "group", "category"],
}

REQUIRED_FIELDS = ("station", "date", "days", "charge")

DEFAULT_GROUP = "Unknown"

# ---------------------------------------------------------------------------
# Year-mode sanity check
# ---------------------------------------------------------------------------
# Below this many dated records the check is skipped (insufficient signal)
YEAR_MODE_MIN_RECORDS = 10

# ---------------------------------------------------------------------------
# Comparison engine
# ---------------------------------------------------------------------------
MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]

ALL = "All"
