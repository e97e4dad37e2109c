"""
Scalar parsers for spreadsheet cells with ambiguous date and number formats.
"""
from __future__ import annotations

import datetime as dt
import re

import numpy as np
import pandas as pd


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

_DMY_RE = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})")
_YEAR_RE = re.compile(r"(?<!\d)\d{4}(?!\d)")
MIN_YEAR = 1900


def parse_date(value) -> dt.date | None:
    """Parse a cell into a calendar date, or None if it can't be read.

    Native dates pass through (time-of-day dropped). Text is tried as
    day/month/year first ("05/03/2024" is 5 March), then handed to pandas,
    which must find an explicit four-digit year of 1900 or later.
    """
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, dt.datetime):
        # also covers pd.Timestamp
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, float) and pd.isna(value):
        return None

    text = str(value).strip()
    if not text:
        return None

    m = _DMY_RE.match(text)
    if m:
        day, month, year = (int(g) for g in m.groups())
        try:
            return dt.date(year, month, day)
        except ValueError:
            return None

    # the fallback must not invent a year (time-only "12:30", bare "March")
    if not _YEAR_RE.search(text):
        return None
    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed) or parsed.year < MIN_YEAR:
        return None
    return parsed.date()


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

_STRIP_RE = re.compile(r"[€$£¥₹a-zA-Z\s]")
_LEADING_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)")


def parse_number(value) -> float:
    """Parse a cell into a number. Unreadable input yields 0, never an error.

    Separator rules for text:
      - any comma present → comma is the decimal point, every dot is a thousands separator
      - one dot followed by exactly 3 digits → thousands separator ("1.200" → 1200)
      - several dots → all thousands separators
      - otherwise a single dot is the decimal point
    Accounting negatives "(42)" → -42.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float, np.integer, np.floating)):
        return 0 if pd.isna(value) else value
    if value is None:
        return 0

    s = str(value).strip()
    if not s:
        return 0

    negative = s.startswith("(") and s.endswith(")")
    if negative:
        s = s[1:-1]
    s = _STRIP_RE.sub("", s)

    if "," in s:
        s = s.replace(".", "").replace(",", ".", 1)
    elif "." in s:
        parts = s.split(".")
        if len(parts) > 2 or len(parts[1]) == 3:
            s = s.replace(".", "")

    m = _LEADING_NUMBER_RE.match(s)
    if not m:
        return 0
    num = float(m.group(0))
    return -num if negative else num
