"""
Reusable Excel cell/row formatting helpers.
"""
from __future__ import annotations

from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from rental_analytics.excel.styles import (
    HEADER_FONT, HEADER_FILL, HEADER_BORDER,
    DATA_FONT, TOTAL_FONT, MUTED_FONT,
    POSITIVE_FONT, NEGATIVE_FONT,
    THIN_BORDER, TOTAL_BORDER,
    ALTERNATE_FILL, TOTAL_FILL,
    KPI_VALUE_FONT, KPI_LABEL_FONT,
    CENTER, LEFT, RIGHT,
    HIGHLIGHT_FILLS,
)

NUMBER_FORMATS = {
    "currency": '"$"#,##0.00',
    "number": "#,##0",
    "decimal": "#,##0.0",
    "variance": '+0.0%;-0.0%;0.0%',
}


# ---------------------------------------------------------------------------
# Header row
# ---------------------------------------------------------------------------

def format_header_row(ws: Worksheet, row_num: int, num_cols: int) -> None:
    """Apply header styling to an entire row."""
    for col in range(1, num_cols + 1):
        cell = ws.cell(row=row_num, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = CENTER
        cell.border = HEADER_BORDER


# ---------------------------------------------------------------------------
# Data cell
# ---------------------------------------------------------------------------

def format_data_cell(
    ws: Worksheet,
    row_num: int,
    col_num: int,
    value,
    col_type: str = "text",
    is_total: bool = False,
    highlight: str | None = None,
) -> None:
    """Write and format a single data cell.

    "variance" cells hold a fraction (0.2 = +20%); None is written as "n/a".
    """
    cell = ws.cell(row=row_num, column=col_num)
    cell.border = TOTAL_BORDER if is_total else THIN_BORDER
    cell.alignment = LEFT if col_type == "text" else RIGHT

    if col_type == "variance" and value is None:
        cell.value = "n/a"
        cell.font = MUTED_FONT
    else:
        cell.value = value
        cell.font = TOTAL_FONT if is_total else DATA_FONT
        if col_type in NUMBER_FORMATS:
            cell.number_format = NUMBER_FORMATS[col_type]
        if col_type == "variance" and not is_total and value:
            cell.font = POSITIVE_FONT if value > 0 else NEGATIVE_FONT

    if highlight and highlight in HIGHLIGHT_FILLS:
        cell.fill = HIGHLIGHT_FILLS[highlight]
    elif is_total:
        cell.fill = TOTAL_FILL
    elif row_num % 2 == 0:
        cell.fill = ALTERNATE_FILL


# ---------------------------------------------------------------------------
# Auto column width
# ---------------------------------------------------------------------------

def auto_column_width(ws: Worksheet, min_width: int = 10, max_width: int = 40) -> None:
    """Auto-fit column widths based on content length."""
    for column in ws.iter_cols():
        lengths = [len(str(c.value)) for c in column if c.value is not None]
        letter = get_column_letter(column[0].column)
        ws.column_dimensions[letter].width = min(max(max(lengths, default=0) + 2, min_width), max_width)


# ---------------------------------------------------------------------------
# KPI card
# ---------------------------------------------------------------------------

def add_kpi_card(
    ws: Worksheet,
    row: int,
    col: int,
    value,
    label: str,
    format_type: str = "currency",
) -> None:
    """Write a large KPI value + small label below it."""
    value_cell = ws.cell(row=row, column=col)
    label_cell = ws.cell(row=row + 1, column=col)

    if format_type == "variance" and value is None:
        value_cell.value = "n/a"
    else:
        value_cell.value = value
        if format_type == "currency":
            value_cell.number_format = '"$"#,##0'
        elif format_type in NUMBER_FORMATS:
            value_cell.number_format = NUMBER_FORMATS[format_type]
    value_cell.font = KPI_VALUE_FONT
    value_cell.alignment = CENTER

    label_cell.value = label
    label_cell.font = KPI_LABEL_FONT
    label_cell.alignment = CENTER
