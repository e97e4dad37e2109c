"""
Single source of truth for all Excel colors, fonts, fills, borders, alignments.
"""
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

# ---------------------------------------------------------------------------
# Color constants
# ---------------------------------------------------------------------------
DARK_BLUE = "0D47A1"
HEADER_BG = "0D47A1"
ALTERNATE_ROW = "F5F5F5"
WHITE = "FFFFFF"
BLACK = "000000"
GREEN = "2E7D32"
LIGHT_GREEN = "E8F5E9"
RED = "D32F2F"
LIGHT_RED = "FFEBEE"
TOTAL_ROW_BG = "E3F2FD"
GRAY_666 = "666666"

# ---------------------------------------------------------------------------
# Fonts
# ---------------------------------------------------------------------------
TITLE_FONT = Font(name="Calibri", size=24, bold=True, color=DARK_BLUE)
SUBTITLE_FONT = Font(name="Calibri", size=12, italic=True, color=GRAY_666)
HEADER_FONT = Font(name="Calibri", size=11, bold=True, color=WHITE)
DATA_FONT = Font(name="Calibri", size=10, color=BLACK)
TOTAL_FONT = Font(name="Calibri", size=10, bold=True, color=BLACK)
SECTION_FONT = Font(name="Calibri", size=14, bold=True, color=DARK_BLUE)
KPI_VALUE_FONT = Font(name="Calibri", size=28, bold=True, color=DARK_BLUE)
KPI_LABEL_FONT = Font(name="Calibri", size=10, color=GRAY_666)
POSITIVE_FONT = Font(name="Calibri", size=10, color=GREEN)
NEGATIVE_FONT = Font(name="Calibri", size=10, color=RED)
MUTED_FONT = Font(name="Calibri", size=10, italic=True, color=GRAY_666)

# ---------------------------------------------------------------------------
# Fills
# ---------------------------------------------------------------------------
HEADER_FILL = PatternFill(start_color=HEADER_BG, end_color=HEADER_BG, fill_type="solid")
ALTERNATE_FILL = PatternFill(start_color=ALTERNATE_ROW, end_color=ALTERNATE_ROW, fill_type="solid")
TOTAL_FILL = PatternFill(start_color=TOTAL_ROW_BG, end_color=TOTAL_ROW_BG, fill_type="solid")
GREEN_FILL = PatternFill(start_color=LIGHT_GREEN, end_color=LIGHT_GREEN, fill_type="solid")
WARNING_FILL = PatternFill(start_color=LIGHT_RED, end_color=LIGHT_RED, fill_type="solid")

# ---------------------------------------------------------------------------
# Borders
# ---------------------------------------------------------------------------
THIN_BORDER = Border(
    left=Side(style="thin", color="CCCCCC"),
    right=Side(style="thin", color="CCCCCC"),
    top=Side(style="thin", color="CCCCCC"),
    bottom=Side(style="thin", color="CCCCCC"),
)
HEADER_BORDER = Border(
    left=Side(style="thin", color=DARK_BLUE),
    right=Side(style="thin", color=DARK_BLUE),
    top=Side(style="thin", color=DARK_BLUE),
    bottom=Side(style="medium", color=DARK_BLUE),
)
TOTAL_BORDER = Border(
    left=Side(style="thin", color="999999"),
    right=Side(style="thin", color="999999"),
    top=Side(style="medium", color="999999"),
    bottom=Side(style="medium", color="999999"),
)

# ---------------------------------------------------------------------------
# Alignments
# ---------------------------------------------------------------------------
CENTER = Alignment(horizontal="center", vertical="center")
LEFT = Alignment(horizontal="left", vertical="center")
RIGHT = Alignment(horizontal="right", vertical="center")

# ---------------------------------------------------------------------------
# Highlight name → fill mapping
# ---------------------------------------------------------------------------
HIGHLIGHT_FILLS = {
    "green": GREEN_FILL,
    "warning": WARNING_FILL,
}
