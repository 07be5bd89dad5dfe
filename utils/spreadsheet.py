import logging
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from utils.export_utils import ExportTable

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

PRESENT_FILL = PatternFill(start_color="D1FAE5", end_color="D1FAE5", fill_type="solid")
ABSENT_FILL = PatternFill(start_color="FEE2E2", end_color="FEE2E2", fill_type="solid")


def _column_width(values) -> int:
    longest = max((len(str(v)) for v in values if v is not None), default=8)
    return min(max(longest + 2, 8), 40)


def _keep_text(cells) -> None:
    # openpyxl stores any string starting with "=" as a formula
    for cell in cells:
        if isinstance(cell.value, str) and cell.value.startswith("="):
            cell.data_type = "s"


def write_workbook(table: ExportTable, sheet_title: str = None) -> BytesIO:
    """Render an ExportTable into an in-memory .xlsx stream (cursor at 0)."""
    wb = Workbook()
    ws = wb.active
    # Excel caps sheet titles at 31 characters
    ws.title = (sheet_title or table.title or "Sheet")[:31]

    ws.append(table.columns)
    _keep_text(ws[1])
    for cell in ws[1]:
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal="center")

    for row_idx, row in enumerate(table.rows):
        ws.append(row)
        _keep_text(ws[row_idx + 2])
        if table.cell_flags is None:
            continue
        for col_idx, flag in enumerate(table.cell_flags[row_idx]):
            if flag is None:
                continue
            cell = ws.cell(row=row_idx + 2, column=col_idx + 1)
            cell.fill = PRESENT_FILL if flag else ABSENT_FILL
            cell.alignment = Alignment(horizontal="center")

    for col_idx, header in enumerate(table.columns, start=1):
        values = [header] + [row[col_idx - 1] for row in table.rows if len(row) >= col_idx]
        ws.column_dimensions[get_column_letter(col_idx)].width = _column_width(values)

    stream = BytesIO()
    wb.save(stream)
    stream.seek(0)
    logger.info(f"Workbook '{ws.title}' written with {len(table.rows)} rows")
    return stream
