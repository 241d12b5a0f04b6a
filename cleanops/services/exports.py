from __future__ import annotations

from datetime import date, datetime, timezone
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet
from sqlalchemy.orm import Session

from cleanops.schemas import CleaningRecordRead
from cleanops.services.cleaning import list_cleaning_records

CLEANING_HEADERS = [
    "Date",
    "Objective",
    "Sector",
    "Operator",
    "Status",
]

HEADER_FILL = PatternFill(fill_type="solid", fgColor="0B4F73")
ZEBRA_FILL = PatternFill(fill_type="solid", fgColor="F7FBFE")
META_LABEL_FILL = PatternFill(fill_type="solid", fgColor="EAF4F9")

HEADER_FONT = Font(bold=True, color="FFFFFF")
BOLD_FONT = Font(bold=True, color="0F172A")
TITLE_FONT = Font(bold=True, color="0B4F73", size=14)

THIN_SIDE = Side(style="thin", color="D5E2EC")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)


def _to_excel_datetime(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _style_header(ws: Worksheet, row: int) -> None:
    for cell in ws[row]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER


def _auto_width(ws: Worksheet) -> None:
    for column_cells in ws.iter_cols(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column):
        max_len = 0
        col_letter = get_column_letter(column_cells[0].column)
        for cell in column_cells:
            value = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(value))
        ws.column_dimensions[col_letter].width = min(max_len + 2, 45)


def _write_metadata(ws: Worksheet, rows: list[tuple[str, str]]) -> int:
    ws.cell(row=1, column=1, value="Cleaning records").font = TITLE_FONT
    row_idx = 2
    for label, value in rows:
        label_cell = ws.cell(row=row_idx, column=1, value=label)
        label_cell.font = BOLD_FONT
        label_cell.fill = META_LABEL_FILL
        label_cell.border = THIN_BORDER
        ws.cell(row=row_idx, column=2, value=value).border = THIN_BORDER
        row_idx += 1
    return row_idx + 1


def _write_cleaning_rows(ws: Worksheet, *, header_row: int, records: list[CleaningRecordRead]) -> None:
    for col_idx, header in enumerate(CLEANING_HEADERS, start=1):
        ws.cell(row=header_row, column=col_idx, value=header)
    _style_header(ws, header_row)

    for offset, record in enumerate(records, start=1):
        row_idx = header_row + offset
        values = [
            _to_excel_datetime(record.cleaned_at),
            record.objective_name or "-",
            record.sector_name or "-",
            record.operator_name or "-",
            record.status,
        ]
        for col_idx, value in enumerate(values, start=1):
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            cell.border = THIN_BORDER
            if col_idx == 1:
                cell.number_format = "yyyy-mm-dd hh:mm"
            if offset % 2 == 0:
                cell.fill = ZEBRA_FILL

    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)


def build_cleaning_records_xlsx_bytes(
    db: Session,
    *,
    objective_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> bytes:
    records = list_cleaning_records(
        db,
        objective_id=objective_id,
        start_date=start_date,
        end_date=end_date,
    )
    wb = Workbook()
    ws = wb.active
    ws.title = "Cleaning records"

    header_row = _write_metadata(
        ws,
        [
            ("Generated (UTC)", datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M")),
            ("Objective", str(objective_id) if objective_id is not None else "All"),
            ("From", start_date.isoformat() if start_date else "-"),
            ("To", end_date.isoformat() if end_date else "-"),
            ("Records", str(len(records))),
        ],
    )
    _write_cleaning_rows(ws, header_row=header_row, records=records)
    _auto_width(ws)

    stream = BytesIO()
    wb.save(stream)
    return stream.getvalue()
