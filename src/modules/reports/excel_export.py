"""Export fee records to Excel (XLSX)."""

from decimal import Decimal
from io import BytesIO
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from src.core.pdf.documents import FeeLine
from src.core.pdf.formatting import COLORS, fee_type_label, format_date, hex_color, status_label
from src.shared.utils.money import sum_money

HEADERS = [
    "#",
    "Student",
    "Class",
    "Fee Type",
    "Description",
    "Academic Year",
    "Amount",
    "Discount",
    "Fine",
    "Total",
    "Paid",
    "Balance",
    "Due Date",
    "Status",
]


def _cell_value(v: Any) -> Any:
    """Convert value for Excel (Decimal -> float, date stays)."""
    if v is None:
        return None
    if isinstance(v, Decimal):
        return float(v)
    return v


def _write_table(ws: Any, rows: list[list[Any]], start_row: int = 1) -> None:
    """Write list of rows to sheet starting at start_row."""
    for i, row in enumerate(rows, start=start_row):
        for j, val in enumerate(row, start=1):
            ws.cell(row=i, column=j, value=_cell_value(val))


def export_fee_records(fees: list[FeeLine], title: str) -> bytes:
    """
    Every fee record, one row each, with a TOTAL row.

    Unlike the PDF report this is never truncated.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = "Fee Records"
    ws.cell(1, 1, title)
    ws.cell(1, 1).font = Font(bold=True, size=12)

    _write_table(ws, [HEADERS], 3)
    header_fill = PatternFill("solid", fgColor=hex_color(COLORS["primary"])[1:])
    for c in range(1, len(HEADERS) + 1):
        ws.cell(3, c).font = Font(bold=True, color="FFFFFF")
        ws.cell(3, c).fill = header_fill

    row = 4
    for index, f in enumerate(fees, start=1):
        _write_table(ws, [[
            index, f.student_name, f.class_name, fee_type_label(f.fee_type), f.description,
            f.academic_year, f.amount, f.discount, f.fine, f.total_amount, f.amount_paid,
            f.balance_due, format_date(f.due_date), status_label(f.status),
        ]], row)
        row += 1

    totals = [
        sum_money(getattr(f, name) for f in fees)
        for name in ("amount", "discount", "fine", "total_amount", "amount_paid", "balance_due")
    ]
    _write_table(ws, [["TOTAL", "", "", "", "", ""] + totals + ["", ""]], row)
    for c in range(1, len(HEADERS) + 1):
        ws.cell(row, c).font = Font(bold=True)

    ws.column_dimensions["B"].width = 28
    ws.column_dimensions["E"].width = 36
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()
