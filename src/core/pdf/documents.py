"""
Fee bill, payment receipt and fee report layouts.

Builders are pure: they read the payload and a frozen "now" and return a
Document. Statuses arrive already resolved (overdue overlay applied) so the
documents show exactly what the API shows.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from src.core.exceptions import DocumentGenerationError
from src.core.pdf.formatting import (
    COLORS,
    fee_type_color,
    fee_type_label,
    format_currency,
    format_date,
    format_datetime,
    status_label,
    status_pill_colors,
    tint,
)
from src.core.pdf.layout import (
    AmountBox,
    Block,
    Card,
    CardsBlock,
    Column,
    Document,
    Footer,
    HeaderBand,
    InfoBlock,
    InfoItem,
    LayoutEngine,
    SectionTitle,
    SignatureBlock,
    Spacer,
    StatsBand,
    TableBlock,
    TableCell,
    TextLines,
    TitleBlock,
)

logger = logging.getLogger(__name__)

BILL_FOOTER = "This is a computer-generated document. No signature required."
RECEIPT_FOOTER = "This is an official receipt. Contact school for any queries."
REPORT_FOOTER = "Confidential - For internal use only."

PAYMENT_INSTRUCTIONS = [
    "- Please pay before the due date to avoid late fees.",
    "- Modes: Cash, UPI, Card, Net Banking.",
    "- Keep this invoice for reference.",
    "- For discrepancies, contact the school office.",
]


@dataclass(frozen=True)
class StudentData:
    full_name: str
    class_name: str | None = None
    admission_number: str | None = None
    roll_number: str | None = None


@dataclass(frozen=True)
class FeeLine:
    """One fee record as it appears on a document."""

    id: int
    fee_type: str
    description: str | None
    amount: Decimal
    discount: Decimal
    fine: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    due_date: date
    status: str
    academic_year: str | None = None
    student_name: str | None = None
    class_name: str | None = None


@dataclass(frozen=True)
class BillData:
    student: StudentData
    fees: tuple[FeeLine, ...]
    bill_number: str
    school: dict[str, str]


@dataclass(frozen=True)
class PaymentData:
    amount: Decimal
    payment_method: str
    receipt_number: str
    created_at: datetime
    transaction_ref: str | None = None


@dataclass(frozen=True)
class ReceiptData:
    student: StudentData
    fee: FeeLine
    payment: PaymentData
    school: dict[str, str]


@dataclass(frozen=True)
class ReportData:
    fees: tuple[FeeLine, ...]
    total_amount: Decimal
    total_collected: Decimal
    total_pending: Decimal
    overdue_count: int
    school: dict[str, str]
    max_rows: int = 100
    filters: dict[str, str] = field(default_factory=dict)


def _safe_name(name: str) -> str:
    return re.sub(r"\s+", "_", name.strip())


def _require(value, what: str):
    if value in (None, ""):
        raise DocumentGenerationError(f"Failed to generate PDF: missing {what}")
    return value


def _class_text(name: str | None) -> str:
    return name or "N/A"


def sort_fee_lines(fees) -> list[FeeLine]:
    """Stable bill order: fee type, then due date, then id."""
    return sorted(fees, key=lambda f: (f.fee_type or "", f.due_date, f.id))


def _layout(
    kind: str,
    title: str,
    badge: str,
    number: str,
    file_name: str,
    orientation: str,
    school: dict[str, str],
    note: str,
    now: datetime,
    blocks: list[Block],
) -> Document:
    engine = LayoutEngine(
        orientation=orientation,
        header=HeaderBand(school=school, badge=badge, number=number),
        footer=Footer(note=note, generated=format_datetime(now)),
    )
    return Document(
        kind=kind,
        title=title,
        number=number,
        file_name=file_name,
        orientation=orientation,
        pages=tuple(engine.layout(blocks)),
    )


# --- Fee bill ---


def build_fee_bill(data: BillData, now: datetime) -> Document:
    student_name = _require(data.student.full_name, "student name")
    bill_number = _require(data.bill_number, "bill number")
    fees = sort_fee_lines(data.fees)

    total = sum((f.total_amount for f in fees), Decimal("0"))
    paid = sum((f.amount_paid for f in fees), Decimal("0"))
    balance = sum((f.balance_due for f in fees), Decimal("0"))

    outstanding = [f.due_date for f in fees if f.balance_due > 0]
    due_date = min(outstanding or [f.due_date for f in fees], default=None)
    academic_year = fees[0].academic_year if fees else None

    blocks: list[Block] = [
        TitleBlock("Fee Bill / Invoice", f"Generated: {format_date(now)}"),
        InfoBlock(
            left=[
                InfoItem("Student", student_name),
                InfoItem("Class", _class_text(data.student.class_name)),
                InfoItem("Admission No.", data.student.admission_number or "N/A"),
                InfoItem("Roll No.", data.student.roll_number or "N/A"),
            ],
            right=[
                InfoItem("Academic Year", academic_year or "N/A"),
                InfoItem("Bill No.", bill_number, highlight=True),
                InfoItem("Bill Date", format_date(now)),
                InfoItem("Due Date", format_date(due_date)),
            ],
        ),
        CardsBlock(
            [
                Card("Total", format_currency(total), COLORS["light"], COLORS["dark"]),
                Card("Paid", format_currency(paid), COLORS["paid_card"], COLORS["success"]),
                Card(
                    "Balance",
                    format_currency(balance),
                    COLORS["balance_card"] if balance > 0 else COLORS["paid_card"],
                    COLORS["danger"] if balance > 0 else COLORS["success"],
                ),
            ]
        ),
    ]

    if len(fees) > 1:
        type_totals: dict[str, Decimal] = {}
        for f in fees:
            type_totals[f.fee_type] = type_totals.get(f.fee_type, Decimal("0")) + f.total_amount
        summary_rows = sorted(type_totals.items(), key=lambda kv: (-kv[1], kv[0]))
        blocks += [
            SectionTitle("Fee Type Summary"),
            TableBlock(
                columns=[Column("Fee Type", 70), Column("Total", align="right")],
                rows=[[fee_type_label(t), format_currency(v)] for t, v in summary_rows],
                font_size=9,
                header_fill=COLORS["dark"],
                width=110,
            ),
        ]

    component_rows = []
    for index, f in enumerate(fees, start=1):
        status_fill, status_text = status_pill_colors(f.status)
        component_rows.append(
            [
                str(index),
                TableCell(fee_type_label(f.fee_type), fill=tint(fee_type_color(f.fee_type))),
                f.description or "-",
                format_currency(f.amount),
                f"-{format_currency(f.discount)}" if f.discount > 0 else "-",
                f"+{format_currency(f.fine)}" if f.fine > 0 else "-",
                format_currency(f.total_amount),
                format_date(f.due_date),
                TableCell(status_label(f.status), fill=status_fill, color=status_text),
            ]
        )
    blocks += [
        SectionTitle("Fee Components"),
        TableBlock(
            columns=[
                Column("#", 8, align="center"),
                Column("Type", 28),
                Column("Description", 78),
                Column("Amount", align="right"),
                Column("Discount", align="right"),
                Column("Late Fine", align="right"),
                Column("Total", align="right", bold=True),
                Column("Due", 20, align="center"),
                Column("Status", 22, align="center", bold=True),
            ],
            rows=component_rows,
        ),
    ]

    if balance > 0:
        blocks += [
            SectionTitle("Payment Instructions", COLORS["warning"]),
            TextLines(PAYMENT_INSTRUCTIONS),
        ]

    return _layout(
        kind="bill",
        title="Fee Bill",
        badge="FEE BILL",
        number=bill_number,
        file_name=f"FeeBill_{_safe_name(student_name)}_{bill_number}.pdf",
        orientation="landscape",
        school=data.school,
        note=BILL_FOOTER,
        now=now,
        blocks=blocks,
    )


# --- Payment receipt ---


def build_receipt(data: ReceiptData, now: datetime) -> Document:
    student_name = _require(data.student.full_name, "student name")
    payment = data.payment
    fee = data.fee
    receipt_number = _require(payment.receipt_number, "receipt number")
    _require(payment.amount, "payment amount")

    blocks: list[Block] = [
        TitleBlock("Payment Receipt", "Payment Confirmed", COLORS["success"]),
        InfoBlock(
            left=[
                InfoItem("Student Name", student_name),
                InfoItem("Class", _class_text(data.student.class_name)),
                InfoItem("Admission No.", data.student.admission_number or "N/A"),
                InfoItem("Academic Year", fee.academic_year or "N/A"),
            ],
            right=[
                InfoItem("Receipt No.", receipt_number, highlight=True),
                InfoItem("Payment Date", format_date(payment.created_at)),
                InfoItem("Payment Method", payment.payment_method.upper()),
                InfoItem("Transaction ID", payment.transaction_ref or "-"),
            ],
        ),
        SectionTitle("Payment Details", COLORS["success"]),
        TableBlock(
            columns=[
                Column("Fee Component"),
                Column("Fee Type"),
                Column("Total Amount", align="right"),
                Column("Amount Paid", align="right", bold=True),
                Column("Balance", align="right"),
            ],
            rows=[
                [
                    fee.description or fee_type_label(fee.fee_type),
                    fee_type_label(fee.fee_type),
                    format_currency(fee.total_amount),
                    format_currency(payment.amount),
                    format_currency(fee.balance_due),
                ]
            ],
            font_size=9,
            header_fill=COLORS["success"],
            stripe=None,
        ),
        AmountBox("Amount Paid", format_currency(payment.amount)),
    ]

    if fee.balance_due > 0:
        blocks.append(
            TextLines(
                [
                    f"Remaining Balance: {format_currency(fee.balance_due)} - "
                    f"Please pay by {format_date(fee.due_date, empty='due date')}"
                ],
                size=9,
                color=COLORS["warning"],
            )
        )

    blocks += [
        Spacer(4),
        TextLines(["Thank you for your payment!"], size=11, color=COLORS["dark"], bold=True, step=6),
        TextLines(["This receipt is proof of payment. Please retain it for your records."]),
        SignatureBlock("Authorized Signatory", "Principal / Finance Office"),
    ]

    return _layout(
        kind="receipt",
        title="Payment Receipt",
        badge="RECEIPT",
        number=receipt_number,
        file_name=f"Receipt_{_safe_name(student_name)}_{receipt_number}.pdf",
        orientation="portrait",
        school=data.school,
        note=RECEIPT_FOOTER,
        now=now,
        blocks=blocks,
    )


# --- Fee report ---


def build_fee_report(data: ReportData, now: datetime) -> Document:
    shown = data.fees[: data.max_rows]
    rows = [
        [
            str(index),
            f.student_name or "Student",
            f.class_name or "-",
            fee_type_label(f.fee_type),
            format_currency(f.total_amount),
            format_currency(f.amount_paid),
            format_currency(f.balance_due),
            format_date(f.due_date),
            status_label(f.status),
        ]
        for index, f in enumerate(shown, start=1)
    ]

    subtitle = f"Generated: {format_datetime(now)}"
    if data.filters:
        subtitle += " | " + ", ".join(f"{k}: {v}" for k, v in sorted(data.filters.items()))

    blocks: list[Block] = [
        TitleBlock("Fee Collection Report", subtitle),
        StatsBand(
            [
                ("Total Generated", format_currency(data.total_amount), COLORS["primary"]),
                ("Total Collected", format_currency(data.total_collected), COLORS["success"]),
                ("Pending", format_currency(data.total_pending), COLORS["warning"]),
                ("Overdue Count", str(data.overdue_count), COLORS["danger"]),
            ]
        ),
        TableBlock(
            columns=[
                Column("#", 8, align="center"),
                Column("Student"),
                Column("Class"),
                Column("Type"),
                Column("Total", align="right"),
                Column("Paid", align="right"),
                Column("Balance", align="right"),
                Column("Due Date", align="center"),
                Column("Status", align="center"),
            ],
            rows=rows,
            font_size=7.5,
        ),
    ]

    if len(data.fees) > len(shown):
        blocks.append(
            TextLines(
                [
                    f"Showing the first {len(shown)} of {len(data.fees)} records. "
                    "Totals above include all records; use the Excel export for the full list."
                ],
                size=8.5,
                color=COLORS["warning"],
                bold=True,
            )
        )

    stamp = now.strftime("%d%m%Y")
    return _layout(
        kind="report",
        title="Fee Collection Report",
        badge="FEE REPORT",
        number=f"RPT-{stamp}",
        file_name=f"FeeReport_{now.strftime('%d-%m-%Y')}.pdf",
        orientation="landscape",
        school=data.school,
        note=REPORT_FOOTER,
        now=now,
        blocks=blocks,
    )


BUILDERS = {
    "bill": build_fee_bill,
    "receipt": build_receipt,
    "report": build_fee_report,
}


def render(kind: str, payload, now: datetime) -> Document:
    """
    Lay out a bill, receipt or report.

    Missing or malformed payload data raises DocumentGenerationError; nothing
    here has side effects, so a failed render can simply be retried.
    """
    builder = BUILDERS.get(kind)
    if builder is None:
        raise DocumentGenerationError(f"Unknown document kind: {kind}")
    try:
        return builder(payload, now)
    except DocumentGenerationError:
        raise
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.exception("Failed to lay out %s document", kind)
        raise DocumentGenerationError() from e
