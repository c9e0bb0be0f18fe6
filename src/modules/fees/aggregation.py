"""
Pure aggregation over fee records.

Nothing here touches the database: callers load the records (and payments)
and pass them in, together with the date used for the overdue view.
"""

from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal

from src.core.pdf.formatting import fee_type_label
from src.modules.fees.models import PaymentStatus
from src.modules.fees.schemas import (
    AggregateSnapshot,
    AlertGroup,
    Defaulter,
    DueAlerts,
    FeeTypeSummary,
    OverallSummary,
    RecentPayment,
)
from src.modules.fees.status import record_status
from src.shared.utils.money import ZERO, percent_of, round_money


def _student_name(obj) -> str | None:
    student = getattr(obj, "student", None)
    if student is not None:
        return student.full_name
    return getattr(obj, "student_name", None)


def summarize(
    records: Sequence,
    *,
    today: date,
    payments: Iterable = (),
    top_n: int = 10,
    recent_limit: int = 5,
) -> AggregateSnapshot:
    """
    Build an AggregateSnapshot from fee records.

    Each record lands in exactly one status bucket using the display status,
    so a paid record is never counted as overdue.
    """
    counts = {status: 0 for status in PaymentStatus}
    total_amount = ZERO
    total_collected = ZERO
    total_discount = ZERO
    total_fine = ZERO
    groups: dict[str, dict] = {}
    overdue = []

    for record in records:
        status = record_status(record, today)
        counts[status] += 1
        total_amount += record.total_amount
        total_collected += record.amount_paid
        total_discount += record.discount
        total_fine += record.fine

        group = groups.setdefault(
            record.fee_type, {"count": 0, "total": ZERO, "collected": ZERO}
        )
        group["count"] += 1
        group["total"] += record.total_amount
        group["collected"] += record.amount_paid

        if status == PaymentStatus.OVERDUE:
            overdue.append(record)

    total_amount = round_money(total_amount)
    total_collected = round_money(total_collected)

    overall = OverallSummary(
        total_amount=total_amount,
        total_collected=total_collected,
        total_pending=round_money(total_amount - total_collected),
        total_discount=round_money(total_discount),
        total_fine=round_money(total_fine),
        record_count=sum(counts.values()),
        paid_count=counts[PaymentStatus.PAID],
        partial_count=counts[PaymentStatus.PARTIAL],
        unpaid_count=counts[PaymentStatus.UNPAID],
        overdue_count=counts[PaymentStatus.OVERDUE],
        collection_rate=percent_of(total_collected, total_amount),
    )

    by_fee_type = [
        FeeTypeSummary(
            fee_type=fee_type,
            label=fee_type_label(fee_type),
            record_count=group["count"],
            total_amount=round_money(group["total"]),
            total_collected=round_money(group["collected"]),
            total_pending=round_money(group["total"] - group["collected"]),
        )
        for fee_type, group in groups.items()
    ]
    by_fee_type.sort(key=lambda g: (-g.total_amount, g.fee_type))

    overdue.sort(key=lambda r: (r.due_date, r.id))
    defaulters = [
        Defaulter(
            fee_record_id=r.id,
            student_id=r.student_id,
            student_name=_student_name(r),
            fee_type=r.fee_type,
            description=r.description,
            due_date=r.due_date,
            balance_due=r.balance_due,
            days_overdue=(today - r.due_date).days,
        )
        for r in overdue[:top_n]
    ]

    recent = sorted(payments, key=lambda p: (p.created_at, p.id), reverse=True)
    recent_payments = [
        RecentPayment(
            id=p.id,
            fee_record_id=p.fee_record_id,
            student_id=p.student_id,
            student_name=_student_name(p),
            amount=p.amount,
            payment_method=p.payment_method,
            receipt_number=p.receipt_number,
            created_at=p.created_at,
        )
        for p in recent[:recent_limit]
    ]

    return AggregateSnapshot(
        overall=overall,
        by_fee_type=by_fee_type,
        recent_payments=recent_payments,
        defaulters=defaulters,
        defaulter_count=len(overdue),
    )


def due_alerts(records: Iterable, *, today: date, window_days: int = 7) -> DueAlerts:
    """Group unpaid records into overdue and due within window_days."""
    overdue: list = []
    due_soon: list = []
    for record in records:
        status = record_status(record, today)
        if status == PaymentStatus.PAID:
            continue
        if status == PaymentStatus.OVERDUE:
            overdue.append(record)
        elif 0 <= (record.due_date - today).days <= window_days:
            due_soon.append(record)

    return DueAlerts(
        overdue=_alert_group(overdue),
        due_soon=_alert_group(due_soon),
        window_days=window_days,
    )


def _alert_group(records: list) -> AlertGroup:
    return AlertGroup(
        count=len(records),
        total_balance=round_money(sum((r.balance_due for r in records), Decimal("0"))),
        nearest_due_date=min((r.due_date for r in records), default=None),
    )
