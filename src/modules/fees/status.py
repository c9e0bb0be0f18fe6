"""
Fee record status derivation.

The stored status only tracks payment progress (unpaid -> partial -> paid).
Overdue depends on the current date, so it is computed whenever a status is
displayed, filtered on or counted.
"""

from datetime import date
from decimal import Decimal

from src.modules.fees.models import PaymentStatus


def progress_status(amount_paid: Decimal, total_amount: Decimal) -> PaymentStatus:
    """Stored status from payment progress alone."""
    if amount_paid >= total_amount:
        # Includes the 0/0 record: nothing is owed.
        return PaymentStatus.PAID
    if amount_paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


def resolve_status(
    amount_paid: Decimal,
    total_amount: Decimal,
    due_date: date | None,
    today: date,
) -> PaymentStatus:
    """
    Display status: progress status with the overdue overlay.

    Paid always wins; an unpaid or partial record past its due date is overdue.
    """
    status = progress_status(amount_paid, total_amount)
    if status == PaymentStatus.PAID:
        return status
    if due_date is not None and due_date < today:
        return PaymentStatus.OVERDUE
    return status


def record_status(record, today: date) -> PaymentStatus:
    """resolve_status for anything shaped like a FeeRecord."""
    return resolve_status(record.amount_paid, record.total_amount, record.due_date, today)
