from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from src.modules.fees.models import FeeRecord, PaymentStatus
from src.modules.fees.status import progress_status, record_status, resolve_status

TODAY = date(2030, 5, 1)


class TestProgressStatus:
    @pytest.mark.parametrize(
        "paid, total, expected",
        [
            ("0", "5000", PaymentStatus.UNPAID),
            ("0.01", "5000", PaymentStatus.PARTIAL),
            ("4999.99", "5000", PaymentStatus.PARTIAL),
            ("5000", "5000", PaymentStatus.PAID),
            ("0", "0", PaymentStatus.PAID),
        ],
    )
    def test_progress(self, paid, total, expected):
        assert progress_status(Decimal(paid), Decimal(total)) == expected


class TestResolveStatus:
    def test_past_due_unpaid_is_overdue(self):
        status = resolve_status(Decimal("0"), Decimal("5000"), date(2030, 4, 30), TODAY)
        assert status == PaymentStatus.OVERDUE

    def test_past_due_partial_is_overdue(self):
        status = resolve_status(Decimal("100"), Decimal("5000"), date(2030, 4, 30), TODAY)
        assert status == PaymentStatus.OVERDUE

    def test_due_today_is_not_overdue(self):
        status = resolve_status(Decimal("0"), Decimal("5000"), TODAY, TODAY)
        assert status == PaymentStatus.UNPAID

    def test_paid_wins_over_overdue(self):
        status = resolve_status(Decimal("5000"), Decimal("5000"), date(2020, 1, 1), TODAY)
        assert status == PaymentStatus.PAID

    def test_no_due_date(self):
        assert resolve_status(Decimal("0"), Decimal("10"), None, TODAY) == PaymentStatus.UNPAID

    def test_record_status_reads_record_fields(self):
        record = SimpleNamespace(
            amount_paid=Decimal("10"), total_amount=Decimal("50"), due_date=date(2030, 1, 1)
        )
        assert record_status(record, TODAY) == PaymentStatus.OVERDUE


class TestRecalculate:
    def _record(self, **kwargs) -> FeeRecord:
        values = {"amount": Decimal("5000"), "discount": Decimal("0"), "fine": Decimal("0"),
                  "amount_paid": Decimal("0")}
        values.update(kwargs)
        return FeeRecord(**values)

    def test_total_is_amount_minus_discount_plus_fine(self):
        record = self._record(discount=Decimal("500"), fine=Decimal("100.255"))
        record.recalculate()
        assert record.fine == Decimal("100.26")
        assert record.total_amount == Decimal("4600.26")
        assert record.balance_due == Decimal("4600.26")
        assert record.payment_status == "unpaid"

    def test_partial_payment(self):
        record = self._record(amount_paid=Decimal("1000"))
        record.recalculate()
        assert record.balance_due == Decimal("4000.00")
        assert record.payment_status == "partial"
        assert not record.is_settled
        assert not record.can_be_deleted

    def test_fully_paid(self):
        record = self._record(amount_paid=Decimal("5000"))
        record.recalculate()
        assert record.balance_due == Decimal("0.00")
        assert record.payment_status == "paid"
        assert record.is_settled
