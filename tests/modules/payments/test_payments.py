"""Tests for Payments module."""

import re
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.models import UserRole
from src.core.exceptions import (
    AlreadySettledError,
    NotFoundError,
    OverpaymentRejectedError,
    ValidationError,
)
from src.modules.fees.models import FeeRecord
from src.modules.payments.models import PaidBy, PaymentMethod, PaymentRecord
from src.modules.payments.service import PaymentService
from tests.factories import auth_headers, create_fee_record, create_student, create_user

RECEIPT = re.compile(r"^RCP-\d{4}-\d{6}$")


class TestPaymentService:
    """Tests for PaymentService.pay."""

    async def test_partial_then_full(self, db_session: AsyncSession, school_class):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student, amount="25000")
        service = PaymentService(db_session)

        first = await service.pay(record.id, Decimal("10000"), PaymentMethod.CASH)
        await db_session.refresh(record)
        assert record.amount_paid == Decimal("10000.00")
        assert record.balance_due == Decimal("15000.00")
        assert record.payment_status == "partial"
        assert RECEIPT.match(first.receipt_number)
        assert record.receipt_number == first.receipt_number

        second = await service.pay(record.id, Decimal("15000"), PaymentMethod.UPI, "UPI-889")
        await db_session.refresh(record)
        assert record.amount_paid == Decimal("25000.00")
        assert record.balance_due == Decimal("0.00")
        assert record.payment_status == "paid"
        assert second.receipt_number != first.receipt_number
        # First receipt stays on the record
        assert record.receipt_number == first.receipt_number

    async def test_payments_sum_to_amount_paid(self, db_session: AsyncSession, school_class):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student, amount="1000")
        service = PaymentService(db_session)

        for amount in ("100.10", "200.20", "300.30"):
            await service.pay(record.id, Decimal(amount), PaymentMethod.CASH)

        result = await db_session.execute(
            select(func.sum(PaymentRecord.amount)).where(PaymentRecord.fee_record_id == record.id)
        )
        await db_session.refresh(record)
        assert Decimal(str(result.scalar_one())) == record.amount_paid == Decimal("600.60")
        assert record.balance_due == Decimal("399.40")

    async def test_overpayment_rejected_not_clamped(self, db_session: AsyncSession, school_class):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student, amount="5000", amount_paid="4000")

        with pytest.raises(OverpaymentRejectedError) as exc_info:
            await PaymentService(db_session).pay(record.id, Decimal("1000.01"), PaymentMethod.CASH)

        assert exc_info.value.details["balance_due"] == "1000.00"
        await db_session.refresh(record)
        assert record.amount_paid == Decimal("4000.00")

    async def test_exact_balance_accepted(self, db_session: AsyncSession, school_class):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student, amount="5000", amount_paid="4000")

        await PaymentService(db_session).pay(record.id, Decimal("1000"), PaymentMethod.CARD)

        await db_session.refresh(record)
        assert record.payment_status == "paid"

    async def test_settled_record(self, db_session: AsyncSession, school_class):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student, amount="5000", amount_paid="5000")

        with pytest.raises(AlreadySettledError):
            await PaymentService(db_session).pay(record.id, Decimal("1"), PaymentMethod.CASH)

    @pytest.mark.parametrize("amount", ["0", "-50"])
    async def test_non_positive_amount(self, db_session: AsyncSession, school_class, amount):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student)

        with pytest.raises(ValidationError):
            await PaymentService(db_session).pay(record.id, Decimal(amount), PaymentMethod.CASH)

    async def test_missing_record_checked_first(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await PaymentService(db_session).pay(999, Decimal("-1"), PaymentMethod.CASH)

    async def test_amount_checked_before_settled(self, db_session: AsyncSession, school_class):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student, amount="100", amount_paid="100")

        with pytest.raises(ValidationError):
            await PaymentService(db_session).pay(record.id, Decimal("0"), PaymentMethod.CASH)

    async def test_rejection_writes_nothing(self, db_session: AsyncSession, school_class):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student, amount="100")

        with pytest.raises(OverpaymentRejectedError):
            await PaymentService(db_session).pay(record.id, Decimal("500"), PaymentMethod.CASH)

        result = await db_session.execute(select(func.count(PaymentRecord.id)))
        assert result.scalar_one() == 0


class TestPaymentEndpoints:
    """Tests for payment endpoints."""

    async def test_admin_pay(self, client: AsyncClient, db_session, admin, school_class):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student, amount="25000")

        response = await client.post(
            f"/api/v1/fees/{record.id}/pay",
            json={"amount": "10000", "payment_method": "bank-transfer", "transaction_ref": "NEFT1"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["data"]["paid_by"] == "admin"
        assert body["data"]["student_name"] == "Aarav Sharma"
        assert body["data"]["status"] == "success"
        assert body["message"] == f"Payment recorded. Receipt: {body['data']['receipt_number']}"

    async def test_overpayment_response(self, client: AsyncClient, db_session, admin, school_class):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student, amount="500")

        response = await client.post(
            f"/api/v1/fees/{record.id}/pay",
            json={"amount": "600", "payment_method": "cash"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["errors"][0]["field"] == "amount"
        assert "exceeds balance due" in body["message"]

    async def test_unknown_method(self, client: AsyncClient, db_session, admin, school_class):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student)

        response = await client.post(
            f"/api/v1/fees/{record.id}/pay",
            json={"amount": "10", "payment_method": "barter"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

    async def test_parent_pay_own_child(self, client: AsyncClient, db_session, school_class):
        parent = await create_user(db_session, UserRole.PARENT)
        child = await create_student(db_session, school_class, parent=parent)
        record = await create_fee_record(db_session, child, amount="3000")

        response = await client.post(
            f"/api/v1/fees/{record.id}/parent-pay",
            json={"amount": "3000", "payment_method": "online"},
            headers=auth_headers(parent),
        )

        assert response.status_code == 201
        assert response.json()["data"]["paid_by"] == PaidBy.PARENT.value
        await db_session.refresh(record)
        assert record.payment_status == "paid"

    async def test_parent_cannot_pay_other_child(
        self, client: AsyncClient, db_session, school_class
    ):
        parent = await create_user(db_session, UserRole.PARENT)
        stranger = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, stranger)

        response = await client.post(
            f"/api/v1/fees/{record.id}/parent-pay",
            json={"amount": "10", "payment_method": "online"},
            headers=auth_headers(parent),
        )

        assert response.status_code == 403
        assert (await db_session.get(FeeRecord, record.id)).amount_paid == Decimal("0.00")

    async def test_parent_pay_unknown_fee(self, client: AsyncClient, db_session):
        parent = await create_user(db_session, UserRole.PARENT)
        response = await client.post(
            "/api/v1/fees/999/parent-pay",
            json={"amount": "10", "payment_method": "online"},
            headers=auth_headers(parent),
        )
        assert response.status_code == 404

    async def test_history_and_receipt(self, client: AsyncClient, db_session, admin, school_class):
        parent = await create_user(db_session, UserRole.PARENT)
        child = await create_student(db_session, school_class, parent=parent)
        record = await create_fee_record(db_session, child, amount="3000")
        service = PaymentService(db_session)
        await service.pay(record.id, Decimal("1000"), PaymentMethod.CASH)
        latest = await service.pay(record.id, Decimal("500"), PaymentMethod.CHEQUE)

        response = await client.get(
            f"/api/v1/fees/payments/{child.id}", headers=auth_headers(parent)
        )
        assert response.status_code == 200
        history = response.json()["data"]
        assert len(history) == 2
        assert history[0]["id"] == latest.id

        response = await client.get(
            f"/api/v1/fees/receipt/{latest.id}", headers=auth_headers(parent)
        )
        assert response.status_code == 200
        receipt = response.json()["data"]
        assert receipt["payment"]["receipt_number"] == latest.receipt_number
        assert Decimal(receipt["fee"]["balance_due"]) == Decimal("1500")
        assert receipt["student"]["class_name"] == "10 - A"

    async def test_list_all_by_method(self, client: AsyncClient, db_session, admin, school_class):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student, amount="3000")
        service = PaymentService(db_session)
        await service.pay(record.id, Decimal("1000"), PaymentMethod.CASH)
        await service.pay(record.id, Decimal("500"), PaymentMethod.UPI)

        response = await client.get(
            "/api/v1/fees/payments/all",
            params={"payment_method": "upi"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert [p["payment_method"] for p in response.json()["data"]] == ["upi"]
