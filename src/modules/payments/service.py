"""Service for Payments module."""

import logging
from datetime import datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.auth.models import User
from src.core.documents.number_generator import DocumentNumberGenerator, DocumentPrefix
from src.core.exceptions import (
    AlreadySettledError,
    AuthorizationError,
    NotFoundError,
    OverpaymentRejectedError,
    ValidationError,
)
from src.modules.fees.models import FeeRecord
from src.modules.payments.models import (
    PaidBy,
    PaymentMethod,
    PaymentRecord,
    PaymentRecordStatus,
)
from src.modules.payments.schemas import PaymentCreate, PaymentFilters
from src.modules.students.models import Student
from src.shared.utils.money import round_money

logger = logging.getLogger(__name__)


class PaymentService:
    """Applies payments to fee records; the only writer of amount_paid."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def pay(
        self,
        fee_record_id: int,
        amount: Decimal,
        method: PaymentMethod,
        transaction_ref: str | None = None,
        remarks: str | None = None,
        paid_by: PaidBy = PaidBy.ADMIN,
        recorded_by_id: int | None = None,
    ) -> PaymentRecord:
        """
        Record a payment against a fee record.

        Checks, in order: the record exists, amount is positive, the record
        still has a balance, the amount does not exceed that balance.
        Overpayments are rejected, never clamped. The fee record row is
        locked for the read-modify-write of amount_paid.
        """
        result = await self.db.execute(
            select(FeeRecord).where(FeeRecord.id == fee_record_id).with_for_update()
        )
        record = result.scalar_one_or_none()
        if not record:
            raise NotFoundError("Fee record", fee_record_id)

        amount = round_money(amount)
        if amount <= 0:
            raise ValidationError("Payment amount must be greater than zero", field="amount")
        if record.is_settled:
            logger.warning("Rejected payment on settled fee record %s", fee_record_id)
            raise AlreadySettledError(fee_record_id)
        if amount > record.balance_due:
            logger.warning(
                "Rejected overpayment of %s on fee record %s (balance %s)",
                amount,
                fee_record_id,
                record.balance_due,
            )
            raise OverpaymentRejectedError(fee_record_id, amount, record.balance_due)

        receipt_number = await DocumentNumberGenerator(self.db).generate(DocumentPrefix.RECEIPT)

        record.amount_paid = round_money(record.amount_paid + amount)
        record.recalculate()
        if not record.receipt_number:
            record.receipt_number = receipt_number

        payment = PaymentRecord(
            fee_record_id=record.id,
            student_id=record.student_id,
            amount=amount,
            payment_method=PaymentMethod(method).value,
            paid_by=PaidBy(paid_by).value,
            transaction_ref=transaction_ref,
            remarks=remarks,
            status=PaymentRecordStatus.SUCCESS.value,
            receipt_number=receipt_number,
            recorded_by_id=recorded_by_id,
        )
        self.db.add(payment)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.PAYMENT_CREATE,
            entity_type="PaymentRecord",
            entity_id=payment.id,
            entity_identifier=receipt_number,
            user_id=recorded_by_id,
            new_values={
                "fee_record_id": record.id,
                "amount": str(amount),
                "payment_method": payment.payment_method,
                "paid_by": payment.paid_by,
                "balance_due": str(record.balance_due),
            },
        )
        await self.db.commit()

        logger.info(
            "Payment %s of %s recorded on fee record %s (%s)",
            receipt_number,
            amount,
            record.id,
            record.payment_status,
        )
        return await self.get_payment(payment.id)

    async def pay_as_parent(
        self, fee_record_id: int, data: PaymentCreate, parent: User
    ) -> PaymentRecord:
        """Self-service payment by a guardian for one of their children."""
        result = await self.db.execute(
            select(Student.parent_user_id)
            .join(FeeRecord, FeeRecord.student_id == Student.id)
            .where(FeeRecord.id == fee_record_id)
        )
        row = result.first()
        if row is None:
            raise NotFoundError("Fee record", fee_record_id)
        if row[0] != parent.id:
            raise AuthorizationError("You can only pay fees of your own children")

        return await self.pay(
            fee_record_id,
            data.amount,
            data.payment_method,
            transaction_ref=data.transaction_ref,
            remarks=data.remarks,
            paid_by=PaidBy.PARENT,
            recorded_by_id=parent.id,
        )

    async def get_payment(self, payment_id: int) -> PaymentRecord:
        """Get payment with fee record and student (with class) loaded."""
        result = await self.db.execute(
            select(PaymentRecord)
            .where(PaymentRecord.id == payment_id)
            .options(
                selectinload(PaymentRecord.student).selectinload(Student.school_class),
                selectinload(PaymentRecord.fee_record)
                .selectinload(FeeRecord.student)
                .selectinload(Student.school_class),
            )
        )
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundError("Payment", payment_id)
        return payment

    async def list_student_payments(self, student_id: int) -> list[PaymentRecord]:
        """Payments of one student, newest first."""
        return await self.list_payments(PaymentFilters(student_id=student_id))

    async def list_payments(self, filters: PaymentFilters) -> list[PaymentRecord]:
        """List payments with filters, newest first."""
        query = select(PaymentRecord).options(selectinload(PaymentRecord.student))

        if filters.student_id:
            query = query.where(PaymentRecord.student_id == filters.student_id)
        if filters.status:
            query = query.where(PaymentRecord.status == filters.status.value)
        if filters.payment_method:
            query = query.where(PaymentRecord.payment_method == filters.payment_method.value)
        if filters.date_from:
            query = query.where(
                PaymentRecord.created_at >= datetime.combine(filters.date_from, time.min)
            )
        if filters.date_to:
            query = query.where(
                PaymentRecord.created_at
                < datetime.combine(filters.date_to + timedelta(days=1), time.min)
            )

        query = query.order_by(PaymentRecord.created_at.desc(), PaymentRecord.id.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_receipt(self, payment_id: int) -> PaymentRecord:
        """Payment with its fee record and student, as printed on a receipt."""
        payment = await self.get_payment(payment_id)
        if payment.status != PaymentRecordStatus.SUCCESS.value:
            raise ValidationError("Receipt is only available for successful payments")
        return payment
