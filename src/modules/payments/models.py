"""PaymentRecord model."""

from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    ForeignKey,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel, BigIntPK


class PaymentMethod(StrEnum):
    """Payment method options."""

    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank-transfer"
    ONLINE = "online"
    CHEQUE = "cheque"
    UPI = "upi"
    WALLET = "wallet"


class PaidBy(StrEnum):
    """Who recorded the payment: staff at the office or a parent self-service."""

    ADMIN = "admin"
    PARENT = "parent"


class PaymentRecordStatus(StrEnum):
    """Payment record status options."""

    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"


class PaymentRecord(BaseModel):
    """
    One payment applied to a fee record.

    Immutable once written: corrections are new records, never edits.
    Sum of successful amounts for a fee record equals its amount_paid.
    """

    __tablename__ = "fee_payments"

    fee_record_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("fee_records.id"), nullable=False, index=True
    )
    student_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("students.id"), nullable=False, index=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    paid_by: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaidBy.ADMIN.value
    )
    transaction_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentRecordStatus.SUCCESS.value, index=True
    )
    receipt_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )

    recorded_by_id: Mapped[int | None] = mapped_column(
        BigIntPK, ForeignKey("users.id"), nullable=True
    )

    # Relationships
    fee_record: Mapped["FeeRecord"] = relationship("FeeRecord", back_populates="payments")
    student: Mapped["Student"] = relationship("Student")

    @property
    def student_name(self) -> str | None:
        return self.student.full_name if self.student else None
