"""FeeStructure and FeeRecord models."""

from datetime import date
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel, BigIntPK
from src.shared.utils.money import round_money


class FeeType(StrEnum):
    """Fee type enumeration."""

    TUITION = "tuition"
    EXAM = "exam"
    TRANSPORT = "transport"
    FINE = "fine"
    LIBRARY = "library"
    LAB = "lab"
    ADMISSION = "admission"
    SPORTS = "sports"
    OTHER = "other"


class Frequency(StrEnum):
    """How often a fee structure recurs."""

    ONE_TIME = "one-time"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class PaymentStatus(StrEnum):
    """
    Fee record payment status.

    UNPAID/PARTIAL/PAID are stored; OVERDUE is only ever a read-time view
    (see src.modules.fees.status.resolve_status).
    """

    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"


class FeeStructure(BaseModel):
    """Reusable fee template expanded onto the students of a class."""

    __tablename__ = "fee_structures"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    fee_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    class_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("school_classes.id"), nullable=False, index=True
    )
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    frequency: Mapped[str] = mapped_column(
        String(20), nullable=False, default=Frequency.ONE_TIME.value
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    school_class: Mapped["SchoolClass"] = relationship("SchoolClass")

    @property
    def class_name(self) -> str | None:
        return self.school_class.display_name if self.school_class else None


class FeeRecord(BaseModel):
    """Per-student fee obligation with payment progress."""

    __tablename__ = "fee_records"

    student_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("students.id"), nullable=False, index=True
    )
    # NULL for ad-hoc records and for records whose structure was deleted
    structure_id: Mapped[int | None] = mapped_column(
        BigIntPK, ForeignKey("fee_structures.id", ondelete="SET NULL"), nullable=True, index=True
    )

    fee_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Amounts (Decimal with 2 decimal places)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    discount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    fine: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    amount_paid: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    balance_due: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )

    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.UNPAID.value, index=True
    )  # unpaid | partial | paid
    receipt_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Relationships
    student: Mapped["Student"] = relationship("Student")
    structure: Mapped["FeeStructure | None"] = relationship("FeeStructure")
    payments: Mapped[list["PaymentRecord"]] = relationship(
        "PaymentRecord", back_populates="fee_record", order_by="PaymentRecord.id"
    )

    def recalculate(self) -> None:
        """
        Recompute total_amount, balance_due and the stored progress status.

        Called after any change to amount, discount, fine or amount_paid.
        """
        from src.modules.fees.status import progress_status

        self.amount = round_money(self.amount or 0)
        self.discount = round_money(self.discount or 0)
        self.fine = round_money(self.fine or 0)
        self.amount_paid = round_money(self.amount_paid or 0)
        self.total_amount = round_money(self.amount - self.discount + self.fine)
        self.balance_due = round_money(self.total_amount - self.amount_paid)
        self.payment_status = progress_status(self.amount_paid, self.total_amount).value

    @property
    def is_settled(self) -> bool:
        return self.balance_due <= Decimal("0.00")

    @property
    def can_be_deleted(self) -> bool:
        """Only records without any payment can be deleted."""
        return (self.amount_paid or Decimal("0.00")) == Decimal("0.00")

    @property
    def student_name(self) -> str | None:
        return self.student.full_name if self.student else None
