"""Pydantic schemas for Fees module."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field, field_validator, model_validator

from src.shared.schemas.base import BaseSchema
from src.modules.fees.models import FeeType, Frequency, PaymentStatus


# --- Fee Structure Schemas ---


class FeeStructureCreate(BaseSchema):
    """Schema for creating a fee structure."""

    name: str = Field(..., min_length=1, max_length=200)
    fee_type: FeeType
    class_id: int
    academic_year: str = Field(..., min_length=1, max_length=20)
    amount: Decimal = Field(..., ge=0)
    due_date: date
    frequency: Frequency = Frequency.ONE_TIME
    description: str | None = None


class FeeStructureUpdate(BaseSchema):
    """Partial update. is_active is changed only through toggle."""

    name: str | None = Field(None, min_length=1, max_length=200)
    fee_type: FeeType | None = None
    class_id: int | None = None
    academic_year: str | None = Field(None, min_length=1, max_length=20)
    amount: Decimal | None = Field(None, ge=0)
    due_date: date | None = None
    frequency: Frequency | None = None
    description: str | None = None

    @field_validator("due_date", "amount", "name", "fee_type", "class_id", "academic_year")
    @classmethod
    def not_cleared(cls, v, info):
        # Required structure fields can be changed but not cleared
        if v is None:
            raise ValueError(f"{info.field_name} cannot be cleared")
        return v


class ComponentAmounts(BaseSchema):
    """Per-component amounts; zero means the component does not apply."""

    tuition: Decimal = Field(Decimal("0"), ge=0)
    exam: Decimal = Field(Decimal("0"), ge=0)
    transport: Decimal = Field(Decimal("0"), ge=0)
    fine: Decimal = Field(Decimal("0"), ge=0)


class FeeStructureComponentsCreate(BaseSchema):
    """One submission producing one structure per non-zero component amount."""

    name: str = Field(..., min_length=1, max_length=150)
    class_id: int
    academic_year: str = Field(..., min_length=1, max_length=20)
    due_date: date
    frequency: Frequency = Frequency.ONE_TIME
    description: str | None = None
    amounts: ComponentAmounts

    @model_validator(mode="after")
    def require_one_component(self):
        if not any(v > 0 for v in self.amounts.model_dump().values()):
            raise ValueError("At least one component amount must be greater than zero")
        return self


class FeeStructureResponse(BaseSchema):
    """Schema for fee structure response."""

    id: int
    name: str
    fee_type: str
    class_id: int
    class_name: str | None = None
    academic_year: str
    amount: Decimal
    due_date: date
    frequency: str
    description: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class FeeStructureFilters(BaseSchema):
    class_id: int | None = None
    academic_year: str | None = None
    fee_type: FeeType | None = None
    is_active: bool | None = None


class AssignRequest(BaseSchema):
    fee_structure_id: int


class AssignResult(BaseSchema):
    """Outcome of expanding a structure onto its class."""

    created: int
    skipped: int
    message: str


# --- Fee Record Schemas ---


class FeeRecordCreate(BaseSchema):
    """Schema for creating a single ad-hoc fee record."""

    student_id: int
    fee_type: FeeType
    description: str | None = None
    academic_year: str = Field(..., min_length=1, max_length=20)
    amount: Decimal = Field(..., ge=0)
    discount: Decimal = Field(Decimal("0"), ge=0)
    fine: Decimal = Field(Decimal("0"), ge=0)
    due_date: date

    @model_validator(mode="after")
    def total_not_negative(self):
        if self.amount - self.discount + self.fine < 0:
            raise ValueError("Discount cannot exceed amount plus fine")
        return self


class FeeRecordBulkCreate(BaseSchema):
    """Same ad-hoc fee for each listed student."""

    student_ids: list[int] = Field(..., min_length=1)
    fee_type: FeeType
    description: str | None = None
    academic_year: str = Field(..., min_length=1, max_length=20)
    amount: Decimal = Field(..., ge=0)
    discount: Decimal = Field(Decimal("0"), ge=0)
    fine: Decimal = Field(Decimal("0"), ge=0)
    due_date: date

    @model_validator(mode="after")
    def total_not_negative(self):
        if self.amount - self.discount + self.fine < 0:
            raise ValueError("Discount cannot exceed amount plus fine")
        return self


class FeeRecordUpdate(BaseSchema):
    """Editable fields of a fee record. Payments are never edited here."""

    description: str | None = None
    amount: Decimal | None = Field(None, ge=0)
    discount: Decimal | None = Field(None, ge=0)
    fine: Decimal | None = Field(None, ge=0)
    due_date: date | None = None


class FeeRecordResponse(BaseSchema):
    """
    Fee record as shown to users.

    payment_status is the display status (overdue overlaid on stored progress).
    """

    id: int
    student_id: int
    student_name: str | None = None
    structure_id: int | None
    fee_type: str
    description: str | None
    academic_year: str
    amount: Decimal
    discount: Decimal
    fine: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    due_date: date
    payment_status: str
    receipt_number: str | None
    created_at: datetime
    updated_at: datetime


class FeeRecordFilters(BaseSchema):
    fee_type: FeeType | None = None
    payment_status: PaymentStatus | None = None
    academic_year: str | None = None
    class_id: int | None = None
    student_id: int | None = None
    search: str | None = None


class CreatedCount(BaseSchema):
    created: int


# --- Aggregation Schemas ---


class OverallSummary(BaseSchema):
    total_amount: Decimal
    total_collected: Decimal
    total_pending: Decimal
    total_discount: Decimal
    total_fine: Decimal
    record_count: int
    paid_count: int
    partial_count: int
    unpaid_count: int
    overdue_count: int
    collection_rate: int


class FeeTypeSummary(BaseSchema):
    fee_type: str
    label: str
    record_count: int
    total_amount: Decimal
    total_collected: Decimal
    total_pending: Decimal


class RecentPayment(BaseSchema):
    id: int
    fee_record_id: int
    student_id: int
    student_name: str | None = None
    amount: Decimal
    payment_method: str
    receipt_number: str
    created_at: datetime


class Defaulter(BaseSchema):
    fee_record_id: int
    student_id: int
    student_name: str | None = None
    fee_type: str
    description: str | None
    due_date: date
    balance_due: Decimal
    days_overdue: int


class AggregateSnapshot(BaseSchema):
    """Cross-record summary. Computed on demand, never persisted."""

    overall: OverallSummary
    by_fee_type: list[FeeTypeSummary]
    recent_payments: list[RecentPayment]
    defaulters: list[Defaulter]
    defaulter_count: int


class AlertGroup(BaseSchema):
    count: int
    total_balance: Decimal
    nearest_due_date: date | None = None


class DueAlerts(BaseSchema):
    """Banner data: overdue records and records due within the window."""

    overdue: AlertGroup
    due_soon: AlertGroup
    window_days: int
