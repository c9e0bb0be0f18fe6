"""Pydantic schemas for Payments module."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field

from src.shared.schemas.base import BaseSchema
from src.modules.fees.schemas import FeeRecordResponse
from src.modules.payments.models import PaymentMethod, PaymentRecordStatus


class PaymentCreate(BaseSchema):
    """
    Schema for paying against a fee record.

    Amount sign is checked by the processor so a non-positive amount is
    reported the same way for staff and parent payments.
    """

    amount: Decimal
    payment_method: PaymentMethod
    transaction_ref: str | None = Field(None, max_length=100)
    remarks: str | None = None


class PaymentResponse(BaseSchema):
    """Schema for payment response."""

    id: int
    fee_record_id: int
    student_id: int
    student_name: str | None = None
    amount: Decimal
    payment_method: str
    paid_by: str
    transaction_ref: str | None
    remarks: str | None
    status: str
    receipt_number: str
    created_at: datetime


class PaymentFilters(BaseSchema):
    """Filters for listing payments."""

    student_id: int | None = None
    status: PaymentRecordStatus | None = None
    payment_method: PaymentMethod | None = None
    date_from: date | None = None
    date_to: date | None = None


class StudentInfo(BaseSchema):
    id: int
    full_name: str
    admission_number: str
    roll_number: str | None = None
    class_name: str | None = None


class ReceiptResponse(BaseSchema):
    """Everything a receipt shows: the payment, its fee record and the student."""

    payment: PaymentResponse
    fee: FeeRecordResponse
    student: StudentInfo
