"""API endpoints for Payments module."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import get_current_user, require_roles
from src.core.auth.models import User, UserRole
from src.core.database.session import get_db
from src.modules.fees.service import FeeService, fee_record_response
from src.modules.payments.models import PaidBy, PaymentMethod, PaymentRecordStatus
from src.modules.payments.schemas import (
    PaymentCreate,
    PaymentFilters,
    PaymentResponse,
    ReceiptResponse,
    StudentInfo,
)
from src.modules.payments.service import PaymentService
from src.modules.students.service import StudentService
from src.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/fees", tags=["Payments"])


@router.post(
    "/{fee_id}/pay",
    response_model=ApiResponse[PaymentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def pay_fee(
    fee_id: int,
    data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    """Record a payment at the office."""
    service = PaymentService(db)
    payment = await service.pay(
        fee_id,
        data.amount,
        data.payment_method,
        transaction_ref=data.transaction_ref,
        remarks=data.remarks,
        paid_by=PaidBy.ADMIN,
        recorded_by_id=current_user.id,
    )
    return ApiResponse(
        data=PaymentResponse.model_validate(payment),
        message=f"Payment recorded. Receipt: {payment.receipt_number}",
    )


@router.post(
    "/{fee_id}/parent-pay",
    response_model=ApiResponse[PaymentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def parent_pay_fee(
    fee_id: int,
    data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.PARENT)),
):
    """Self-service payment by a parent for their child's fee."""
    service = PaymentService(db)
    payment = await service.pay_as_parent(fee_id, data, current_user)
    return ApiResponse(
        data=PaymentResponse.model_validate(payment),
        message=f"Payment successful. Receipt: {payment.receipt_number}",
    )


@router.get(
    "/payments/all",
    response_model=ApiResponse[list[PaymentResponse]],
)
async def list_payments(
    student_id: int | None = Query(None),
    status: PaymentRecordStatus | None = Query(None),
    payment_method: PaymentMethod | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    """List all payments with optional filters."""
    service = PaymentService(db)
    payments = await service.list_payments(
        PaymentFilters(
            student_id=student_id,
            status=status,
            payment_method=payment_method,
            date_from=date_from,
            date_to=date_to,
        )
    )
    return ApiResponse(data=[PaymentResponse.model_validate(p) for p in payments])


@router.get(
    "/payments/{student_id}",
    response_model=ApiResponse[list[PaymentResponse]],
)
async def list_student_payments(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Payment history of one student."""
    student = await StudentService(db).get_student(student_id)
    await FeeService(db).ensure_can_view_student(current_user, student)
    payments = await PaymentService(db).list_student_payments(student_id)
    return ApiResponse(data=[PaymentResponse.model_validate(p) for p in payments])


@router.get(
    "/receipt/{payment_id}",
    response_model=ApiResponse[ReceiptResponse],
)
async def get_receipt(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Receipt data: payment, fee record and student."""
    payment = await PaymentService(db).get_receipt(payment_id)
    await FeeService(db).ensure_can_view_student(current_user, payment.student)
    return ApiResponse(
        data=ReceiptResponse(
            payment=PaymentResponse.model_validate(payment),
            fee=fee_record_response(payment.fee_record, date.today()),
            student=StudentInfo.model_validate(payment.student),
        )
    )
