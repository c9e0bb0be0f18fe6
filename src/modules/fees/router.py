"""API endpoints for Fees module."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import get_current_user, require_roles
from src.core.auth.models import User, UserRole
from src.core.database.session import get_db
from src.modules.fees.models import FeeType, PaymentStatus
from src.modules.fees.schemas import (
    AggregateSnapshot,
    AssignRequest,
    AssignResult,
    CreatedCount,
    DueAlerts,
    FeeRecordBulkCreate,
    FeeRecordCreate,
    FeeRecordFilters,
    FeeRecordResponse,
    FeeRecordUpdate,
    FeeStructureComponentsCreate,
    FeeStructureCreate,
    FeeStructureFilters,
    FeeStructureResponse,
    FeeStructureUpdate,
)
from src.modules.fees.service import FeeService, FeeStructureService, fee_record_response
from src.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/fees", tags=["Fees"])


def student_record_filters(
    fee_type: FeeType | None = Query(None),
    payment_status: PaymentStatus | None = Query(None),
    academic_year: str | None = Query(None),
    class_id: int | None = Query(None),
    search: str | None = Query(None),
) -> FeeRecordFilters:
    """Filters for routes that take the student from the path."""
    return FeeRecordFilters(
        fee_type=fee_type,
        payment_status=payment_status,
        academic_year=academic_year,
        class_id=class_id,
        search=search,
    )


def record_filters(
    student_id: int | None = Query(None),
    filters: FeeRecordFilters = Depends(student_record_filters),
) -> FeeRecordFilters:
    return filters.model_copy(update={"student_id": student_id})


def _responses(records) -> list[FeeRecordResponse]:
    today = date.today()
    return [fee_record_response(r, today) for r in records]


# --- Fee Structure Endpoints ---


@router.post(
    "/structures",
    response_model=ApiResponse[FeeStructureResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_structure(
    data: FeeStructureCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    """Create a fee structure."""
    service = FeeStructureService(db)
    structure = await service.create_structure(data, current_user.id)
    return ApiResponse(
        data=FeeStructureResponse.model_validate(structure),
        message="Fee structure created successfully",
    )


@router.post(
    "/structures/components",
    response_model=ApiResponse[list[FeeStructureResponse]],
    status_code=status.HTTP_201_CREATED,
)
async def create_structure_components(
    data: FeeStructureComponentsCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    """Create one fee structure per non-zero component amount."""
    service = FeeStructureService(db)
    structures = await service.create_structure_components(data, current_user.id)
    return ApiResponse(
        data=[FeeStructureResponse.model_validate(s) for s in structures],
        message=f"{len(structures)} fee structure(s) created successfully",
    )


@router.get(
    "/structures",
    response_model=ApiResponse[list[FeeStructureResponse]],
)
async def list_structures(
    class_id: int | None = Query(None),
    academic_year: str | None = Query(None),
    fee_type: FeeType | None = Query(None),
    is_active: bool | None = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.TEACHER)),
):
    """List fee structures."""
    service = FeeStructureService(db)
    structures = await service.list_structures(
        FeeStructureFilters(
            class_id=class_id,
            academic_year=academic_year,
            fee_type=fee_type,
            is_active=is_active,
        )
    )
    return ApiResponse(data=[FeeStructureResponse.model_validate(s) for s in structures])


@router.put(
    "/structures/{structure_id}",
    response_model=ApiResponse[FeeStructureResponse],
)
async def update_structure(
    structure_id: int,
    data: FeeStructureUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    """Update a fee structure. Existing fee records are not changed."""
    service = FeeStructureService(db)
    structure = await service.update_structure(structure_id, data, current_user.id)
    return ApiResponse(
        data=FeeStructureResponse.model_validate(structure),
        message="Fee structure updated successfully",
    )


@router.delete(
    "/structures/{structure_id}",
    response_model=ApiResponse[None],
)
async def delete_structure(
    structure_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    """Delete a fee structure. Fee records already generated are kept."""
    service = FeeStructureService(db)
    await service.delete_structure(structure_id, current_user.id)
    return ApiResponse(data=None, message="Fee structure deleted successfully")


@router.patch(
    "/structures/{structure_id}/toggle",
    response_model=ApiResponse[FeeStructureResponse],
)
async def toggle_structure(
    structure_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    """Activate or deactivate a fee structure."""
    service = FeeStructureService(db)
    structure = await service.toggle_structure(structure_id, current_user.id)
    state = "activated" if structure.is_active else "deactivated"
    return ApiResponse(
        data=FeeStructureResponse.model_validate(structure),
        message=f"Fee structure {state}",
    )


@router.post(
    "/assign",
    response_model=ApiResponse[AssignResult],
)
async def assign_structure(
    data: AssignRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    """Generate fee records for every enrolled student of the structure's class."""
    service = FeeStructureService(db)
    result = await service.assign(data.fee_structure_id, current_user.id)
    return ApiResponse(data=result, message=result.message)


# --- Fee Record Endpoints ---


@router.post(
    "",
    response_model=ApiResponse[FeeRecordResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_fee(
    data: FeeRecordCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    """Create a single ad-hoc fee record."""
    service = FeeService(db)
    record = await service.create_fee(data, current_user.id)
    return ApiResponse(
        data=fee_record_response(record, date.today()),
        message="Fee created successfully",
    )


@router.post(
    "/bulk",
    response_model=ApiResponse[CreatedCount],
    status_code=status.HTTP_201_CREATED,
)
async def create_bulk(
    data: FeeRecordBulkCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    """Create the same ad-hoc fee for several students."""
    service = FeeService(db)
    records = await service.create_bulk(data, current_user.id)
    return ApiResponse(
        data=CreatedCount(created=len(records)),
        message=f"Fee created for {len(records)} student(s)",
    )


@router.get(
    "",
    response_model=ApiResponse[list[FeeRecordResponse]],
)
async def list_fees(
    filters: FeeRecordFilters = Depends(record_filters),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.TEACHER)),
):
    """List fee records with optional filters."""
    service = FeeService(db)
    records = await service.list_fees(filters)
    return ApiResponse(data=_responses(records))


@router.get(
    "/stats/summary",
    response_model=ApiResponse[AggregateSnapshot],
)
async def get_stats_summary(
    academic_year: str | None = Query(None),
    class_id: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.TEACHER)),
):
    """Collection totals, per fee type breakdown, recent payments and defaulters."""
    service = FeeService(db)
    snapshot = await service.get_summary(academic_year=academic_year, class_id=class_id)
    return ApiResponse(data=snapshot)


@router.get(
    "/my",
    response_model=ApiResponse[list[FeeRecordResponse]],
)
async def get_my_fees(
    filters: FeeRecordFilters = Depends(student_record_filters),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.STUDENT, UserRole.PARENT)),
):
    """Fees of the logged-in student, or of all children of the logged-in parent."""
    service = FeeService(db)
    records = await service.get_my_fees(current_user, filters)
    return ApiResponse(data=_responses(records))


@router.get(
    "/my/alerts",
    response_model=ApiResponse[DueAlerts],
)
async def get_my_alerts(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.STUDENT, UserRole.PARENT)),
):
    """Overdue and soon-due totals for the fee warning banner."""
    service = FeeService(db)
    return ApiResponse(data=await service.get_my_alerts(current_user))


@router.get(
    "/student/{student_id}",
    response_model=ApiResponse[list[FeeRecordResponse]],
)
async def get_student_fees(
    student_id: int,
    filters: FeeRecordFilters = Depends(student_record_filters),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Fee records of one student."""
    service = FeeService(db)
    records = await service.get_student_fees(student_id, current_user, filters)
    return ApiResponse(data=_responses(records))


@router.put(
    "/{fee_id}",
    response_model=ApiResponse[FeeRecordResponse],
)
async def update_fee(
    fee_id: int,
    data: FeeRecordUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    """Update amount, discount, fine, due date or description of a fee record."""
    service = FeeService(db)
    record = await service.update_fee(fee_id, data, current_user.id)
    return ApiResponse(
        data=fee_record_response(record, date.today()),
        message="Fee updated successfully",
    )


@router.delete(
    "/{fee_id}",
    response_model=ApiResponse[None],
)
async def delete_fee(
    fee_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    """Delete a fee record without payments."""
    service = FeeService(db)
    await service.delete_fee(fee_id, current_user.id)
    return ApiResponse(data=None, message="Fee deleted successfully")
