"""API endpoints for the class directory."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import get_current_user
from src.core.auth.models import User
from src.core.database.session import get_db
from src.modules.students.schemas import SchoolClassResponse
from src.modules.students.service import StudentService
from src.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/classes", tags=["Classes"])


@router.get("", response_model=ApiResponse[list[SchoolClassResponse]])
async def list_classes(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Classes for fee structure and report filters."""
    classes = await StudentService(db).list_classes()
    return ApiResponse(data=[SchoolClassResponse.model_validate(c) for c in classes])
