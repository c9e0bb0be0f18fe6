"""API endpoints for fee documents: bills, receipts and reports."""

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import get_current_user, require_roles
from src.core.auth.models import User, UserRole
from src.core.database.session import get_db
from src.core.pdf import Document, pdf_service
from src.modules.fees.router import record_filters
from src.modules.fees.schemas import FeeRecordFilters
from src.modules.reports.service import FeeDocumentService

router = APIRouter(prefix="/fees", tags=["Reports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _pdf_response(document: Document) -> Response:
    pdf_bytes = pdf_service.render_pdf(document)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{document.file_name}"'},
    )


@router.get("/student/{student_id}/bill/pdf")
async def download_bill_pdf(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Fee bill for a student (landscape A4).

    Every download is a new bill: a fresh BILL number is taken from the
    document sequence and committed, so re-downloads never reuse a number.
    """
    document = await FeeDocumentService(db).bill(student_id, current_user)
    return _pdf_response(document)


@router.get("/receipt/{payment_id}/pdf")
async def download_receipt_pdf(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Receipt for a successful payment (portrait A4)."""
    document = await FeeDocumentService(db).receipt(payment_id, current_user)
    return _pdf_response(document)


@router.get("/report/pdf")
async def download_report_pdf(
    filters: FeeRecordFilters = Depends(record_filters),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    """Fee collection report (landscape A4, table capped at report_max_rows)."""
    document = await FeeDocumentService(db).report(filters)
    return _pdf_response(document)


@router.get("/report/export")
async def export_report(
    filters: FeeRecordFilters = Depends(record_filters),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    """All matching fee records as an Excel workbook."""
    content, file_name = await FeeDocumentService(db).export(filters)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )
