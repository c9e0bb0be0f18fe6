"""Fee bills, receipts and the collection report as documents and exports."""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.models import User
from src.core.config import settings
from src.core.documents.number_generator import DocumentNumberGenerator, DocumentPrefix
from src.core.pdf import (
    BillData,
    Document,
    FeeLine,
    PaymentData,
    ReceiptData,
    ReportData,
    StudentData,
    render,
)
from src.modules.fees.aggregation import summarize
from src.modules.fees.models import FeeRecord
from src.modules.fees.schemas import FeeRecordFilters
from src.modules.fees.service import FeeService
from src.modules.fees.status import record_status
from src.modules.payments.service import PaymentService
from src.modules.reports.excel_export import export_fee_records
from src.modules.students.models import Student
from src.modules.students.service import StudentService

logger = logging.getLogger(__name__)


def fee_line(record: FeeRecord, now: datetime) -> FeeLine:
    """Document row for a fee record, with its display status as of now."""
    student = record.student
    return FeeLine(
        id=record.id,
        fee_type=record.fee_type,
        description=record.description,
        amount=record.amount,
        discount=record.discount,
        fine=record.fine,
        total_amount=record.total_amount,
        amount_paid=record.amount_paid,
        balance_due=record.balance_due,
        due_date=record.due_date,
        status=record_status(record, now.date()).value,
        academic_year=record.academic_year,
        student_name=student.full_name if student else None,
        class_name=student.class_name if student else None,
    )


def student_data(student: Student) -> StudentData:
    return StudentData(
        full_name=student.full_name,
        class_name=student.class_name,
        admission_number=student.admission_number,
        roll_number=student.roll_number,
    )


class FeeDocumentService:
    """Collects fee data and hands it to the document renderer."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.fees = FeeService(db)
        self.students = StudentService(db)

    async def bill(self, student_id: int, user: User, now: datetime | None = None) -> Document:
        """Fee bill for every fee record of a student."""
        now = now or datetime.now()
        student = await self.students.get_student(student_id)
        await self.fees.ensure_can_view_student(user, student)
        records = await self.fees.list_fees(
            FeeRecordFilters(student_id=student_id), today=now.date()
        )

        bill_number = await DocumentNumberGenerator(self.db).generate(
            DocumentPrefix.BILL, now.year
        )
        await self.db.commit()
        logger.info("Issuing bill %s for student %s", bill_number, student_id)
        return render(
            "bill",
            BillData(
                student=student_data(student),
                fees=tuple(fee_line(r, now) for r in records),
                bill_number=bill_number,
                school=settings.school_info,
            ),
            now,
        )

    async def receipt(self, payment_id: int, user: User, now: datetime | None = None) -> Document:
        """Receipt for one successful payment."""
        now = now or datetime.now()
        payment = await PaymentService(self.db).get_receipt(payment_id)
        await self.fees.ensure_can_view_student(user, payment.student)
        return render(
            "receipt",
            ReceiptData(
                student=student_data(payment.student),
                fee=fee_line(payment.fee_record, now),
                payment=PaymentData(
                    amount=payment.amount,
                    payment_method=payment.payment_method,
                    receipt_number=payment.receipt_number,
                    created_at=payment.created_at,
                    transaction_ref=payment.transaction_ref,
                ),
                school=settings.school_info,
            ),
            now,
        )

    async def _lines(self, filters: FeeRecordFilters, now: datetime) -> tuple[list, list[FeeLine]]:
        records = await self.fees.list_fees(filters, today=now.date())
        return records, [fee_line(r, now) for r in records]

    async def report(self, filters: FeeRecordFilters, now: datetime | None = None) -> Document:
        """Collection report; stats cover every matching record, the table is capped."""
        now = now or datetime.now()
        records, lines = await self._lines(filters, now)
        overall = summarize(records, today=now.date()).overall
        return render(
            "report",
            ReportData(
                fees=tuple(lines),
                total_amount=overall.total_amount,
                total_collected=overall.total_collected,
                total_pending=overall.total_pending,
                overdue_count=overall.overdue_count,
                school=settings.school_info,
                max_rows=settings.report_max_rows,
                filters=_filter_labels(filters),
            ),
            now,
        )

    async def export(self, filters: FeeRecordFilters, now: datetime | None = None) -> tuple[bytes, str]:
        """Full, untruncated XLSX export and its file name."""
        now = now or datetime.now()
        _, lines = await self._lines(filters, now)
        content = export_fee_records(lines, f"Fee Records as at {now.strftime('%d/%m/%Y %H:%M')}")
        return content, f"FeeRecords_{now.strftime('%d-%m-%Y')}.xlsx"


def _filter_labels(filters: FeeRecordFilters) -> dict[str, str]:
    labels = {
        "fee_type": "Type",
        "payment_status": "Status",
        "academic_year": "Year",
        "class_id": "Class",
        "student_id": "Student",
        "search": "Search",
    }
    return {
        labels[name]: str(value)
        for name, value in filters.model_dump(exclude_none=True, mode="json").items()
        if name in labels
    }
