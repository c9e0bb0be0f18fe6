"""Service for Fees module: structure catalog, assignment and fee records."""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.auth.models import User, UserRole
from src.core.config import settings
from src.core.exceptions import (
    AuthorizationError,
    InactiveStructureError,
    NotFoundError,
    ValidationError,
)
from src.core.pdf.formatting import fee_type_label
from src.modules.fees.aggregation import due_alerts, summarize
from src.modules.fees.models import FeeRecord, FeeStructure, FeeType, PaymentStatus
from src.modules.fees.schemas import (
    AggregateSnapshot,
    AssignResult,
    DueAlerts,
    FeeRecordBulkCreate,
    FeeRecordCreate,
    FeeRecordFilters,
    FeeRecordResponse,
    FeeRecordUpdate,
    FeeStructureComponentsCreate,
    FeeStructureCreate,
    FeeStructureFilters,
    FeeStructureUpdate,
)
from src.modules.fees.status import record_status
from src.modules.payments.models import PaymentRecord, PaymentRecordStatus
from src.modules.students.models import Student
from src.modules.students.service import StudentService
from src.shared.utils.money import round_money

logger = logging.getLogger(__name__)

# Components accepted by the multi-component form, in display order
STRUCTURE_COMPONENTS = (FeeType.TUITION, FeeType.EXAM, FeeType.TRANSPORT, FeeType.FINE)


def fee_record_response(record: FeeRecord, today: date) -> FeeRecordResponse:
    """Serialize a fee record with its display status."""
    response = FeeRecordResponse.model_validate(record)
    return response.model_copy(
        update={"payment_status": record_status(record, today).value}
    )


class FeeStructureService:
    """Fee structure catalog and the assignment engine."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)
        self.students = StudentService(db)

    async def get_structure(self, structure_id: int) -> FeeStructure:
        result = await self.db.execute(
            select(FeeStructure)
            .where(FeeStructure.id == structure_id)
            .options(selectinload(FeeStructure.school_class))
        )
        structure = result.scalar_one_or_none()
        if not structure:
            raise NotFoundError("Fee structure", structure_id)
        return structure

    async def list_structures(self, filters: FeeStructureFilters) -> list[FeeStructure]:
        query = select(FeeStructure).options(selectinload(FeeStructure.school_class))

        if filters.class_id:
            query = query.where(FeeStructure.class_id == filters.class_id)
        if filters.academic_year:
            query = query.where(FeeStructure.academic_year == filters.academic_year)
        if filters.fee_type:
            query = query.where(FeeStructure.fee_type == filters.fee_type.value)
        if filters.is_active is not None:
            query = query.where(FeeStructure.is_active.is_(filters.is_active))

        query = query.order_by(FeeStructure.due_date, FeeStructure.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_structure(
        self, data: FeeStructureCreate, created_by_id: int | None = None
    ) -> FeeStructure:
        """Create a single fee structure."""
        structure = await self._add_structure(
            name=data.name,
            fee_type=data.fee_type,
            amount=data.amount,
            data=data,
            created_by_id=created_by_id,
        )
        await self.db.commit()
        logger.info("Fee structure %s created (%s)", structure.id, structure.name)
        return await self.get_structure(structure.id)

    async def create_structure_components(
        self, data: FeeStructureComponentsCreate, created_by_id: int | None = None
    ) -> list[FeeStructure]:
        """
        Create one structure per non-zero component amount.

        Each is named "<base name> - <component label>". Zero amounts mean the
        component does not apply and are skipped. All-or-nothing.
        """
        created: list[FeeStructure] = []
        for component in STRUCTURE_COMPONENTS:
            amount = getattr(data.amounts, component.value)
            if amount <= 0:
                continue
            created.append(
                await self._add_structure(
                    name=f"{data.name} - {fee_type_label(component)}",
                    fee_type=component,
                    amount=amount,
                    data=data,
                    created_by_id=created_by_id,
                )
            )

        await self.db.commit()
        logger.info(
            "Created %d fee structures from components of %r", len(created), data.name
        )
        return [await self.get_structure(s.id) for s in created]

    async def _add_structure(
        self,
        name: str,
        fee_type: FeeType,
        amount: Decimal,
        data: FeeStructureCreate | FeeStructureComponentsCreate,
        created_by_id: int | None,
    ) -> FeeStructure:
        await self.students.get_class(data.class_id)

        structure = FeeStructure(
            name=name,
            fee_type=fee_type.value,
            class_id=data.class_id,
            academic_year=data.academic_year,
            amount=round_money(amount),
            due_date=data.due_date,
            frequency=data.frequency.value,
            description=data.description,
            is_active=True,
        )
        self.db.add(structure)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.STRUCTURE_CREATE,
            entity_type="FeeStructure",
            entity_id=structure.id,
            entity_identifier=structure.name,
            user_id=created_by_id,
            new_values={
                "fee_type": structure.fee_type,
                "class_id": structure.class_id,
                "amount": str(structure.amount),
                "due_date": structure.due_date.isoformat(),
            },
        )
        return structure

    async def update_structure(
        self, structure_id: int, data: FeeStructureUpdate, updated_by_id: int | None = None
    ) -> FeeStructure:
        """Partial update. Already generated fee records are not touched."""
        structure = await self.get_structure(structure_id)
        changes = data.model_dump(exclude_unset=True)

        if "class_id" in changes:
            await self.students.get_class(changes["class_id"])

        old_values = {}
        new_values = {}
        for field, value in changes.items():
            if field == "amount":
                value = round_money(value)
            elif hasattr(value, "value"):
                value = value.value
            old = getattr(structure, field)
            if old != value:
                old_values[field] = str(old) if old is not None else None
                new_values[field] = str(value) if value is not None else None
                setattr(structure, field, value)

        if new_values:
            await self.audit.log(
                action=AuditAction.STRUCTURE_UPDATE,
                entity_type="FeeStructure",
                entity_id=structure.id,
                entity_identifier=structure.name,
                user_id=updated_by_id,
                old_values=old_values,
                new_values=new_values,
            )

        await self.db.commit()
        return await self.get_structure(structure_id)

    async def toggle_structure(
        self, structure_id: int, toggled_by_id: int | None = None
    ) -> FeeStructure:
        """Flip is_active. Inactive structures cannot be assigned."""
        structure = await self.get_structure(structure_id)
        structure.is_active = not structure.is_active

        await self.audit.log(
            action=AuditAction.STRUCTURE_TOGGLE,
            entity_type="FeeStructure",
            entity_id=structure.id,
            entity_identifier=structure.name,
            user_id=toggled_by_id,
            new_values={"is_active": structure.is_active},
        )
        await self.db.commit()
        logger.info(
            "Fee structure %s %s",
            structure_id,
            "activated" if structure.is_active else "deactivated",
        )
        return await self.get_structure(structure_id)

    async def delete_structure(self, structure_id: int, deleted_by_id: int | None = None) -> None:
        """Delete a structure. Its fee records are kept and detached."""
        structure = await self.get_structure(structure_id)

        await self.db.execute(
            update(FeeRecord)
            .where(FeeRecord.structure_id == structure_id)
            .values(structure_id=None)
        )
        await self.audit.log(
            action=AuditAction.STRUCTURE_DELETE,
            entity_type="FeeStructure",
            entity_id=structure.id,
            entity_identifier=structure.name,
            user_id=deleted_by_id,
        )
        await self.db.delete(structure)
        await self.db.commit()

    async def assign(self, structure_id: int, assigned_by_id: int | None = None) -> AssignResult:
        """
        Expand a structure into one fee record per enrolled student.

        Students already holding a record for the structure (or, for records
        without a structure, for the same fee type and academic year) are
        skipped, so assigning twice creates nothing the second time.
        """
        structure = await self.get_structure(structure_id)
        if not structure.is_active:
            raise InactiveStructureError(structure_id)

        await self.students.get_class(structure.class_id)
        students = await self.students.list_enrolled(structure.class_id)
        student_ids = [s.id for s in students]

        already = set()
        if student_ids:
            result = await self.db.execute(
                select(FeeRecord.student_id).where(
                    FeeRecord.student_id.in_(student_ids),
                    or_(
                        FeeRecord.structure_id == structure.id,
                        and_(
                            FeeRecord.structure_id.is_(None),
                            FeeRecord.fee_type == structure.fee_type,
                            FeeRecord.academic_year == structure.academic_year,
                        ),
                    ),
                )
            )
            already = set(result.scalars().all())

        description = structure.name
        if structure.description:
            description = f"{structure.name} - {structure.description}"

        created = 0
        for student in students:
            if student.id in already:
                continue
            record = FeeRecord(
                student_id=student.id,
                structure_id=structure.id,
                fee_type=structure.fee_type,
                description=description,
                academic_year=structure.academic_year,
                due_date=structure.due_date,
                amount=structure.amount,
                discount=Decimal("0.00"),
                fine=Decimal("0.00"),
                amount_paid=Decimal("0.00"),
            )
            record.recalculate()
            self.db.add(record)
            created += 1

        skipped = len(students) - created
        await self.db.flush()
        await self.audit.log(
            action=AuditAction.ASSIGN,
            entity_type="FeeStructure",
            entity_id=structure.id,
            entity_identifier=structure.name,
            user_id=assigned_by_id,
            new_values={"created": created, "skipped": skipped},
        )
        await self.db.commit()

        logger.info(
            "Assigned fee structure %s: %d created, %d skipped", structure_id, created, skipped
        )
        if not students:
            message = "No enrolled students in this class"
        elif created == 0:
            message = "All students already have this fee"
        else:
            message = f"Fee assigned to {created} student(s)"
        return AssignResult(created=created, skipped=skipped, message=message)


class FeeService:
    """Fee records: direct creation, listing, edits and summaries."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)
        self.students = StudentService(db)

    async def get_fee(self, fee_id: int) -> FeeRecord:
        result = await self.db.execute(
            select(FeeRecord)
            .where(FeeRecord.id == fee_id)
            .options(selectinload(FeeRecord.student).selectinload(Student.school_class))
        )
        record = result.scalar_one_or_none()
        if not record:
            raise NotFoundError("Fee record", fee_id)
        return record

    async def create_fee(self, data: FeeRecordCreate, created_by_id: int | None = None) -> FeeRecord:
        """Create a single ad-hoc fee record."""
        await self.students.get_student(data.student_id)
        record = await self._add_record(data.student_id, data, created_by_id)
        await self.db.commit()
        return await self.get_fee(record.id)

    async def create_bulk(
        self, data: FeeRecordBulkCreate, created_by_id: int | None = None
    ) -> list[FeeRecord]:
        """Create the same ad-hoc fee for each listed student (all or nothing)."""
        student_ids = list(dict.fromkeys(data.student_ids))
        missing = await self.students.find_missing(student_ids)
        if missing:
            raise ValidationError(
                f"Students not found: {', '.join(str(i) for i in missing)}",
                field="student_ids",
            )

        records = [await self._add_record(sid, data, None) for sid in student_ids]
        await self.audit.log(
            action=AuditAction.FEE_BULK_CREATE,
            entity_type="FeeRecord",
            entity_id=records[0].id,
            user_id=created_by_id,
            new_values={
                "student_ids": student_ids,
                "fee_type": data.fee_type.value,
                "amount": str(round_money(data.amount)),
            },
        )
        await self.db.commit()
        logger.info("Created %d ad-hoc fee records", len(records))
        return records

    async def _add_record(
        self,
        student_id: int,
        data: FeeRecordCreate | FeeRecordBulkCreate,
        created_by_id: int | None,
    ) -> FeeRecord:
        record = FeeRecord(
            student_id=student_id,
            structure_id=None,
            fee_type=data.fee_type.value,
            description=data.description or fee_type_label(data.fee_type),
            academic_year=data.academic_year,
            due_date=data.due_date,
            amount=data.amount,
            discount=data.discount,
            fine=data.fine,
            amount_paid=Decimal("0.00"),
        )
        record.recalculate()
        self.db.add(record)
        await self.db.flush()

        if created_by_id is not None:
            await self.audit.log(
                action=AuditAction.FEE_CREATE,
                entity_type="FeeRecord",
                entity_id=record.id,
                user_id=created_by_id,
                new_values={
                    "student_id": student_id,
                    "fee_type": record.fee_type,
                    "total_amount": str(record.total_amount),
                },
            )
        return record

    async def list_fees(
        self, filters: FeeRecordFilters, today: date | None = None
    ) -> list[FeeRecord]:
        """
        List fee records.

        The status filter uses the display status: overdue means not paid and
        past due, while unpaid/partial exclude records that are overdue today.
        """
        today = today or date.today()
        query = select(FeeRecord).options(
            selectinload(FeeRecord.student).selectinload(Student.school_class)
        )

        if filters.student_id:
            query = query.where(FeeRecord.student_id == filters.student_id)
        if filters.fee_type:
            query = query.where(FeeRecord.fee_type == filters.fee_type.value)
        if filters.academic_year:
            query = query.where(FeeRecord.academic_year == filters.academic_year)
        if filters.class_id or filters.search:
            query = query.join(Student, FeeRecord.student_id == Student.id)
            if filters.class_id:
                query = query.where(Student.class_id == filters.class_id)
            if filters.search:
                term = f"%{filters.search.strip()}%"
                query = query.where(
                    or_(
                        Student.full_name.ilike(term),
                        Student.admission_number.ilike(term),
                        FeeRecord.description.ilike(term),
                    )
                )

        status = filters.payment_status
        if status == PaymentStatus.PAID:
            query = query.where(FeeRecord.payment_status == PaymentStatus.PAID.value)
        elif status == PaymentStatus.OVERDUE:
            query = query.where(
                FeeRecord.payment_status != PaymentStatus.PAID.value,
                FeeRecord.due_date < today,
            )
        elif status is not None:
            query = query.where(
                FeeRecord.payment_status == status.value,
                FeeRecord.due_date >= today,
            )

        query = query.order_by(FeeRecord.due_date, FeeRecord.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_fee(
        self, fee_id: int, data: FeeRecordUpdate, updated_by_id: int | None = None
    ) -> FeeRecord:
        """Edit a fee record; the new total may not drop below what is already paid."""
        record = await self.get_fee(fee_id)
        changes = data.model_dump(exclude_unset=True)

        for field in ("amount", "discount", "fine", "due_date"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be cleared", field=field)

        amount = round_money(changes.get("amount", record.amount))
        discount = round_money(changes.get("discount", record.discount))
        fine = round_money(changes.get("fine", record.fine))
        new_total = amount - discount + fine
        if new_total < 0:
            raise ValidationError("Discount cannot exceed amount plus fine", field="discount")
        if new_total < record.amount_paid:
            raise ValidationError(
                f"Total amount {new_total} would be less than amount already paid "
                f"{record.amount_paid}",
                field="amount",
            )

        old_values = {
            "amount": str(record.amount),
            "discount": str(record.discount),
            "fine": str(record.fine),
            "total_amount": str(record.total_amount),
        }
        if "description" in changes:
            record.description = changes["description"]
        if "due_date" in changes:
            record.due_date = changes["due_date"]
        record.amount = amount
        record.discount = discount
        record.fine = fine
        record.recalculate()

        await self.audit.log(
            action=AuditAction.FEE_UPDATE,
            entity_type="FeeRecord",
            entity_id=record.id,
            user_id=updated_by_id,
            old_values=old_values,
            new_values={
                "amount": str(record.amount),
                "discount": str(record.discount),
                "fine": str(record.fine),
                "total_amount": str(record.total_amount),
            },
        )
        await self.db.commit()
        return await self.get_fee(fee_id)

    async def delete_fee(self, fee_id: int, deleted_by_id: int | None = None) -> None:
        """Delete a fee record that has not received any payment."""
        record = await self.get_fee(fee_id)
        if not record.can_be_deleted:
            raise ValidationError("Cannot delete a fee record that has payments")

        await self.audit.log(
            action=AuditAction.FEE_DELETE,
            entity_type="FeeRecord",
            entity_id=record.id,
            user_id=deleted_by_id,
            old_values={"student_id": record.student_id, "total_amount": str(record.total_amount)},
        )
        await self.db.delete(record)
        await self.db.commit()

    # --- Access ---

    async def ensure_can_view_student(self, user: User, student: Student) -> None:
        """Staff see everyone; parents their children; students themselves."""
        if user.has_role(UserRole.ADMIN, UserRole.TEACHER):
            return
        if user.has_role(UserRole.PARENT) and student.parent_user_id == user.id:
            return
        if user.has_role(UserRole.STUDENT) and user.student_id == student.id:
            return
        raise AuthorizationError("You can only view your own fees")

    async def get_student_fees(
        self, student_id: int, user: User, filters: FeeRecordFilters | None = None
    ) -> list[FeeRecord]:
        student = await self.students.get_student(student_id)
        await self.ensure_can_view_student(user, student)
        filters = (filters or FeeRecordFilters()).model_copy(update={"student_id": student_id})
        return await self.list_fees(filters)

    async def my_student_ids(self, user: User) -> list[int]:
        if user.has_role(UserRole.STUDENT):
            return [user.student_id] if user.student_id else []
        if user.has_role(UserRole.PARENT):
            return [s.id for s in await self.students.list_children(user.id)]
        raise AuthorizationError("Only students and parents have personal fees")

    async def get_my_fees(
        self, user: User, filters: FeeRecordFilters | None = None
    ) -> list[FeeRecord]:
        """Fees of the caller (student) or of all the caller's children (parent)."""
        filters = filters or FeeRecordFilters()
        records: list[FeeRecord] = []
        for student_id in await self.my_student_ids(user):
            records.extend(
                await self.list_fees(filters.model_copy(update={"student_id": student_id}))
            )
        return records

    async def get_my_alerts(self, user: User, today: date | None = None) -> DueAlerts:
        today = today or date.today()
        records = await self.get_my_fees(user)
        return due_alerts(records, today=today, window_days=settings.due_soon_days)

    # --- Summary ---

    async def get_summary(
        self,
        academic_year: str | None = None,
        class_id: int | None = None,
        today: date | None = None,
    ) -> AggregateSnapshot:
        """Collection statistics over the filtered fee records."""
        today = today or date.today()
        records = await self.list_fees(
            FeeRecordFilters(academic_year=academic_year, class_id=class_id), today=today
        )
        payments = await self._recent_payments([r.id for r in records])
        return summarize(
            records,
            today=today,
            payments=payments,
            top_n=settings.defaulters_top_n,
            recent_limit=settings.recent_payments_limit,
        )

    async def _recent_payments(self, fee_record_ids: list[int]) -> list[PaymentRecord]:
        if not fee_record_ids:
            return []
        result = await self.db.execute(
            select(PaymentRecord)
            .where(
                PaymentRecord.fee_record_id.in_(fee_record_ids),
                PaymentRecord.status == PaymentRecordStatus.SUCCESS.value,
            )
            .options(selectinload(PaymentRecord.student))
            .order_by(PaymentRecord.created_at.desc(), PaymentRecord.id.desc())
            .limit(settings.recent_payments_limit)
        )
        return list(result.scalars().all())
