"""Read access to the student/class directory."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.exceptions import NotFoundError
from src.modules.students.models import SchoolClass, Student


class StudentService:
    """Directory lookups needed by fee assignment and access checks."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_class(self, class_id: int) -> SchoolClass:
        result = await self.db.execute(select(SchoolClass).where(SchoolClass.id == class_id))
        school_class = result.scalar_one_or_none()
        if not school_class:
            raise NotFoundError("Class", class_id)
        return school_class

    async def list_classes(self) -> list[SchoolClass]:
        result = await self.db.execute(
            select(SchoolClass).order_by(SchoolClass.name, SchoolClass.section)
        )
        return list(result.scalars().all())

    async def get_student(self, student_id: int) -> Student:
        """Get student by ID with class loaded."""
        result = await self.db.execute(
            select(Student)
            .where(Student.id == student_id)
            .options(selectinload(Student.school_class))
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)
        return student

    async def list_enrolled(self, class_id: int) -> list[Student]:
        """Active students currently enrolled in the class."""
        result = await self.db.execute(
            select(Student)
            .where(Student.class_id == class_id, Student.is_active.is_(True))
            .order_by(Student.id)
        )
        return list(result.scalars().all())

    async def list_children(self, parent_user_id: int) -> list[Student]:
        """Students whose guardian account is the given user."""
        result = await self.db.execute(
            select(Student)
            .where(Student.parent_user_id == parent_user_id)
            .order_by(Student.id)
        )
        return list(result.scalars().all())

    async def find_missing(self, student_ids: list[int]) -> list[int]:
        """IDs from the list that do not exist."""
        if not student_ids:
            return []
        result = await self.db.execute(select(Student.id).where(Student.id.in_(student_ids)))
        found = set(result.scalars().all())
        return [sid for sid in student_ids if sid not in found]
