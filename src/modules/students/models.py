"""Student and SchoolClass models (directory data read by the fee engine)."""

from sqlalchemy import (
    Boolean,
    ForeignKey,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel, BigIntPK


class SchoolClass(BaseModel):
    """Class/section students are enrolled in.

    Examples: "10" / "A", "8" / "B"
    """

    __tablename__ = "school_classes"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    section: Mapped[str | None] = mapped_column(String(20), nullable=True)

    students: Mapped[list["Student"]] = relationship("Student", back_populates="school_class")

    @property
    def display_name(self) -> str:
        if self.section:
            return f"{self.name} - {self.section}"
        return self.name


class Student(BaseModel):
    """Student enrolled in the school."""

    __tablename__ = "students"

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    admission_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )
    roll_number: Mapped[str | None] = mapped_column(String(20), nullable=True)

    class_id: Mapped[int | None] = mapped_column(
        BigIntPK, ForeignKey("school_classes.id"), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Guardian account allowed to view and pay this student's fees
    parent_user_id: Mapped[int | None] = mapped_column(
        BigIntPK, ForeignKey("users.id"), nullable=True, index=True
    )

    school_class: Mapped[SchoolClass | None] = relationship(
        "SchoolClass", back_populates="students"
    )

    @property
    def class_name(self) -> str | None:
        return self.school_class.display_name if self.school_class else None
