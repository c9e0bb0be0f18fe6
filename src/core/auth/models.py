from enum import StrEnum

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import BaseModel, BigIntPK


class UserRole(StrEnum):
    """User roles in the system."""

    ADMIN = "Admin"
    TEACHER = "Teacher"
    PARENT = "Parent"
    STUDENT = "Student"


class User(BaseModel):
    """
    Account that calls the fee API.

    Credentials and sessions live with the identity provider; this table only
    keeps what fee access rules need: the role and, for student logins, the
    student the account belongs to. Parents are linked from Student.parent_user_id.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    student_id: Mapped[int | None] = mapped_column(
        BigIntPK, nullable=True, index=True
    )

    def has_role(self, *roles: UserRole) -> bool:
        """Check if user has any of the specified roles."""
        return self.role in [r.value for r in roles]
