from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.models import User, UserRole
from src.core.exceptions import DuplicateError


class AuthService:
    """Lookup and provisioning of API accounts."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user_by_id(self, user_id: int) -> User | None:
        """Get user by ID."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> User | None:
        """Get user by email."""
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def create_user(
        self,
        email: str,
        full_name: str,
        role: UserRole,
        student_id: int | None = None,
    ) -> User:
        """Create an account mirrored from the identity provider."""
        if await self.get_user_by_email(email):
            raise DuplicateError("User", "email", email)

        user = User(
            email=email,
            full_name=full_name,
            role=role.value,
            student_id=student_id,
            is_active=True,
        )
        self.session.add(user)
        await self.session.flush()
        return user
