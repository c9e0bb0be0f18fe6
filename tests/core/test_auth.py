import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.jwt import create_access_token, decode_token
from src.core.auth.models import UserRole
from src.core.auth.service import AuthService
from src.core.exceptions import AuthenticationError, DuplicateError
from tests.factories import auth_headers, create_user


class TestAuthService:
    """Tests for AuthService."""

    async def test_create_user(self, db_session: AsyncSession):
        user = await AuthService(db_session).create_user(
            email="parent@school.test",
            full_name="Meera Sharma",
            role=UserRole.PARENT,
        )

        assert user.id is not None
        assert user.role == "Parent"
        assert user.is_active is True
        assert user.has_role(UserRole.PARENT, UserRole.STUDENT)
        assert not user.has_role(UserRole.ADMIN)

    async def test_duplicate_email(self, db_session: AsyncSession):
        service = AuthService(db_session)
        await service.create_user(email="a@school.test", full_name="A", role=UserRole.ADMIN)

        with pytest.raises(DuplicateError) as exc_info:
            await service.create_user(email="a@school.test", full_name="B", role=UserRole.TEACHER)

        assert "already exists" in str(exc_info.value)


class TestTokens:
    """Tests for access tokens."""

    def test_round_trip(self):
        payload = decode_token(create_access_token(7, "Admin"))
        assert payload["sub"] == "7"
        assert payload["role"] == "Admin"

    def test_expired_token(self):
        token = create_access_token(7, "Admin", expires_minutes=-1)
        with pytest.raises(AuthenticationError):
            decode_token(token)

    def test_garbage_token(self):
        with pytest.raises(AuthenticationError):
            decode_token("not-a-token")


class TestRoleChecks:
    """Role checks on fee endpoints."""

    async def test_missing_header(self, client: AsyncClient):
        response = await client.get("/api/v1/fees/structures")
        assert response.status_code == 401
        assert response.json()["success"] is False

    async def test_wrong_role(self, client: AsyncClient, db_session: AsyncSession):
        parent = await create_user(db_session, UserRole.PARENT)
        response = await client.get("/api/v1/fees/structures", headers=auth_headers(parent))
        assert response.status_code == 403

    async def test_inactive_user(self, client: AsyncClient, db_session: AsyncSession):
        admin = await create_user(db_session, UserRole.ADMIN)
        admin.is_active = False
        await db_session.commit()

        response = await client.get("/api/v1/fees/structures", headers=auth_headers(admin))
        assert response.status_code == 401
