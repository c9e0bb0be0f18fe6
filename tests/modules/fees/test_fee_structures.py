"""Tests for the fee structure catalog."""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.models import AuditLog
from src.core.auth.models import UserRole
from src.core.exceptions import NotFoundError
from src.modules.fees.models import FeeRecord, FeeType
from src.modules.fees.schemas import FeeStructureComponentsCreate, FeeStructureFilters
from src.modules.fees.service import FeeStructureService
from tests.factories import (
    auth_headers,
    create_class,
    create_fee_record,
    create_student,
    create_structure,
    create_user,
)

STRUCTURE = {
    "name": "Term 1 Tuition",
    "fee_type": "tuition",
    "academic_year": "2030-31",
    "amount": "25000",
    "due_date": "2030-04-10",
    "frequency": "quarterly",
    "description": "April to June",
}


class TestFeeStructureService:
    """Tests for FeeStructureService."""

    async def test_components_skip_zero_amounts(self, db_session: AsyncSession, school_class):
        service = FeeStructureService(db_session)
        data = FeeStructureComponentsCreate(
            name="Annual 2030",
            class_id=school_class.id,
            academic_year="2030-31",
            due_date="2030-04-10",
            amounts={"tuition": "25000", "exam": "0", "transport": "6000", "fine": "0"},
        )

        structures = await service.create_structure_components(data)

        assert [s.name for s in structures] == [
            "Annual 2030 - Tuition Fee",
            "Annual 2030 - Transport Fee",
        ]
        assert [s.fee_type for s in structures] == ["tuition", "transport"]
        assert structures[1].amount == Decimal("6000.00")
        assert all(s.is_active for s in structures)

    def test_components_need_one_amount(self):
        with pytest.raises(ValueError):
            FeeStructureComponentsCreate(
                name="Nothing",
                class_id=1,
                academic_year="2030-31",
                due_date="2030-04-10",
                amounts={},
            )

    async def test_components_for_unknown_class_create_nothing(self, db_session: AsyncSession):
        service = FeeStructureService(db_session)
        data = FeeStructureComponentsCreate(
            name="Annual",
            class_id=999,
            academic_year="2030-31",
            due_date="2030-04-10",
            amounts={"tuition": "100"},
        )
        with pytest.raises(NotFoundError):
            await service.create_structure_components(data)

        assert await service.list_structures(FeeStructureFilters()) == []

    async def test_list_filters(self, db_session: AsyncSession, school_class):
        other = await create_class(db_session, "9", "B")
        await create_structure(db_session, school_class)
        await create_structure(db_session, school_class, fee_type=FeeType.EXAM, is_active=False)
        await create_structure(db_session, other)

        service = FeeStructureService(db_session)
        assert len(await service.list_structures(FeeStructureFilters(class_id=school_class.id))) == 2
        assert len(await service.list_structures(FeeStructureFilters(is_active=False))) == 1
        assert len(await service.list_structures(FeeStructureFilters(fee_type=FeeType.EXAM))) == 1

    async def test_delete_keeps_generated_records(self, db_session: AsyncSession, school_class):
        structure = await create_structure(db_session, school_class)
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student, structure=structure)

        await FeeStructureService(db_session).delete_structure(structure.id)

        kept = await db_session.get(FeeRecord, record.id)
        assert kept is not None
        assert kept.structure_id is None

    async def test_mutations_are_audited(self, db_session: AsyncSession, school_class):
        structure = await create_structure(db_session, school_class)
        service = FeeStructureService(db_session)
        await service.toggle_structure(structure.id, toggled_by_id=None)

        result = await db_session.execute(
            select(func.count(AuditLog.id)).where(AuditLog.action == "fee_structure.toggle")
        )
        assert result.scalar_one() == 1


class TestFeeStructureEndpoints:
    """Tests for /fees/structures endpoints."""

    async def test_create_structure(self, client: AsyncClient, admin, school_class):
        response = await client.post(
            "/api/v1/fees/structures",
            json={**STRUCTURE, "class_id": school_class.id},
            headers=auth_headers(admin),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["name"] == "Term 1 Tuition"
        assert data["class_name"] == "10 - A"
        assert data["frequency"] == "quarterly"
        assert Decimal(data["amount"]) == Decimal("25000")
        assert data["is_active"] is True

    async def test_create_requires_admin(self, client: AsyncClient, db_session, school_class):
        teacher = await create_user(db_session, UserRole.TEACHER)
        response = await client.post(
            "/api/v1/fees/structures",
            json={**STRUCTURE, "class_id": school_class.id},
            headers=auth_headers(teacher),
        )
        assert response.status_code == 403

    async def test_negative_amount_rejected(self, client: AsyncClient, admin, school_class):
        response = await client.post(
            "/api/v1/fees/structures",
            json={**STRUCTURE, "class_id": school_class.id, "amount": "-1"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "amount"

    async def test_unknown_class(self, client: AsyncClient, admin):
        response = await client.post(
            "/api/v1/fees/structures",
            json={**STRUCTURE, "class_id": 999},
            headers=auth_headers(admin),
        )
        assert response.status_code == 404

    async def test_teacher_can_list(self, client: AsyncClient, db_session, school_class):
        await create_structure(db_session, school_class)
        teacher = await create_user(db_session, UserRole.TEACHER)

        response = await client.get("/api/v1/fees/structures", headers=auth_headers(teacher))

        assert response.status_code == 200
        assert len(response.json()["data"]) == 1

    async def test_update_does_not_touch_records(
        self, client: AsyncClient, db_session, admin, school_class
    ):
        structure = await create_structure(db_session, school_class, amount="5000")
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student, amount="5000", structure=structure)

        response = await client.put(
            f"/api/v1/fees/structures/{structure.id}",
            json={"amount": "6000", "name": "Term 1 Tuition (revised)"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert Decimal(response.json()["data"]["amount"]) == Decimal("6000")
        await db_session.refresh(record)
        assert record.total_amount == Decimal("5000.00")

    async def test_update_cannot_clear_required_field(
        self, client: AsyncClient, db_session, admin, school_class
    ):
        structure = await create_structure(db_session, school_class)
        response = await client.put(
            f"/api/v1/fees/structures/{structure.id}",
            json={"due_date": None},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

    async def test_toggle(self, client: AsyncClient, db_session, admin, school_class):
        structure = await create_structure(db_session, school_class)

        response = await client.patch(
            f"/api/v1/fees/structures/{structure.id}/toggle", headers=auth_headers(admin)
        )
        assert response.status_code == 200
        assert response.json()["data"]["is_active"] is False
        assert response.json()["message"] == "Fee structure deactivated"

        response = await client.patch(
            f"/api/v1/fees/structures/{structure.id}/toggle", headers=auth_headers(admin)
        )
        assert response.json()["data"]["is_active"] is True

    async def test_components_endpoint(self, client: AsyncClient, admin, school_class):
        response = await client.post(
            "/api/v1/fees/structures/components",
            json={
                "name": "Annual",
                "class_id": school_class.id,
                "academic_year": "2030-31",
                "due_date": "2030-04-10",
                "amounts": {"tuition": "1000", "exam": "200", "transport": "0", "fine": "50"},
            },
            headers=auth_headers(admin),
        )

        assert response.status_code == 201
        assert [s["fee_type"] for s in response.json()["data"]] == ["tuition", "exam", "fine"]
        assert response.json()["message"] == "3 fee structure(s) created successfully"

    async def test_delete(self, client: AsyncClient, db_session, admin, school_class):
        structure = await create_structure(db_session, school_class)

        response = await client.delete(
            f"/api/v1/fees/structures/{structure.id}", headers=auth_headers(admin)
        )
        assert response.status_code == 200

        response = await client.delete(
            f"/api/v1/fees/structures/{structure.id}", headers=auth_headers(admin)
        )
        assert response.status_code == 404
