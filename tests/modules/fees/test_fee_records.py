"""Tests for fee records: direct creation, listing, edits, access and summaries."""

from datetime import date, timedelta
from decimal import Decimal

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.models import UserRole
from src.modules.fees.models import FeeType, PaymentStatus
from src.modules.fees.schemas import FeeRecordFilters
from src.modules.fees.service import FeeService
from src.modules.payments.models import PaymentMethod
from src.modules.payments.service import PaymentService
from tests.factories import (
    auth_headers,
    create_class,
    create_fee_record,
    create_student,
    create_user,
)

TODAY = date.today()
PAST = TODAY - timedelta(days=10)
FUTURE = TODAY + timedelta(days=30)


class TestCreateFees:
    """Tests for POST /fees and /fees/bulk."""

    async def test_create_single(self, client: AsyncClient, db_session, admin, school_class):
        student = await create_student(db_session, school_class)

        response = await client.post(
            "/api/v1/fees",
            json={
                "student_id": student.id,
                "fee_type": "library",
                "academic_year": "2030-31",
                "amount": "1200",
                "discount": "200",
                "fine": "50",
                "due_date": FUTURE.isoformat(),
            },
            headers=auth_headers(admin),
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["student_name"] == "Aarav Sharma"
        assert data["structure_id"] is None
        assert data["description"] == "Library Fee"
        assert Decimal(data["total_amount"]) == Decimal("1050")
        assert Decimal(data["balance_due"]) == Decimal("1050")
        assert data["payment_status"] == "unpaid"

    async def test_discount_larger_than_amount(self, client: AsyncClient, db_session, admin, school_class):
        student = await create_student(db_session, school_class)
        response = await client.post(
            "/api/v1/fees",
            json={
                "student_id": student.id,
                "fee_type": "other",
                "academic_year": "2030-31",
                "amount": "100",
                "discount": "200",
                "due_date": FUTURE.isoformat(),
            },
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

    async def test_unknown_student(self, client: AsyncClient, admin):
        response = await client.post(
            "/api/v1/fees",
            json={
                "student_id": 999,
                "fee_type": "other",
                "academic_year": "2030-31",
                "amount": "100",
                "due_date": FUTURE.isoformat(),
            },
            headers=auth_headers(admin),
        )
        assert response.status_code == 404

    async def test_bulk(self, client: AsyncClient, db_session, admin, school_class):
        a = await create_student(db_session, school_class, "Aarav Sharma")
        b = await create_student(db_session, school_class, "Diya Patel")

        response = await client.post(
            "/api/v1/fees/bulk",
            json={
                "student_ids": [a.id, b.id, a.id],
                "fee_type": "sports",
                "academic_year": "2030-31",
                "amount": "800",
                "due_date": FUTURE.isoformat(),
            },
            headers=auth_headers(admin),
        )

        assert response.status_code == 201
        assert response.json()["data"] == {"created": 2}

    async def test_bulk_with_missing_student_creates_nothing(
        self, client: AsyncClient, db_session, admin, school_class
    ):
        a = await create_student(db_session, school_class)

        response = await client.post(
            "/api/v1/fees/bulk",
            json={
                "student_ids": [a.id, 999],
                "fee_type": "sports",
                "academic_year": "2030-31",
                "amount": "800",
                "due_date": FUTURE.isoformat(),
            },
            headers=auth_headers(admin),
        )

        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "student_ids"
        assert await FeeService(db_session).list_fees(FeeRecordFilters()) == []

    async def test_bulk_needs_students(self, client: AsyncClient, admin):
        response = await client.post(
            "/api/v1/fees/bulk",
            json={
                "student_ids": [],
                "fee_type": "sports",
                "academic_year": "2030-31",
                "amount": "800",
                "due_date": FUTURE.isoformat(),
            },
            headers=auth_headers(admin),
        )
        assert response.status_code == 422


class TestListFees:
    """Tests for FeeService.list_fees."""

    async def _setup(self, db_session: AsyncSession, school_class):
        other = await create_class(db_session, "9", "B")
        aarav = await create_student(db_session, school_class, "Aarav Sharma")
        diya = await create_student(db_session, other, "Diya Patel")
        records = {
            "paid_late": await create_fee_record(db_session, aarav, amount_paid="5000", due_date=PAST),
            "overdue": await create_fee_record(db_session, aarav, amount_paid="1000", due_date=PAST),
            "partial": await create_fee_record(db_session, diya, amount_paid="1000", due_date=FUTURE),
            "unpaid": await create_fee_record(
                db_session, diya, fee_type=FeeType.EXAM, due_date=FUTURE
            ),
        }
        return aarav, diya, other, records

    async def test_status_filter_uses_display_status(self, db_session: AsyncSession, school_class):
        _, _, _, records = await self._setup(db_session, school_class)
        service = FeeService(db_session)

        async def ids(status):
            found = await service.list_fees(FeeRecordFilters(payment_status=status), today=TODAY)
            return {r.id for r in found}

        assert await ids(PaymentStatus.OVERDUE) == {records["overdue"].id}
        assert await ids(PaymentStatus.PARTIAL) == {records["partial"].id}
        assert await ids(PaymentStatus.UNPAID) == {records["unpaid"].id}
        assert await ids(PaymentStatus.PAID) == {records["paid_late"].id}

    async def test_class_and_search_filters(self, db_session: AsyncSession, school_class):
        _, diya, other, _ = await self._setup(db_session, school_class)
        service = FeeService(db_session)

        by_class = await service.list_fees(FeeRecordFilters(class_id=other.id))
        assert {r.student_id for r in by_class} == {diya.id}

        by_name = await service.list_fees(FeeRecordFilters(search="diya"))
        assert len(by_name) == 2

        by_type = await service.list_fees(FeeRecordFilters(fee_type=FeeType.EXAM))
        assert len(by_type) == 1

    async def test_list_endpoint_student_filter(
        self, client: AsyncClient, db_session, admin, school_class
    ):
        _, diya, _, _ = await self._setup(db_session, school_class)

        response = await client.get(
            "/api/v1/fees", params={"student_id": diya.id}, headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert {r["student_id"] for r in response.json()["data"]} == {diya.id}

    async def test_list_endpoint_shows_overdue(
        self, client: AsyncClient, db_session, admin, school_class
    ):
        _, _, _, records = await self._setup(db_session, school_class)

        response = await client.get(
            "/api/v1/fees", params={"payment_status": "overdue"}, headers=auth_headers(admin)
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert [r["id"] for r in data] == [records["overdue"].id]
        assert data[0]["payment_status"] == "overdue"


class TestEditFees:
    """Tests for PUT and DELETE /fees/{id}."""

    async def test_update_recalculates(self, client: AsyncClient, db_session, admin, school_class):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student, amount="5000", amount_paid="1000")

        response = await client.put(
            f"/api/v1/fees/{record.id}",
            json={"discount": "500", "fine": "100"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert Decimal(data["total_amount"]) == Decimal("4600")
        assert Decimal(data["balance_due"]) == Decimal("3600")
        assert data["payment_status"] == "partial"

    async def test_total_cannot_drop_below_paid(
        self, client: AsyncClient, db_session, admin, school_class
    ):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student, amount="5000", amount_paid="3000")

        response = await client.put(
            f"/api/v1/fees/{record.id}",
            json={"amount": "2000"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 422

    async def test_delete_unpaid(self, client: AsyncClient, db_session, admin, school_class):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student)

        response = await client.delete(f"/api/v1/fees/{record.id}", headers=auth_headers(admin))

        assert response.status_code == 200
        assert await FeeService(db_session).list_fees(FeeRecordFilters()) == []

    async def test_cannot_delete_with_payments(
        self, client: AsyncClient, db_session, admin, school_class
    ):
        student = await create_student(db_session, school_class)
        record = await create_fee_record(db_session, student)
        await PaymentService(db_session).pay(record.id, Decimal("100"), PaymentMethod.CASH)

        response = await client.delete(f"/api/v1/fees/{record.id}", headers=auth_headers(admin))

        assert response.status_code == 422


class TestFeeAccess:
    """Who can see which student's fees."""

    async def test_parent_sees_own_child(self, client: AsyncClient, db_session, school_class):
        parent = await create_user(db_session, UserRole.PARENT)
        child = await create_student(db_session, school_class, parent=parent)
        await create_fee_record(db_session, child)

        response = await client.get(
            f"/api/v1/fees/student/{child.id}", headers=auth_headers(parent)
        )

        assert response.status_code == 200
        assert len(response.json()["data"]) == 1

    async def test_student_fees_with_query_filters(
        self, client: AsyncClient, db_session, admin, school_class
    ):
        student = await create_student(db_session, school_class)
        other = await create_student(db_session, school_class, "Diya Patel")
        exam = await create_fee_record(db_session, student, fee_type=FeeType.EXAM)
        await create_fee_record(db_session, student, fee_type=FeeType.TUITION)
        await create_fee_record(db_session, other, fee_type=FeeType.EXAM)

        response = await client.get(
            f"/api/v1/fees/student/{student.id}",
            params={"fee_type": "exam", "student_id": other.id},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert [r["id"] for r in response.json()["data"]] == [exam.id]

    async def test_parent_cannot_see_other_student(
        self, client: AsyncClient, db_session, school_class
    ):
        parent = await create_user(db_session, UserRole.PARENT)
        stranger = await create_student(db_session, school_class, "Diya Patel")

        response = await client.get(
            f"/api/v1/fees/student/{stranger.id}", headers=auth_headers(parent)
        )

        assert response.status_code == 403

    async def test_student_sees_own_fees(self, client: AsyncClient, db_session, school_class):
        student = await create_student(db_session, school_class)
        await create_fee_record(db_session, student)
        login = await create_user(db_session, UserRole.STUDENT, student_id=student.id)

        response = await client.get("/api/v1/fees/my", headers=auth_headers(login))

        assert response.status_code == 200
        assert [r["student_id"] for r in response.json()["data"]] == [student.id]

    async def test_parent_my_fees_covers_all_children(
        self, client: AsyncClient, db_session, school_class
    ):
        parent = await create_user(db_session, UserRole.PARENT)
        a = await create_student(db_session, school_class, "Aarav Sharma", parent=parent)
        b = await create_student(db_session, school_class, "Diya Patel", parent=parent)
        await create_fee_record(db_session, a)
        await create_fee_record(db_session, b)

        response = await client.get("/api/v1/fees/my", headers=auth_headers(parent))

        assert {r["student_id"] for r in response.json()["data"]} == {a.id, b.id}

    async def test_my_alerts(self, client: AsyncClient, db_session, school_class):
        parent = await create_user(db_session, UserRole.PARENT)
        child = await create_student(db_session, school_class, parent=parent)
        await create_fee_record(db_session, child, amount="3000", due_date=PAST)
        await create_fee_record(db_session, child, amount="1000", due_date=TODAY + timedelta(days=3))

        response = await client.get("/api/v1/fees/my/alerts", headers=auth_headers(parent))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["overdue"]["count"] == 1
        assert Decimal(data["overdue"]["total_balance"]) == Decimal("3000")
        assert data["due_soon"]["count"] == 1

    async def test_admin_cannot_use_my(self, client: AsyncClient, admin):
        response = await client.get("/api/v1/fees/my", headers=auth_headers(admin))
        assert response.status_code == 403


class TestStatsSummary:
    """Tests for GET /fees/stats/summary."""

    async def test_summary(self, client: AsyncClient, db_session, admin, school_class):
        student = await create_student(db_session, school_class)
        await create_fee_record(db_session, student, amount="6000", due_date=PAST)
        paid = await create_fee_record(db_session, student, amount="4000", due_date=FUTURE)
        await PaymentService(db_session).pay(paid.id, Decimal("4000"), PaymentMethod.UPI)

        response = await client.get("/api/v1/fees/stats/summary", headers=auth_headers(admin))

        assert response.status_code == 200
        data = response.json()["data"]
        assert Decimal(data["overall"]["total_amount"]) == Decimal("10000")
        assert Decimal(data["overall"]["total_collected"]) == Decimal("4000")
        assert data["overall"]["collection_rate"] == 40
        assert data["overall"]["overdue_count"] == 1
        assert data["overall"]["paid_count"] == 1
        assert data["defaulter_count"] == 1
        assert data["defaulters"][0]["student_name"] == "Aarav Sharma"
        assert len(data["recent_payments"]) == 1
        assert data["recent_payments"][0]["payment_method"] == "upi"
