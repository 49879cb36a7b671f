from contextlib import asynccontextmanager
from datetime import date, time

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.constants import ApplyStrictness
from app.main import create_app
from app.models.staff_rota import StaffRota
from app.models.staff_schedule import StaffSchedule
from tests.conftest import get_auth_headers

CHECK_URL = "/api/v1/schedule/check-conflicts"
APPLY_URL = "/api/v1/schedule/apply"
LIST_URL = "/api/v1/schedule/"


def monday(start: str = "09:00", end: str = "12:00", **extra) -> dict:
    return {
        "day_of_week": "Monday",
        "start_time": start,
        "end_time": end,
        "start_date": "2024-01-01",
        **extra,
    }


async def count_rules(db: AsyncSession, staff_id: int) -> int:
    result = await db.execute(
        select(func.count(StaffSchedule.id)).where(StaffSchedule.staff_id == staff_id)
    )
    return result.scalar_one()


async def count_generated_rota(db: AsyncSession, staff_id: int) -> int:
    result = await db.execute(
        select(func.count(StaffRota.id)).where(
            StaffRota.staff_id == staff_id, StaffRota.is_generated.is_(True)
        )
    )
    return result.scalar_one()


class TestScheduleAPI:
    """Integration tests for the staff schedule endpoints."""

    @pytest.fixture
    def payload(self, schedule_world):
        def _payload(*entries, **extra) -> dict:
            return {
                "business_id": schedule_world["business_id"],
                "staff_id": schedule_world["staff_id"],
                "schedule": list(entries),
                **extra,
            }

        return _payload

    @pytest.fixture
    def owner_headers(self, schedule_world):
        return get_auth_headers(schedule_world["owner_id"])

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_check_without_existing_data(
        self, client: AsyncClient, payload, owner_headers
    ):
        response = await client.post(
            CHECK_URL, json=payload(monday()), headers=owner_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["return_code"] == "SUCCESS"
        assert data["has_conflicts"] is False
        assert data["conflicts"] == []

    @pytest.mark.asyncio
    async def test_check_reports_self_overlap(
        self, client: AsyncClient, payload, owner_headers
    ):
        response = await client.post(
            CHECK_URL,
            json=payload(monday("09:00", "12:00"), monday("11:00", "14:00")),
            headers=owner_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["has_conflicts"] is True
        assert len(data["conflicts"]) == 1
        conflict = data["conflicts"][0]
        assert conflict["type"] == "self_overlap"
        assert conflict["day_of_week"] == "Monday"
        assert len(conflict["entries"]) == 2

    @pytest.mark.asyncio
    async def test_apply_rejects_self_overlap_without_writes(
        self,
        client: AsyncClient,
        db: AsyncSession,
        schedule_world,
        make_rota,
        payload,
        owner_headers,
    ):
        await make_rota(date(2024, 1, 8), time(9, 0), time(17, 0), is_generated=True)

        response = await client.post(
            APPLY_URL,
            json=payload(monday("09:00", "12:00"), monday("11:00", "14:00")),
            headers=owner_headers,
        )

        assert response.status_code == 400
        data = response.json()
        assert data["return_code"] == "SCHEDULE_OVERLAP"
        assert data["conflicts"][0]["type"] == "self_overlap"
        assert await count_rules(db, schedule_world["staff_id"]) == 0
        assert await count_generated_rota(db, schedule_world["staff_id"]) == 1

    @pytest.mark.asyncio
    async def test_covered_booking_is_not_reported(
        self, client: AsyncClient, make_booking, payload, owner_headers
    ):
        await make_booking(date(2024, 1, 8), time(10, 0), time(11, 0))

        response = await client.post(
            CHECK_URL, json=payload(monday()), headers=owner_headers
        )

        assert response.status_code == 200
        assert response.json()["has_conflicts"] is False

    @pytest.mark.asyncio
    async def test_uncovered_booking_is_reported(
        self, client: AsyncClient, make_booking, payload, owner_headers
    ):
        booking_id = await make_booking(date(2024, 1, 8), time(10, 0), time(11, 0))

        response = await client.post(
            CHECK_URL, json=payload(monday("13:00", "17:00")), headers=owner_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["has_conflicts"] is True
        conflict = data["conflicts"][0]
        assert conflict["type"] == "booking_conflict"
        assert conflict["booking_id"] == booking_id
        assert conflict["booking_date"] == "2024-01-08"
        assert conflict["start_time"] == "10:00:00"
        assert conflict["service_name"] == "Haircut"
        assert conflict["customer_name"] == "John Doe"

    @pytest.mark.asyncio
    async def test_invalid_day(self, client: AsyncClient, payload, owner_headers):
        response = await client.post(
            CHECK_URL,
            json=payload(monday(day_of_week="Funday")),
            headers=owner_headers,
        )

        assert response.status_code == 400
        data = response.json()
        assert data["return_code"] == "INVALID_DAY"
        assert "Funday" in data["message"]

    @pytest.mark.asyncio
    async def test_missing_end_time(self, client: AsyncClient, payload, owner_headers):
        entry = monday()
        del entry["end_time"]

        response = await client.post(
            APPLY_URL, json=payload(entry), headers=owner_headers
        )

        assert response.status_code == 400
        assert response.json()["return_code"] == "MISSING_FIELDS"

    @pytest.mark.asyncio
    async def test_start_after_end_is_invalid_time(
        self, client: AsyncClient, payload, owner_headers
    ):
        response = await client.post(
            CHECK_URL, json=payload(monday("17:00", "09:00")), headers=owner_headers
        )

        assert response.status_code == 400
        assert response.json()["return_code"] == "INVALID_TIME"

    @pytest.mark.asyncio
    async def test_malformed_body_is_missing_fields(
        self, client: AsyncClient, owner_headers
    ):
        response = await client.post(
            CHECK_URL,
            json={"business_id": "not-a-number", "staff_id": 1, "schedule": []},
            headers=owner_headers,
        )

        assert response.status_code == 400
        data = response.json()
        assert data["return_code"] == "MISSING_FIELDS"
        assert "business_id" in data["message"]

    @pytest.mark.asyncio
    async def test_missing_authorization(self, client: AsyncClient, payload):
        response = await client.post(CHECK_URL, json=payload(monday()))

        assert response.status_code == 401
        assert response.json()["return_code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_staff_member_cannot_manage_schedule(
        self, client: AsyncClient, schedule_world, payload
    ):
        response = await client.post(
            APPLY_URL,
            json=payload(monday()),
            headers=get_auth_headers(schedule_world["staff_id"]),
        )

        assert response.status_code == 403
        assert response.json()["return_code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_staff_from_other_business(
        self, client: AsyncClient, schedule_world, owner_headers
    ):
        response = await client.post(
            CHECK_URL,
            json={
                "business_id": schedule_world["business_id"],
                "staff_id": schedule_world["outsider_id"],
                "schedule": [monday()],
            },
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json()["return_code"] == "INVALID_STAFF"

    @pytest.mark.asyncio
    async def test_apply_then_list(
        self,
        client: AsyncClient,
        db: AsyncSession,
        schedule_world,
        make_rota,
        payload,
        owner_headers,
    ):
        await make_rota(date(2024, 1, 8), time(9, 0), time(17, 0), is_generated=True)
        schedule = payload(
            monday(end_date="2024-03-31", repeat_every_n_weeks=2),
            {
                "day_of_week": "friday",
                "start_time": "10:00",
                "end_time": "16:00",
                "start_date": "2024-01-05",
            },
        )

        response = await client.post(APPLY_URL, json=schedule, headers=owner_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["return_code"] == "SUCCESS"
        assert data["committed"] is True
        assert await count_generated_rota(db, schedule_world["staff_id"]) == 0

        response = await client.get(
            LIST_URL,
            params={
                "business_id": schedule_world["business_id"],
                "staff_id": schedule_world["staff_id"],
            },
            headers=get_auth_headers(schedule_world["staff_id"]),
        )

        assert response.status_code == 200
        rules = response.json()["schedules"]
        assert [rule["day_of_week"] for rule in rules] == ["Monday", "Friday"]
        assert rules[0]["repeat_every_n_weeks"] == 2
        assert rules[0]["end_date"] == "2024-03-31"
        assert rules[1]["repeat_every_n_weeks"] is None

    @pytest.mark.asyncio
    async def test_list_without_rules(
        self, client: AsyncClient, schedule_world, owner_headers
    ):
        response = await client.get(
            LIST_URL,
            params={"business_id": schedule_world["business_id"]},
            headers=owner_headers,
        )

        assert response.status_code == 404
        assert response.json()["return_code"] == "NO_SCHEDULES_FOUND"


class TestConfiguredScheduleAPI:
    """Settings handed to the app factory drive the schedule endpoints."""

    @pytest.fixture
    def make_client(self, test_settings: Settings, database):
        @asynccontextmanager
        async def _make_client(**overrides):
            settings = test_settings.model_copy(update=overrides)
            application = create_app(settings=settings, database=database)
            async with AsyncClient(
                transport=ASGITransport(app=application), base_url="http://test"
            ) as client:
                yield client

        return _make_client

    @pytest.fixture
    def body(self, schedule_world):
        return {
            "business_id": schedule_world["business_id"],
            "staff_id": schedule_world["staff_id"],
            "schedule": [monday("09:00", "12:00")],
        }

    @pytest.mark.asyncio
    async def test_strict_app_rejects_uncovered_booking(
        self, make_client, db: AsyncSession, schedule_world, make_booking, body
    ):
        booking_id = await make_booking(date(2024, 1, 8), time(14, 0), time(15, 0))

        async with make_client(
            SCHEDULE_APPLY_STRICTNESS=ApplyStrictness.STRICT
        ) as client:
            response = await client.post(
                APPLY_URL,
                json=body,
                headers=get_auth_headers(schedule_world["owner_id"]),
            )

        assert response.status_code == 409
        data = response.json()
        assert data["return_code"] == "BOOKING_CONFLICTS"
        assert [c["booking_id"] for c in data["conflicts"]] == [booking_id]
        assert await count_rules(db, schedule_world["staff_id"]) == 0

    @pytest.mark.asyncio
    async def test_strict_app_applies_with_force(
        self, make_client, schedule_world, make_booking, body
    ):
        await make_booking(date(2024, 1, 8), time(14, 0), time(15, 0))

        async with make_client(
            SCHEDULE_APPLY_STRICTNESS=ApplyStrictness.STRICT
        ) as client:
            response = await client.post(
                APPLY_URL,
                json={**body, "force": True},
                headers=get_auth_headers(schedule_world["owner_id"]),
            )

        assert response.status_code == 200
        assert response.json()["return_code"] == "SUCCESS_WITH_WARNINGS"

    @pytest.mark.asyncio
    async def test_legacy_app_ignores_uncovered_booking(
        self, make_client, schedule_world, make_booking, body
    ):
        await make_booking(date(2024, 1, 8), time(14, 0), time(15, 0))

        async with make_client(
            SCHEDULE_APPLY_STRICTNESS=ApplyStrictness.LEGACY
        ) as client:
            response = await client.post(
                APPLY_URL,
                json=body,
                headers=get_auth_headers(schedule_world["owner_id"]),
            )

        assert response.status_code == 200
        assert response.json()["return_code"] == "SUCCESS"

    @pytest.mark.asyncio
    async def test_horizon_limits_the_checked_dates(
        self, make_client, schedule_world, make_booking, body
    ):
        await make_booking(date(2024, 1, 15), time(14, 0), time(15, 0))
        headers = get_auth_headers(schedule_world["owner_id"])

        async with make_client(DEFAULT_HORIZON_DAYS=7) as client:
            short = await client.post(CHECK_URL, json=body, headers=headers)
        async with make_client(DEFAULT_HORIZON_DAYS=30) as client:
            default = await client.post(CHECK_URL, json=body, headers=headers)

        assert short.status_code == 200
        assert short.json()["has_conflicts"] is False
        assert default.json()["has_conflicts"] is True
