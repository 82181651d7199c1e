"""Tests for the dashboard overview and health check."""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from app.services import reconciler

OFFICE = timezone(timedelta(hours=5, minutes=30))
OFFICE_LAT, OFFICE_LON = 10.8261981, 77.0608064


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 3, 10, hour, minute, tzinfo=OFFICE).astimezone(timezone.utc)


@pytest.mark.asyncio
async def test_overview_counts_today(async_client: AsyncClient, db_session, make_employee, rules, freeze_now):
    a = await make_employee()
    b = await make_employee()
    await make_employee(on_leave=True)
    await make_employee(is_active=False)

    await reconciler.check_in(db_session, a, latitude=OFFICE_LAT, longitude=OFFICE_LON, rules=rules, now=at(9))
    await reconciler.check_out(db_session, a, rules=rules, now=at(17))
    await reconciler.check_in(db_session, b, latitude=OFFICE_LAT, longitude=OFFICE_LON, rules=rules, now=at(10))
    await reconciler.check_out(db_session, b, rules=rules, now=at(16))
    freeze_now(at(18))

    resp = await async_client.get("/api/v1/dashboard/overview")
    assert resp.status_code == 200
    data = resp.json()
    assert data["date"] == "2025-03-10"
    assert data["total_employees"] == 3
    assert data["on_leave"] == 1
    assert data["checked_in_today"] == 2
    assert data["checked_out_today"] == 2
    assert data["auto_checkins_today"] == 0
    assert data["avg_hours_today"] == 7.0


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json() == {"db": True, "scheduler": False}
