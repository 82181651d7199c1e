"""Tests for the attendance rules settings endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_defaults_created_on_first_read(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/settings")
    assert resp.status_code == 200
    data = resp.json()
    assert data["work_start"] == "09:00"
    assert data["grace_minutes"] == 15
    assert data["checkin_window_start"] == "09:00"
    assert data["checkin_window_end"] == "19:00"
    assert data["timezone_offset"] == "+05:30"
    assert data["geofence_radius_m"] == 500000.0
    assert data["sweep_hour"] == 17


@pytest.mark.asyncio
async def test_update_rules(async_client: AsyncClient):
    resp = await async_client.put(
        "/api/v1/settings",
        json={"work_start": "10:00", "grace_minutes": 5, "geofence_radius_m": 250.0, "sweep_hour": 18},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["work_start"] == "10:00"
    assert data["grace_minutes"] == 5
    assert data["geofence_radius_m"] == 250.0
    assert data["sweep_hour"] == 18
    # untouched fields keep their values
    assert data["half_day_after"] == "13:00"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"work_start": "25:00"},
        {"timezone_offset": "5:30"},
        {"sweep_hour": 24},
        {"geofence_radius_m": 0},
        {"grace_minutes": -1},
    ],
)
async def test_invalid_rules_rejected(async_client: AsyncClient, body):
    resp = await async_client.put("/api/v1/settings", json=body)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_window_must_be_ordered(async_client: AsyncClient):
    resp = await async_client.put(
        "/api/v1/settings", json={"checkin_window_start": "19:00", "checkin_window_end": "09:00"}
    )
    assert resp.status_code == 400
    assert (await async_client.get("/api/v1/settings")).json()["checkin_window_start"] == "09:00"
