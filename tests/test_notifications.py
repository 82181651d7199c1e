"""Tests for notification delivery and visibility."""

import pytest
from fastapi.testclient import TestClient
from httpx import AsyncClient
from starlette.websockets import WebSocketDisconnect

from app.main import app
from app.services.notifications import LiveBroadcaster, visible_to


@pytest.mark.asyncio
async def test_admin_notification_is_broadcast(async_client: AsyncClient, notifier, broadcaster):
    queue = broadcaster.subscribe()
    resp = await async_client.post(
        "/api/v1/notifications",
        json={"title": "Office closed", "message": "Friday is a holiday", "priority": "High"},
    )
    assert resp.status_code == 201
    assert resp.json()["recipient_type"] == "all"

    event = queue.get_nowait()
    assert event["type"] == "notification"
    assert event["title"] == "Office closed"
    assert event["priority"] == "High"


@pytest.mark.asyncio
async def test_recipient_value_required(async_client: AsyncClient, notifier):
    resp = await async_client.post(
        "/api/v1/notifications",
        json={"title": "Hi", "message": "Team sync", "recipient_type": "department"},
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_individual_recipient_must_exist(async_client: AsyncClient, notifier):
    resp = await async_client.post(
        "/api/v1/notifications",
        json={
            "title": "Hi",
            "message": "Please see HR",
            "recipient_type": "individual",
            "recipient_value": "NOPE-1",
        },
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_employee_sees_only_addressed_notifications(
    async_client: AsyncClient, make_employee, login_as_employee, notifier
):
    emp = await make_employee(department="Engineering", employee_code="ENG-7")
    await make_employee(department="Sales", employee_code="SAL-1")

    for body in (
        {"title": "All", "message": "For everyone"},
        {"title": "Eng", "message": "Deploy freeze", "recipient_type": "department", "recipient_value": "Engineering"},
        {"title": "Sales", "message": "Quota", "recipient_type": "department", "recipient_value": "Sales"},
        {"title": "Mine", "message": "See me", "recipient_type": "individual", "recipient_value": "ENG-7"},
        {"title": "Theirs", "message": "See me", "recipient_type": "individual", "recipient_value": "SAL-1"},
    ):
        assert (await async_client.post("/api/v1/notifications", json=body)).status_code == 201

    staff_view = await async_client.get("/api/v1/notifications")
    assert len(staff_view.json()) == 5

    login_as_employee(emp)
    resp = await async_client.get("/api/v1/notifications")
    assert resp.status_code == 200
    assert [n["title"] for n in resp.json()] == ["Mine", "Eng", "All"]


def test_visibility_rules():
    assert visible_to("admin", None, "manager")
    assert not visible_to("admin", None, "employee", "Ops", "OPS-1")
    assert not visible_to(None, None, "employee", "Ops", "OPS-1")
    assert visible_to("all", None, "employee")
    assert visible_to("department", "Ops", "employee", "Ops", "OPS-1")
    assert not visible_to("department", "Ops", "employee", "Dev", "DEV-1")
    assert visible_to("individual", "OPS-1", "employee", "Ops", "OPS-1")
    assert not visible_to("individual", "OPS-1", "employee", None, None)


@pytest.mark.asyncio
async def test_full_subscriber_queue_drops_events():
    hub = LiveBroadcaster(max_queue=1)
    queue = hub.subscribe()
    assert await hub.publish({"type": "a"}) == 1
    assert await hub.publish({"type": "b"}) == 0
    assert queue.get_nowait() == {"type": "a"}

    hub.unsubscribe(queue)
    assert hub.subscriber_count == 0


def test_live_feed_requires_token():
    client = TestClient(app)
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/api/v1/notifications/live") as ws:
            ws.receive_json()
