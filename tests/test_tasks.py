"""Tests for task assignment and employee status updates."""

import pytest
from httpx import AsyncClient


async def _assign(client: AsyncClient, employee_id: int, **fields):
    body = {
        "employee_id": employee_id,
        "title": "Quarterly report",
        "description": "Compile Q1 numbers",
        "due_date": "2025-04-15",
        **fields,
    }
    return await client.post("/api/v1/tasks", json=body)


@pytest.mark.asyncio
async def test_admin_assigns_and_lists(async_client: AsyncClient, make_employee):
    emp = await make_employee()
    resp = await _assign(async_client, emp.id, priority="High")
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "Pending"
    assert data["priority"] == "High"
    assert data["due_date"] == "2025-04-15"

    listed = await async_client.get(f"/api/v1/tasks?employee_id={emp.id}")
    assert [t["id"] for t in listed.json()] == [data["id"]]


@pytest.mark.asyncio
async def test_assign_rejects_unknown_employee_and_bad_priority(async_client: AsyncClient, make_employee):
    assert (await _assign(async_client, 9999)).status_code == 404
    emp = await make_employee()
    assert (await _assign(async_client, emp.id, priority="Urgent")).status_code == 422


@pytest.mark.asyncio
async def test_admin_updates_and_deletes(async_client: AsyncClient, make_employee):
    emp = await make_employee()
    task_id = (await _assign(async_client, emp.id)).json()["id"]

    resp = await async_client.put(f"/api/v1/tasks/{task_id}", json={"due_date": "2025-05-01", "priority": "Low"})
    assert resp.status_code == 200
    assert resp.json()["due_date"] == "2025-05-01"
    assert resp.json()["priority"] == "Low"

    assert (await async_client.delete(f"/api/v1/tasks/{task_id}")).status_code == 200
    assert (await async_client.delete(f"/api/v1/tasks/{task_id}")).status_code == 404


@pytest.mark.asyncio
async def test_employee_tracks_own_tasks(async_client: AsyncClient, make_employee, login_as_employee):
    emp = await make_employee()
    other = await make_employee()
    mine = (await _assign(async_client, emp.id)).json()["id"]
    theirs = (await _assign(async_client, other.id)).json()["id"]

    login_as_employee(emp)
    listed = await async_client.get("/api/v1/tasks/mine")
    assert [t["id"] for t in listed.json()] == [mine]

    resp = await async_client.patch(f"/api/v1/tasks/{mine}/status", json={"status": "Partially Completed"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "Partially Completed"

    forbidden = await async_client.patch(f"/api/v1/tasks/{theirs}/status", json={"status": "Completed"})
    assert forbidden.status_code == 403
