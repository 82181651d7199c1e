"""
Task endpoints — admins assign work, employees track their own.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_current_employee, get_db, require_admin
from app.api.v1.endpoints.employees import get_employee_or_404
from app.core.clock import utcnow
from app.models.employee import Employee
from app.models.task import Task
from app.models.user import User
from app.schemas.attendance import DeleteResponse
from app.schemas.task import TaskCreate, TaskRead, TaskStatusUpdate, TaskUpdate

router = APIRouter(prefix="/tasks", tags=["tasks"])
logger = logging.getLogger(__name__)


async def _get_task_or_404(db: AsyncSession, task_id: int) -> Task:
    task = await db.get(Task, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


# ── Admin ───────────────────────────────────────────────────────────
@router.post("", response_model=TaskRead, status_code=201)
async def create_task(
    body: TaskCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Task:
    employee = await get_employee_or_404(db, body.employee_id)
    if not employee.is_active:
        raise HTTPException(status_code=400, detail="Cannot assign tasks to a deactivated employee")

    data = body.model_dump()
    data["due_date"] = body.due_date.isoformat()
    task = Task(**data)
    db.add(task)
    await db.commit()
    await db.refresh(task)
    logger.info("Task %s assigned to employee %s", task.id, task.employee_id)
    return task


@router.get("", response_model=list[TaskRead])
async def list_tasks(
    employee_id: int | None = None,
    status: str | None = None,
    skip: int = 0,
    limit: int = Query(default=50, le=500),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[Task]:
    query = select(Task).order_by(Task.due_date, Task.id).offset(skip).limit(limit)
    if employee_id is not None:
        query = query.where(Task.employee_id == employee_id)
    if status:
        query = query.where(Task.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.put("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: int,
    body: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Task:
    task = await _get_task_or_404(db, task_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        if field == "due_date" and value is not None:
            value = value.isoformat()
        setattr(task, field, value)
    task.updated_at = utcnow()
    await db.commit()
    await db.refresh(task)
    return task


@router.delete("/{task_id}", response_model=DeleteResponse)
async def delete_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> DeleteResponse:
    task = await _get_task_or_404(db, task_id)
    await db.delete(task)
    await db.commit()
    logger.info("Deleted task %d", task_id)
    return DeleteResponse(success=True, message=f"Task '{task.title}' deleted")


# ── Employee self-service ──────────────────────────────────────────
@router.get("/mine", response_model=list[TaskRead])
async def my_tasks(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
) -> list[Task]:
    result = await db.execute(
        select(Task).where(Task.employee_id == employee.id).order_by(Task.due_date, Task.id)
    )
    return list(result.scalars().all())


@router.patch("/{task_id}/status", response_model=TaskRead)
async def update_my_task_status(
    task_id: int,
    body: TaskStatusUpdate,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
) -> Task:
    task = await _get_task_or_404(db, task_id)
    if task.employee_id != employee.id:
        raise HTTPException(status_code=403, detail="Task is assigned to someone else")
    task.status = body.status
    task.updated_at = utcnow()
    await db.commit()
    await db.refresh(task)
    logger.info("Employee %s set task %s to %s", employee.id, task.id, task.status)
    return task
