"""
Leave endpoints — employees request time off, admins approve or reject.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import (get_current_employee, get_db, require_admin,
                             require_manager)
from app.models.employee import Employee
from app.models.leave import LeaveRequest
from app.models.user import User
from app.schemas.leave import LeaveCreate, LeaveDecision, LeaveRead
from app.services.leave import PENDING, decide_leave

router = APIRouter(prefix="/leave", tags=["leave"])
logger = logging.getLogger(__name__)


# ── Employee self-service ──────────────────────────────────────────
@router.post("/request", response_model=LeaveRead, status_code=201)
async def request_leave(
    body: LeaveCreate,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
) -> LeaveRequest:
    start, end = body.start_date.isoformat(), body.end_date.isoformat()
    overlap = await db.execute(
        select(LeaveRequest.id).where(
            LeaveRequest.employee_id == employee.id,
            LeaveRequest.status != "rejected",
            LeaveRequest.start_date <= end,
            LeaveRequest.end_date >= start,
        )
    )
    if overlap.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Overlaps an existing leave request",
        )

    leave = LeaveRequest(
        employee_id=employee.id,
        leave_type=body.leave_type,
        start_date=start,
        end_date=end,
        reason=body.reason,
        status=PENDING,
        admin_comment="",
    )
    db.add(leave)
    await db.commit()
    await db.refresh(leave)
    logger.info(
        "Employee %s requested %s leave %s to %s", employee.id, leave.leave_type, start, end
    )
    return leave


@router.get("/my-requests", response_model=list[LeaveRead])
async def my_leave_requests(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
) -> list[LeaveRequest]:
    result = await db.execute(
        select(LeaveRequest)
        .where(LeaveRequest.employee_id == employee.id)
        .order_by(LeaveRequest.id.desc())
    )
    return list(result.scalars().all())


# ── Staff ───────────────────────────────────────────────────────────
@router.get("", response_model=list[LeaveRead])
async def list_leave_requests(
    employee_id: int | None = None,
    status: str | None = None,
    skip: int = 0,
    limit: int = Query(default=50, le=500),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_manager),
) -> list[LeaveRequest]:
    query = select(LeaveRequest).order_by(LeaveRequest.id.desc()).offset(skip).limit(limit)
    if employee_id is not None:
        query = query.where(LeaveRequest.employee_id == employee_id)
    if status:
        query = query.where(LeaveRequest.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.put("/{leave_id}/decision", response_model=LeaveRead)
async def decide_leave_request(
    leave_id: int,
    body: LeaveDecision,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> LeaveRequest:
    """Approve (records Leave days in the rollup) or reject a pending request."""
    leave = await decide_leave(
        db, leave_id, status=body.status, admin_comment=body.admin_comment
    )
    await db.refresh(leave)
    return leave
