"""
Leave request decisions.

An approved request becomes one ``Leave`` day per calendar date of its range,
merged into the employee-year rollup in the same commit as the status change.
Requests never span two years, so a single ``(employee_id, year)`` lock
covers the whole write.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import LeaveAlreadyDecided, LeaveRequestNotFound
from app.models.leave import LeaveRequest
from app.services.aggregation import DayRecord, DayStatus
from app.services.attendance_store import record_days, write_atomically

logger = logging.getLogger(__name__)

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"


def leave_dates(start: date, end: date) -> list[date]:
    return [start + timedelta(days=n) for n in range((end - start).days + 1)]


def leave_days(leave: LeaveRequest) -> list[DayRecord]:
    start = date.fromisoformat(leave.start_date)
    end = date.fromisoformat(leave.end_date)
    note = f"{leave.leave_type.capitalize()} leave"
    return [DayRecord(day, DayStatus.LEAVE, notes=note) for day in leave_dates(start, end)]


async def decide_leave(
    db: AsyncSession,
    leave_id: int,
    *,
    status: str,
    admin_comment: str = "",
) -> LeaveRequest:
    """Approve or reject a pending request; approval records the Leave days."""
    leave = await db.get(LeaveRequest, leave_id)
    if leave is None:
        raise LeaveRequestNotFound()
    employee_id = leave.employee_id
    year = date.fromisoformat(leave.start_date).year

    async def _operation() -> LeaveRequest:
        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.id == leave_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one()
        if row.status != PENDING:
            raise LeaveAlreadyDecided(f"Leave request {leave_id} is already {row.status}")
        row.status = status
        row.admin_comment = admin_comment
        if status == APPROVED:
            await record_days(db, employee_id, year, leave_days(row))
        return row

    leave = await write_atomically(db, (employee_id, year), _operation)
    logger.info(
        "Leave request %s for employee %s %s (%s to %s)",
        leave.id,
        employee_id,
        leave.status,
        leave.start_date,
        leave.end_date,
    )
    return leave
