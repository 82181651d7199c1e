"""
Attendance rollup endpoints — yearly / monthly summaries, admin day
submission and monthly approval.

Employees may read their own rollup; admins and managers may read anyone's.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_current_active_user, get_db, require_admin
from app.api.v1.endpoints.employees import get_employee_or_404
from app.core.exceptions import ValidationError
from app.models.employee import Employee
from app.models.user import User
from app.schemas.attendance import (ApprovalUpdate, CountersRead, DayRead,
                                    DaysSubmit, MonthAttendanceResponse,
                                    YearAttendanceResponse)
from app.services.aggregation import DayRecord, MonthRecord, YearRecord
from app.services.attendance_store import (read_year, record_days,
                                           to_year_record, update_approval,
                                           write_atomically)

router = APIRouter(prefix="/attendance", tags=["attendance"])
logger = logging.getLogger(__name__)


async def authorize_view(db: AsyncSession, user: User, employee_id: int) -> None:
    await get_employee_or_404(db, employee_id)
    if user.role in ("admin", "manager"):
        return
    result = await db.execute(
        select(Employee.id).where(Employee.user_id == user.id, Employee.id == employee_id)
    )
    if result.scalar_one_or_none() is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to view this employee's attendance",
        )


def _month_response(record: YearRecord, month: int) -> MonthAttendanceResponse:
    data = record.months.get(month) or MonthRecord(month=month)
    return MonthAttendanceResponse(
        employee_id=record.employee_id,
        year=record.year,
        month=month,
        approval_status=data.approval_status,
        days=[DayRead.model_validate(d) for d in data.days],
        summary=CountersRead(**data.counters.as_dict()),
        flagged_days=[str(f.day.date) for f in data.flagged],
    )


@router.get("/{employee_id}/{year}", response_model=YearAttendanceResponse)
async def get_year(
    employee_id: int,
    year: int = Path(ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> YearAttendanceResponse:
    await authorize_view(db, user, employee_id)
    record = await read_year(db, employee_id, year) or YearRecord(employee_id, year)
    return YearAttendanceResponse(
        employee_id=employee_id,
        year=year,
        months={m: CountersRead(**r.counters.as_dict()) for m, r in record.months.items()},
        yearly_summary=CountersRead(**record.yearly_summary.as_dict()),
    )


@router.get("/{employee_id}/{year}/{month}", response_model=MonthAttendanceResponse)
async def get_month(
    employee_id: int,
    year: int = Path(ge=2000, le=2100),
    month: int = Path(ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> MonthAttendanceResponse:
    await authorize_view(db, user, employee_id)
    record = await read_year(db, employee_id, year) or YearRecord(employee_id, year)
    return _month_response(record, month)


@router.post("/{employee_id}/{year}/{month}", response_model=MonthAttendanceResponse)
async def submit_days(
    body: DaysSubmit,
    employee_id: int,
    year: int = Path(ge=2000, le=2100),
    month: int = Path(ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> MonthAttendanceResponse:
    """Merge days (absences, leave, corrections) into the month.

    Later entries for the same date replace earlier ones; counters are
    recomputed for the month and the year in the same commit.
    """
    await get_employee_or_404(db, employee_id)

    days = []
    for item in body.days:
        try:
            day = date(year, month, item.day)
        except ValueError:
            raise ValidationError(
                f"{year}-{month:02d}-{item.day:02d} is not a calendar date"
            ) from None
        days.append(
            DayRecord(
                date=day,
                status=item.status,
                check_in_time=item.check_in_time,
                check_out_time=item.check_out_time,
                notes=item.notes,
            )
        )

    async def _operation():
        return await record_days(db, employee_id, year, days)

    row = await write_atomically(db, (employee_id, year), _operation)
    logger.info(
        "Merged %d day(s) into employee %s %d-%02d", len(days), employee_id, year, month
    )
    return _month_response(to_year_record(row, employee_id, year), month)


@router.put("/{employee_id}/{year}/{month}/approval", response_model=MonthAttendanceResponse)
async def set_month_approval(
    body: ApprovalUpdate,
    employee_id: int,
    year: int = Path(ge=2000, le=2100),
    month: int = Path(ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> MonthAttendanceResponse:
    await get_employee_or_404(db, employee_id)

    async def _operation():
        row = await update_approval(db, employee_id, year, month, body.status)
        if row is None:
            raise ValidationError(f"No attendance recorded for {year}")
        return row

    row = await write_atomically(db, (employee_id, year), _operation)
    logger.info(
        "Employee %s %d-%02d approval set to %s", employee_id, year, month, body.status.value
    )
    return _month_response(to_year_record(row, employee_id, year), month)
