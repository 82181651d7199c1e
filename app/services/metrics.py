"""
Per-employee read models: recent work metrics and hours-based salary.

Hours come from closed check-in events only; an event without a check-out
contributes nothing until it is closed (manually or by the sweep).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.attendance import AttendanceDay, AttendanceMonth, AttendanceYear
from app.models.checkin import CheckIn
from app.services.aggregation import DayStatus
from app.services.rules import AttendanceRules


@dataclass(frozen=True)
class WorkMetrics:
    employee_id: int
    start_date: date
    end_date: date
    total_hours: float
    days_worked: int
    leave_days: int


@dataclass(frozen=True)
class SalarySummary:
    employee_id: int
    year: int | None
    month: int | None
    hours_worked: float
    hourly_rate: float
    amount: float


def _closed(employee_id: int):
    return CheckIn.employee_id == employee_id, CheckIn.check_out_time.is_not(None)


async def work_metrics(
    db: AsyncSession,
    employee_id: int,
    *,
    rules: AttendanceRules,
    now: datetime,
    days: int = 7,
) -> WorkMetrics:
    """Hours, worked days and leave days over the last *days* office-local days."""
    end = rules.local_date(now)
    start = end - timedelta(days=days - 1)
    in_range = (CheckIn.date >= start.isoformat(), CheckIn.date <= end.isoformat())

    result = await db.execute(
        select(func.coalesce(func.sum(CheckIn.hours_worked), 0.0), func.count(CheckIn.id)).where(
            *_closed(employee_id), *in_range
        )
    )
    total_hours, days_worked = result.one()

    leave_days = await db.scalar(
        select(func.count(AttendanceDay.id))
        .join(AttendanceMonth, AttendanceDay.month_id == AttendanceMonth.id)
        .join(AttendanceYear, AttendanceMonth.year_id == AttendanceYear.id)
        .where(
            AttendanceYear.employee_id == employee_id,
            AttendanceDay.status == DayStatus.LEAVE.value,
            AttendanceDay.date >= start.isoformat(),
            AttendanceDay.date <= end.isoformat(),
        )
    )
    return WorkMetrics(
        employee_id=employee_id,
        start_date=start,
        end_date=end,
        total_hours=round(float(total_hours), 2),
        days_worked=days_worked or 0,
        leave_days=leave_days or 0,
    )


async def salary_summary(
    db: AsyncSession,
    employee_id: int,
    *,
    hourly_rate: float,
    year: int | None = None,
    month: int | None = None,
) -> SalarySummary:
    """Closed-event hours times *hourly_rate*, optionally for one year or month."""
    query = select(func.coalesce(func.sum(CheckIn.hours_worked), 0.0)).where(
        *_closed(employee_id)
    )
    if year is not None:
        query = query.where(CheckIn.year == year)
    if month is not None:
        query = query.where(CheckIn.month == month)
    hours = round(float(await db.scalar(query) or 0.0), 2)
    return SalarySummary(
        employee_id=employee_id,
        year=year,
        month=month,
        hours_worked=hours,
        hourly_rate=hourly_rate,
        amount=round(hours * hourly_rate, 2),
    )
