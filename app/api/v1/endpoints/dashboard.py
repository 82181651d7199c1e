"""
Dashboard overview, per-employee work metrics and health check.

The overview aggregates today's check-in rows in one query per figure;
"today" is the office-local date from the attendance settings.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import (get_current_active_user, get_db, get_rules,
                             require_manager)
from app.api.v1.endpoints.attendance import authorize_view
from app.core.clock import utcnow
from app.models.checkin import CheckIn
from app.models.employee import Employee
from app.models.user import User
from app.schemas.attendance import (DashboardOverview, HealthResponse,
                                    WorkMetricsResponse)
from app.services.metrics import WorkMetrics, work_metrics
from app.services.rules import AttendanceRules

router = APIRouter(tags=["dashboard"])
logger = logging.getLogger(__name__)


@router.get("/dashboard/overview", response_model=DashboardOverview)
async def dashboard_overview(
    db: AsyncSession = Depends(get_db),
    rules: AttendanceRules = Depends(get_rules),
    _user: User = Depends(require_manager),
) -> DashboardOverview:
    today = rules.local_date(utcnow()).isoformat()
    active = Employee.is_active.is_(True)

    total = await db.scalar(select(func.count(Employee.id)).where(active))
    on_leave = await db.scalar(
        select(func.count(Employee.id)).where(active, Employee.on_leave.is_(True))
    )

    result = await db.execute(
        select(
            func.count(CheckIn.id),
            func.count(CheckIn.check_out_time),
            func.count(case((CheckIn.is_auto.is_(True), 1))),
        ).where(CheckIn.date == today)
    )
    checked_in, checked_out, auto = result.one()

    avg_hours = await db.scalar(
        select(func.avg(CheckIn.hours_worked)).where(
            CheckIn.date == today, CheckIn.check_out_time.is_not(None)
        )
    )

    return DashboardOverview(
        date=today,
        total_employees=total or 0,
        checked_in_today=checked_in or 0,
        checked_out_today=checked_out or 0,
        auto_checkins_today=auto or 0,
        on_leave=on_leave or 0,
        avg_hours_today=round(float(avg_hours or 0.0), 2),
    )


@router.get("/dashboard/{employee_id}/work-metrics", response_model=WorkMetricsResponse)
async def employee_work_metrics(
    employee_id: int,
    days: int = Query(default=7, ge=1, le=90),
    db: AsyncSession = Depends(get_db),
    rules: AttendanceRules = Depends(get_rules),
    user: User = Depends(get_current_active_user),
) -> WorkMetrics:
    """Hours worked and leave taken over the last *days* local days (self or staff)."""
    await authorize_view(db, user, employee_id)
    return await work_metrics(db, employee_id, rules=rules, now=utcnow(), days=days)


@router.get("/health", response_model=HealthResponse)
async def health(request: Request, db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check — DB connectivity and scheduler state."""
    result = HealthResponse(db=False, scheduler=False)

    try:
        await db.execute(select(1))
        result.db = True
    except Exception as e:
        logger.error("Health check DB failure: %s", e)

    scheduler = getattr(request.app.state, "scheduler", None)
    result.scheduler = bool(scheduler is not None and scheduler.running)
    return result
