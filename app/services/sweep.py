"""
Scheduled auto check-in / check-out sweep.

An APScheduler job ticks every quarter hour; the tick runs the sweep only in
the first quarter of the configured office-local ``sweep_hour`` (UTC offsets
are whole quarter hours, so exactly one tick per day qualifies).  Each
employee is swept in its own session and transaction, and the result of each
one is recorded as a tagged :class:`SweepOutcome` so one failure never stops
the rest of the pass.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import ensure_utc, utcnow
from app.models.employee import Employee
from app.services.reconciler import sweep_employee
from app.services.rules import AttendanceRules, load_rules

logger = logging.getLogger(__name__)

FAILED = "failed"
SWEEP_JOB_ID = "attendance-sweep"


@dataclass(frozen=True)
class SweepOutcome:
    employee_id: int
    action: str
    error: str | None = None


@dataclass
class SweepReport:
    date: str
    ran_at: datetime
    outcomes: list[SweepOutcome] = field(default_factory=list)

    def count(self, action: str) -> int:
        return sum(1 for o in self.outcomes if o.action == action)

    @property
    def failures(self) -> list[SweepOutcome]:
        return [o for o in self.outcomes if o.action == FAILED]


async def run_sweep(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    now: datetime | None = None,
    rules: AttendanceRules | None = None,
) -> SweepReport:
    """Sweep every active employee, one session each.

    An ``Exception`` from one employee is logged and recorded as a ``failed``
    outcome and the pass moves on.  ``asyncio.CancelledError`` is a
    ``BaseException`` and still propagates, so shutting the scheduler down
    stops the pass.
    """
    now = ensure_utc(now) if now is not None else utcnow()
    async with session_factory() as db:
        if rules is None:
            rules = await load_rules(db)
        result = await db.execute(
            select(Employee.id).where(Employee.is_active.is_(True)).order_by(Employee.id)
        )
        employee_ids = list(result.scalars().all())

    report = SweepReport(date=rules.local_date(now).isoformat(), ran_at=now)
    for employee_id in employee_ids:
        try:
            async with session_factory() as db:
                action = await sweep_employee(db, employee_id, rules=rules, now=now)
            report.outcomes.append(SweepOutcome(employee_id, action))
        except Exception as exc:
            logger.exception("Sweep failed for employee %s", employee_id)
            report.outcomes.append(SweepOutcome(employee_id, FAILED, str(exc)))

    tally = Counter(o.action for o in report.outcomes)
    logger.info("Sweep for %s finished: %s", report.date, dict(tally) or "no employees")
    return report


async def scheduled_tick(
    session_factory: async_sessionmaker[AsyncSession],
    now: datetime | None = None,
) -> SweepReport | None:
    """Job body: sweep only at the start of the configured local hour."""
    now = ensure_utc(now) if now is not None else utcnow()
    async with session_factory() as db:
        rules = await load_rules(db)
    local = rules.to_local(now)
    if local.hour != rules.sweep_hour or local.minute >= 15:
        return None
    return await run_sweep(session_factory, now=now, rules=rules)


def build_scheduler(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        scheduled_tick,
        CronTrigger(minute="*/15", timezone="UTC"),
        args=[session_factory],
        id=SWEEP_JOB_ID,
        coalesce=True,
        max_instances=1,
        misfire_grace_time=300,
        replace_existing=True,
    )
    return scheduler
