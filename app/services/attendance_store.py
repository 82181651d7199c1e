"""
Attendance rollup persistence.

Loads an employee-year into the pure :mod:`aggregation` values, runs the
aggregation, and writes the result back by explicit ``(month, date)`` key
lookup.  Nothing here commits on its own: callers wrap a whole
read-modify-write in :func:`write_atomically` so the check-in event, the day,
the month counters and the yearly summary land in one transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Hashable, Iterable
from datetime import date
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import ensure_utc
from app.core.config import settings
from app.core.exceptions import AttendanceError, DuplicateRecord
from app.models.attendance import AttendanceDay, AttendanceMonth, AttendanceYear
from app.services.aggregation import (ApprovalStatus, Counters, DayRecord,
                                      MonthRecord, YearRecord, apply_days,
                                      set_approval)
from app.services.locks import rollup_locks

logger = logging.getLogger(__name__)

T = TypeVar("T")

_COUNTER_FIELDS = tuple(Counters.__dataclass_fields__)


# ── Atomic write unit ───────────────────────────────────────────────
async def write_atomically(
    db: AsyncSession,
    key: Hashable,
    operation: Callable[[], Awaitable[T]],
) -> T:
    """Run *operation* and commit, serialised per *key*.

    A unique-constraint violation means another writer inserted the same
    (employee, date) or (employee, year) row first: roll back and run the
    operation again, which now finds that row and merges into it.
    """
    async with rollup_locks.hold(key):
        for attempt in range(1, settings.WRITE_RETRY_ATTEMPTS + 1):
            try:
                result = await operation()
                await db.commit()
                return result
            except IntegrityError as exc:
                await db.rollback()
                logger.warning(
                    "Unique-key race on %s (attempt %d/%d), retrying as merge: %s",
                    key,
                    attempt,
                    settings.WRITE_RETRY_ATTEMPTS,
                    exc.orig,
                )
            except AttendanceError:
                await db.rollback()
                raise
    raise DuplicateRecord(f"Could not merge attendance for {key} after retries")


# ── Loading ─────────────────────────────────────────────────────────
async def load_year_row(
    db: AsyncSession, employee_id: int, year: int, *, for_update: bool = False
) -> AttendanceYear | None:
    stmt = select(AttendanceYear).where(
        AttendanceYear.employee_id == employee_id, AttendanceYear.year == year
    )
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def _day_from_row(row: AttendanceDay) -> DayRecord:
    # Date and status are coerced (or flagged) by the aggregator
    return DayRecord(
        date=row.date,  # type: ignore[arg-type]
        status=row.status,  # type: ignore[arg-type]
        check_in_time=ensure_utc(row.check_in_time),
        check_out_time=ensure_utc(row.check_out_time),
        hours_worked=row.hours_worked,
        notes=row.notes,
    )


def to_year_record(row: AttendanceYear | None, employee_id: int, year: int) -> YearRecord:
    """Rebuild the domain value from stored rows, recomputing every counter."""
    if row is None:
        return YearRecord(employee_id=employee_id, year=year)
    months = {
        m.month: MonthRecord(
            month=m.month,
            days=tuple(_day_from_row(d) for d in m.days),
            approval_status=ApprovalStatus(m.approval_status),
        )
        for m in row.months
    }
    return apply_days(YearRecord(employee_id=employee_id, year=year, months=months))


async def read_year(db: AsyncSession, employee_id: int, year: int) -> YearRecord | None:
    row = await load_year_row(db, employee_id, year)
    if row is None:
        return None
    return to_year_record(row, employee_id, year)


async def stored_day_status(db: AsyncSession, employee_id: int, day: date) -> str | None:
    """Status of the rolled-up day for *day*, or ``None`` if nothing is stored."""
    result = await db.execute(
        select(AttendanceDay.status)
        .join(AttendanceMonth, AttendanceDay.month_id == AttendanceMonth.id)
        .join(AttendanceYear, AttendanceMonth.year_id == AttendanceYear.id)
        .where(
            AttendanceYear.employee_id == employee_id,
            AttendanceDay.date == day.isoformat(),
        )
    )
    return result.scalar_one_or_none()


# ── Writing ─────────────────────────────────────────────────────────
def _copy_counters(target: AttendanceYear | AttendanceMonth, counters: Counters) -> None:
    for name in _COUNTER_FIELDS:
        setattr(target, name, getattr(counters, name))


def _write_year(row: AttendanceYear, record: YearRecord) -> None:
    month_rows = {m.month: m for m in row.months}
    for month_no, month in record.months.items():
        month_row = month_rows.get(month_no)
        if month_row is None:
            month_row = AttendanceMonth(month=month_no)
            row.months.append(month_row)
        _copy_counters(month_row, month.counters)
        month_row.approval_status = ApprovalStatus(month.approval_status).value

        day_rows = {d.date: d for d in month_row.days}
        for day in month.days:
            key = day.date.isoformat()
            day_row = day_rows.get(key)
            if day_row is None:
                day_row = AttendanceDay(date=key)
                month_row.days.append(day_row)
                day_rows[key] = day_row
            day_row.status = day.status.value
            day_row.check_in_time = day.check_in_time
            day_row.check_out_time = day.check_out_time
            day_row.hours_worked = day.hours_worked
            day_row.notes = day.notes

        for flagged in month.flagged:
            logger.warning(
                "Employee %s %s-%02d: day %r left out of summary (%s)",
                record.employee_id,
                record.year,
                month_no,
                flagged.day.date,
                flagged.reason,
            )
    _copy_counters(row, record.yearly_summary)


async def _persist(
    db: AsyncSession, row: AttendanceYear | None, record: YearRecord
) -> AttendanceYear:
    if row is None:
        row = AttendanceYear(employee_id=record.employee_id, year=record.year)
        db.add(row)
    _write_year(row, record)
    await db.flush()
    return row


async def record_days(
    db: AsyncSession, employee_id: int, year: int, days: Iterable[DayRecord]
) -> AttendanceYear:
    """Merge *days* into the employee-year rollup (inside the caller's transaction)."""
    row = await load_year_row(db, employee_id, year, for_update=True)
    updated = apply_days(to_year_record(row, employee_id, year), days)
    return await _persist(db, row, updated)


async def update_approval(
    db: AsyncSession, employee_id: int, year: int, month: int, status: ApprovalStatus
) -> AttendanceYear | None:
    row = await load_year_row(db, employee_id, year, for_update=True)
    if row is None:
        return None
    updated = set_approval(to_year_record(row, employee_id, year), month, status)
    return await _persist(db, row, updated)
