"""
Check-in / check-out reconciler.

One attendance day per (employee, office-local date) moves through::

    NoRecord ──check_in / sweep──▶ CheckedIn ──check_out / sweep──▶ CheckedOut

``verified`` (fingerprint confirmation) is an orthogonal flag on the same
row.  Every transition that touches the day's status or timestamps folds
the day into the employee's month / year rollup inside the same commit, so
stored summaries are never behind the latest check-in row.

Business-rule rejections (window, geofence, fingerprint) are raised before
anything is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import ensure_utc, hours_between, utcnow
from app.core.exceptions import (AlreadyCheckedIn, AlreadyCheckedOut,
                                 FingerprintMismatch, FingerprintNotRegistered,
                                 InvalidInterval, NotCheckedIn, OutsideGeofence,
                                 OutsideWindow)
from app.core.security import verify_credential
from app.models.checkin import CheckIn
from app.models.employee import Employee
from app.services.aggregation import DayRecord, DayStatus
from app.services.attendance_store import (record_days, stored_day_status,
                                           write_atomically)
from app.services.notifications import NotificationEmitter
from app.services.rules import AttendanceRules

logger = logging.getLogger(__name__)

AUTO_CHECKIN_NOTE = "Automatic check-in"

# Recorded days the sweep must not turn into an automatic Present
NON_WORKING = frozenset(
    {DayStatus.LEAVE.value, DayStatus.HOLIDAY.value, DayStatus.ABSENT.value}
)

# Sweep outcomes
AUTO_CHECKIN = "auto_checkin"
AUTO_CHECKOUT = "auto_checkout"
SKIPPED = "skipped"


@dataclass(frozen=True)
class CheckInStatus:
    date: str
    checked_in: bool
    checked_out: bool
    check_in_time: datetime | None = None
    check_out_time: datetime | None = None
    verified: bool = False
    is_auto: bool = False
    status: str | None = None
    hours_worked: float = 0.0


# ── Helpers ─────────────────────────────────────────────────────────
async def find_event(
    db: AsyncSession, employee_id: int, day: str, *, for_update: bool = False
) -> CheckIn | None:
    stmt = select(CheckIn).where(CheckIn.employee_id == employee_id, CheckIn.date == day)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def _new_event(employee_id: int, local_day: date, moment: datetime, **fields) -> CheckIn:
    return CheckIn(
        employee_id=employee_id,
        date=local_day.isoformat(),
        year=local_day.year,
        month=local_day.month,
        day=local_day.day,
        check_in_time=moment,
        hours_worked=0.0,
        verified=False,
        **fields,
    )


def _close(event: CheckIn, moment: datetime) -> None:
    check_in_time = ensure_utc(event.check_in_time)
    if moment < check_in_time:
        raise InvalidInterval(
            f"Check-out {moment.isoformat()} is before check-in {check_in_time.isoformat()}"
        )
    event.check_out_time = moment
    event.hours_worked = round(hours_between(check_in_time, moment), 2)


async def _sync_rollup(db: AsyncSession, event: CheckIn) -> None:
    """Fold the event's day into the month / year rollup (same transaction)."""
    day = DayRecord(
        date=date.fromisoformat(event.date),
        status=DayStatus(event.status),
        check_in_time=ensure_utc(event.check_in_time),
        check_out_time=ensure_utc(event.check_out_time),
        hours_worked=event.hours_worked if event.check_out_time else None,
        notes=AUTO_CHECKIN_NOTE if event.is_auto else None,
    )
    year_row = await record_days(db, event.employee_id, event.year, [day])
    event.attendance_year_id = year_row.id


def _now(now: datetime | None) -> datetime:
    return ensure_utc(now) if now is not None else utcnow()


# ── Transitions ─────────────────────────────────────────────────────
async def check_in(
    db: AsyncSession,
    employee: Employee,
    *,
    latitude: float,
    longitude: float,
    rules: AttendanceRules,
    now: datetime | None = None,
    notifier: NotificationEmitter | None = None,
) -> CheckIn:
    """Manual ``NoRecord -> CheckedIn``."""
    now = _now(now)
    employee_id, employee_name = employee.id, employee.name
    local = rules.to_local(now)

    if not rules.within_window(local):
        raise OutsideWindow(
            f"Check-in allowed only between {rules.window_start:%H:%M} "
            f"and {rules.window_end:%H:%M}"
        )
    distance = rules.distance_from_office(latitude, longitude)
    logger.debug(
        "Employee %s is %.0fm from office (radius %.0fm)",
        employee_id,
        distance,
        rules.geofence_radius_m,
    )
    if distance > rules.geofence_radius_m:
        raise OutsideGeofence(
            f"Outside geofence: {distance:.0f}m from office, "
            f"allowed radius {rules.geofence_radius_m:.0f}m"
        )

    status = rules.classify_arrival(local)
    local_day = local.date()

    async def _operation() -> CheckIn:
        event = await find_event(db, employee_id, local_day.isoformat(), for_update=True)
        if event is not None:
            raise AlreadyCheckedIn()
        event = _new_event(
            employee_id,
            local_day,
            now,
            is_auto=False,
            status=status.value,
            latitude=latitude,
            longitude=longitude,
        )
        db.add(event)
        await db.flush()
        await _sync_rollup(db, event)
        return event

    event = await write_atomically(db, (employee_id, local_day.year), _operation)
    logger.info(
        "Check-in %s for employee %s (%s) on %s", status.value, employee_id, employee_name, event.date
    )

    if notifier is not None:
        await notifier.emit_check_in(employee_name, now, rules.tz)
    return event


async def check_out(
    db: AsyncSession,
    employee: Employee,
    *,
    rules: AttendanceRules,
    now: datetime | None = None,
) -> CheckIn:
    """Manual ``CheckedIn -> CheckedOut``.

    The event is looked up by the office-local date of *now*, so a check-in
    still open after local midnight is not found here (``NotCheckedIn``).
    Only the sweep on the check-in's own date closes it, which means a
    check-in made after that day's sweep stays open.
    """
    now = _now(now)
    employee_id = employee.id
    local_day = rules.local_date(now)

    async def _operation() -> CheckIn:
        event = await find_event(db, employee_id, local_day.isoformat(), for_update=True)
        if event is None or event.check_in_time is None:
            raise NotCheckedIn()
        if event.check_out_time is not None:
            raise AlreadyCheckedOut()
        _close(event, now)
        await db.flush()
        await _sync_rollup(db, event)
        return event

    event = await write_atomically(db, (employee_id, local_day.year), _operation)
    logger.info(
        "Check-out for employee %s on %s (%.2fh)", employee_id, event.date, event.hours_worked
    )
    return event


async def verify_fingerprint(
    db: AsyncSession,
    employee: Employee,
    credential: str,
    *,
    rules: AttendanceRules,
    now: datetime | None = None,
) -> CheckIn:
    """Set the ``verified`` flag on today's event; mismatches change nothing."""
    now = _now(now)
    employee_id = employee.id
    if not employee.fingerprint_hash:
        raise FingerprintNotRegistered()
    if not verify_credential(credential, employee.fingerprint_hash):
        logger.warning("Fingerprint mismatch for employee %s", employee_id)
        raise FingerprintMismatch()

    local_day = rules.local_date(now)

    async def _operation() -> CheckIn:
        event = await find_event(db, employee_id, local_day.isoformat(), for_update=True)
        if event is None:
            raise NotCheckedIn()
        event.verified = True
        return event

    event = await write_atomically(db, (employee_id, local_day.year), _operation)
    logger.info("Fingerprint verified for employee %s on %s", employee_id, event.date)
    return event


async def sweep_employee(
    db: AsyncSession,
    employee_id: int,
    *,
    rules: AttendanceRules,
    now: datetime | None = None,
) -> str:
    """Automatic transition for one employee at sweep time.

    No event today -> synthesise an auto check-in, unless the employee is
    flagged ``on_leave`` or today is already recorded as Leave, Holiday or
    Absent.  An open manual event -> auto check-out.  An existing auto event
    is left alone, so repeated sweeps on the same day neither duplicate nor
    close it.
    """
    now = _now(now)
    local_day = rules.local_date(now)

    async def _operation() -> str:
        event = await find_event(db, employee_id, local_day.isoformat(), for_update=True)
        if event is None:
            on_leave = await db.scalar(select(Employee.on_leave).where(Employee.id == employee_id))
            if on_leave or await stored_day_status(db, employee_id, local_day) in NON_WORKING:
                return SKIPPED
            event = _new_event(
                employee_id,
                local_day,
                now,
                is_auto=True,
                status=DayStatus.PRESENT.value,
            )
            db.add(event)
            await db.flush()
            await _sync_rollup(db, event)
            return AUTO_CHECKIN
        if event.is_auto:
            return SKIPPED
        if event.check_in_time is not None and event.check_out_time is None:
            _close(event, now)
            await db.flush()
            await _sync_rollup(db, event)
            return AUTO_CHECKOUT
        return SKIPPED

    return await write_atomically(db, (employee_id, local_day.year), _operation)


# ── Reads ───────────────────────────────────────────────────────────
async def today_status(
    db: AsyncSession,
    employee_id: int,
    *,
    rules: AttendanceRules,
    now: datetime | None = None,
) -> CheckInStatus:
    local_day = rules.local_date(_now(now)).isoformat()
    event = await find_event(db, employee_id, local_day)
    if event is None:
        return CheckInStatus(date=local_day, checked_in=False, checked_out=False)
    return CheckInStatus(
        date=local_day,
        checked_in=event.check_in_time is not None,
        checked_out=event.check_out_time is not None,
        check_in_time=ensure_utc(event.check_in_time),
        check_out_time=ensure_utc(event.check_out_time),
        verified=event.verified,
        is_auto=event.is_auto,
        status=event.status,
        hours_worked=event.hours_worked,
    )
