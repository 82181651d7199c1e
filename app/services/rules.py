"""
Attendance rules — the admin-configured check-in policy.

``AttendanceRules`` is an immutable snapshot of the singleton
``attendance_settings`` row, so a check-in or a sweep tick evaluates one
consistent policy even if an admin edits the settings concurrently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import ensure_utc, parse_hhmm, parse_offset
from app.core.config import settings
from app.models.attendance_settings import AttendanceSettings
from app.services.aggregation import DayStatus
from app.services.geo import distance_m

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttendanceRules:
    work_start: time
    grace_minutes: int
    half_day_after: time
    window_start: time
    window_end: time
    tz: timezone
    office_latitude: float
    office_longitude: float
    geofence_radius_m: float
    sweep_hour: int

    @classmethod
    def from_settings(cls, row: AttendanceSettings) -> AttendanceRules:
        return cls(
            work_start=parse_hhmm(row.work_start),
            grace_minutes=row.grace_minutes,
            half_day_after=parse_hhmm(row.half_day_after),
            window_start=parse_hhmm(row.checkin_window_start),
            window_end=parse_hhmm(row.checkin_window_end),
            tz=parse_offset(row.timezone_offset),
            office_latitude=row.office_latitude,
            office_longitude=row.office_longitude,
            geofence_radius_m=row.geofence_radius_m,
            sweep_hour=row.sweep_hour,
        )

    # ── Local time ──────────────────────────────────────────────────
    def to_local(self, moment: datetime) -> datetime:
        return ensure_utc(moment).astimezone(self.tz)

    def local_date(self, moment: datetime) -> date:
        return self.to_local(moment).date()

    # ── Policy checks ───────────────────────────────────────────────
    def within_window(self, local: datetime) -> bool:
        return self.window_start <= local.time() < self.window_end

    def classify_arrival(self, local: datetime) -> DayStatus:
        """On time (within grace) -> Present, before the half-day cutoff -> Late, else Half-day."""
        on_time_until = datetime.combine(
            local.date(), self.work_start, tzinfo=local.tzinfo
        ) + timedelta(minutes=self.grace_minutes)
        if local <= on_time_until:
            return DayStatus.PRESENT
        if local.time() <= self.half_day_after:
            return DayStatus.LATE
        return DayStatus.HALF_DAY

    def distance_from_office(self, latitude: float, longitude: float) -> float:
        return distance_m(latitude, longitude, self.office_latitude, self.office_longitude)


def default_settings_row() -> AttendanceSettings:
    return AttendanceSettings(
        id=1,
        work_start=settings.DEFAULT_WORK_START,
        grace_minutes=settings.DEFAULT_GRACE_MINUTES,
        half_day_after=settings.DEFAULT_HALF_DAY_AFTER,
        checkin_window_start=settings.DEFAULT_CHECKIN_WINDOW_START,
        checkin_window_end=settings.DEFAULT_CHECKIN_WINDOW_END,
        timezone_offset=settings.DEFAULT_TIMEZONE_OFFSET,
        office_latitude=settings.DEFAULT_OFFICE_LATITUDE,
        office_longitude=settings.DEFAULT_OFFICE_LONGITUDE,
        geofence_radius_m=settings.DEFAULT_GEOFENCE_RADIUS_M,
        sweep_hour=settings.DEFAULT_SWEEP_HOUR,
    )


async def get_or_create_settings(db: AsyncSession) -> AttendanceSettings:
    """Fetch the singleton settings row, creating it with defaults if absent."""
    result = await db.execute(select(AttendanceSettings).limit(1))
    row = result.scalar_one_or_none()
    if row is None:
        row = default_settings_row()
        db.add(row)
        await db.commit()
        await db.refresh(row)
        logger.info("Created default attendance settings")
    return row


async def load_rules(db: AsyncSession) -> AttendanceRules:
    return AttendanceRules.from_settings(await get_or_create_settings(db))
