"""
Attendance Settings model — singleton table for admin-configurable rules.

Only one row should ever exist. The admin updates it via the settings API;
the check-in reconciler and the scheduled sweep read it (through
``app.services.rules.AttendanceRules``) to decide the check-in window, the
geofence, late / half-day thresholds and the sweep hour.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String

from app.db.base import Base


class AttendanceSettings(Base):
    __tablename__ = "attendance_settings"

    id: int = Column(Integer, primary_key=True, default=1)  # type: ignore[assignment]
    work_start: str = Column(String(5), nullable=False, default="09:00")  # type: ignore[assignment]
    grace_minutes: int = Column(Integer, nullable=False, default=15)  # type: ignore[assignment]
    half_day_after: str = Column(String(5), nullable=False, default="13:00")  # type: ignore[assignment]
    checkin_window_start: str = Column(String(5), nullable=False, default="09:00")  # type: ignore[assignment]
    checkin_window_end: str = Column(String(5), nullable=False, default="19:00")  # type: ignore[assignment]
    timezone_offset: str = Column(String(6), nullable=False, default="+05:30")  # type: ignore[assignment]

    # Geofence: circle around the office
    office_latitude: float = Column(Float, nullable=False, default=10.8261981)  # type: ignore[assignment]
    office_longitude: float = Column(Float, nullable=False, default=77.0608064)  # type: ignore[assignment]
    geofence_radius_m: float = Column(Float, nullable=False, default=500_000.0)  # type: ignore[assignment]

    # Local hour at which the auto check-in / check-out sweep runs
    sweep_hour: int = Column(Integer, nullable=False, default=17)  # type: ignore[assignment]

    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
