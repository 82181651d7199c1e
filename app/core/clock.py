"""
Time helpers shared by the reconciler, the sweep and the reports.

Timestamps are stored UTC-aware; the attendance *date* of an event is
always the calendar day in the office's configured UTC offset.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone


def utcnow() -> datetime:
    """Wall-clock source.  Callers accept an explicit ``now`` so tests can pin it."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalise a potentially-naive timestamp (SQLite drops tzinfo) to UTC-aware."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_offset(tz_offset: str) -> timezone:
    """``"+05:30"`` -> ``timezone(timedelta(hours=5, minutes=30))``."""
    tz_offset = tz_offset.strip()
    if not tz_offset or tz_offset[0] not in "+-":
        raise ValueError(f"Invalid UTC offset: {tz_offset!r}")
    sign = 1 if tz_offset[0] == "+" else -1
    parts = tz_offset[1:].split(":")
    hours = int(parts[0])
    minutes = int(parts[1]) if len(parts) > 1 else 0
    if hours > 14 or minutes > 59:
        raise ValueError(f"Invalid UTC offset: {tz_offset!r}")
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def parse_hhmm(value: str) -> time:
    """``"09:15"`` -> ``time(9, 15)``."""
    parts = value.strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"Expected HH:MM, got {value!r}")
    return time(int(parts[0]), int(parts[1]))


def hours_between(start: datetime, end: datetime) -> float:
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 3600
