"""Pydantic schemas for attendance rollups, rules settings and the dashboard."""

from __future__ import annotations

import re
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from app.services.aggregation import ApprovalStatus, DayStatus

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_OFFSET_RE = re.compile(r"^[+-](0\d|1[0-4]):(00|15|30|45)$")


# ── Days ────────────────────────────────────────────────────────────
class DayIn(BaseModel):
    day: int = Field(ge=1, le=31)
    status: DayStatus
    check_in_time: datetime | None = None
    check_out_time: datetime | None = None
    notes: str | None = Field(default=None, max_length=500)


class DaysSubmit(BaseModel):
    days: list[DayIn] = Field(min_length=1, max_length=31)


class DayRead(BaseModel):
    date: date
    status: DayStatus
    check_in_time: datetime | None = None
    check_out_time: datetime | None = None
    hours_worked: float | None = None
    notes: str | None = None

    model_config = {"from_attributes": True}


# ── Summaries ───────────────────────────────────────────────────────
class CountersRead(BaseModel):
    total_working_days: int = 0
    present_days: int = 0
    absent_days: int = 0
    late_days: int = 0
    half_days: int = 0
    leaves_taken: int = 0

    model_config = {"from_attributes": True}


class MonthAttendanceResponse(BaseModel):
    employee_id: int
    year: int
    month: int
    approval_status: ApprovalStatus
    days: list[DayRead]
    summary: CountersRead
    flagged_days: list[str] = Field(default_factory=list)


class YearAttendanceResponse(BaseModel):
    employee_id: int
    year: int
    months: dict[int, CountersRead]
    yearly_summary: CountersRead


class ApprovalUpdate(BaseModel):
    status: ApprovalStatus


# ── Attendance Settings ────────────────────────────────────────────
class AttendanceSettingsRead(BaseModel):
    work_start: str
    grace_minutes: int
    half_day_after: str
    checkin_window_start: str
    checkin_window_end: str
    timezone_offset: str
    office_latitude: float
    office_longitude: float
    geofence_radius_m: float
    sweep_hour: int

    model_config = {"from_attributes": True}


class AttendanceSettingsUpdate(BaseModel):
    work_start: str | None = None
    grace_minutes: int | None = Field(default=None, ge=0, le=240)
    half_day_after: str | None = None
    checkin_window_start: str | None = None
    checkin_window_end: str | None = None
    timezone_offset: str | None = None
    office_latitude: float | None = Field(default=None, ge=-90, le=90)
    office_longitude: float | None = Field(default=None, ge=-180, le=180)
    geofence_radius_m: float | None = Field(default=None, gt=0)
    sweep_hour: int | None = Field(default=None, ge=0, le=23)

    @field_validator(
        "work_start", "half_day_after", "checkin_window_start", "checkin_window_end"
    )
    @classmethod
    def _hhmm(cls, v: str | None) -> str | None:
        if v is not None and not _HHMM_RE.match(v):
            raise ValueError("Time must be HH:MM (24h)")
        return v

    @field_validator("timezone_offset")
    @classmethod
    def _offset(cls, v: str | None) -> str | None:
        if v is not None and not _OFFSET_RE.match(v):
            raise ValueError("Offset must look like +05:30 or -04:00")
        return v


# ── Dashboard / Health ─────────────────────────────────────────────
class DashboardOverview(BaseModel):
    date: str
    total_employees: int
    checked_in_today: int
    checked_out_today: int
    auto_checkins_today: int
    on_leave: int
    avg_hours_today: float


class WorkMetricsResponse(BaseModel):
    employee_id: int
    start_date: date
    end_date: date
    total_hours: float
    days_worked: int
    leave_days: int

    model_config = {"from_attributes": True}


class SalaryResponse(BaseModel):
    employee_id: int
    year: int | None
    month: int | None
    hours_worked: float
    hourly_rate: float
    amount: float
    currency: str


class HealthResponse(BaseModel):
    db: bool
    scheduler: bool


# ── Generic ────────────────────────────────────────────────────────
class LogoutResponse(BaseModel):
    message: str


class DeleteResponse(BaseModel):
    success: bool
    message: str
