"""
Attendance rollup tables — one row per employee-year, per month, per day.

The counter columns are written only by ``app.services.attendance_store``
from the pure aggregation in ``app.services.aggregation``; never update
them directly.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Column, DateTime, Float, ForeignKey, Integer, String,
                        UniqueConstraint)
from sqlalchemy.orm import relationship

from app.db.base import Base


def _counter_column() -> Column:
    return Column(Integer, nullable=False, default=0, server_default="0")


class AttendanceYear(Base):
    __tablename__ = "attendance_years"
    __table_args__ = (
        UniqueConstraint("employee_id", "year", name="uq_attendance_emp_year"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)  # type: ignore[assignment]
    year: int = Column(Integer, nullable=False, index=True)  # type: ignore[assignment]

    # Yearly summary: sum of the month counters
    total_working_days: int = _counter_column()  # type: ignore[assignment]
    present_days: int = _counter_column()  # type: ignore[assignment]
    absent_days: int = _counter_column()  # type: ignore[assignment]
    late_days: int = _counter_column()  # type: ignore[assignment]
    half_days: int = _counter_column()  # type: ignore[assignment]
    leaves_taken: int = _counter_column()  # type: ignore[assignment]

    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    employee = relationship("Employee", back_populates="attendance_years")
    months = relationship(
        "AttendanceMonth",
        back_populates="year_record",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="AttendanceMonth.month",
    )


class AttendanceMonth(Base):
    __tablename__ = "attendance_months"
    __table_args__ = (
        UniqueConstraint("year_id", "month", name="uq_attendance_year_month"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    year_id: int = Column(Integer, ForeignKey("attendance_years.id"), nullable=False)  # type: ignore[assignment]
    month: int = Column(Integer, nullable=False)  # type: ignore[assignment]  # 1-12

    total_working_days: int = _counter_column()  # type: ignore[assignment]
    present_days: int = _counter_column()  # type: ignore[assignment]
    absent_days: int = _counter_column()  # type: ignore[assignment]
    late_days: int = _counter_column()  # type: ignore[assignment]
    half_days: int = _counter_column()  # type: ignore[assignment]
    leaves_taken: int = _counter_column()  # type: ignore[assignment]
    approval_status: str = Column(  # type: ignore[assignment]
        String(20), nullable=False, default="Pending", server_default="Pending"
    )  # Pending | Approved | Rejected

    year_record = relationship("AttendanceYear", back_populates="months")
    days = relationship(
        "AttendanceDay",
        back_populates="month_record",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="AttendanceDay.date",
    )


class AttendanceDay(Base):
    __tablename__ = "attendance_days"
    __table_args__ = (
        UniqueConstraint("month_id", "date", name="uq_attendance_month_date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    month_id: int = Column(Integer, ForeignKey("attendance_months.id"), nullable=False)  # type: ignore[assignment]
    date: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # YYYY-MM-DD
    status: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    # Present | Late | Absent | Half-day | Holiday | Leave
    check_in_time: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    check_out_time: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    hours_worked: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    notes: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]

    month_record = relationship("AttendanceMonth", back_populates="days")
