"""
CheckIn model — one row per employee per attendance day.

Rows are created on the first check-in of the day (manual or by the
scheduled sweep) and only ever updated afterwards; attendance history is
append-only.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Boolean, Column, DateTime, Float, ForeignKey, Index,
                        Integer, String, UniqueConstraint)
from sqlalchemy.orm import relationship

from app.db.base import Base


class CheckIn(Base):
    __tablename__ = "check_ins"
    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_checkin_emp_date"),
        Index("ix_checkin_employee_date", "employee_id", "date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    date: str = Column(String(10), nullable=False, index=True)  # type: ignore[assignment]  # YYYY-MM-DD (office local)
    year: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    month: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    day: int = Column(Integer, nullable=False)  # type: ignore[assignment]

    is_auto: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    check_in_time: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    check_out_time: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    verified: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    status: str = Column(String(20), nullable=False, default="Present")  # type: ignore[assignment]
    hours_worked: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    latitude: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    longitude: float | None = Column(Float, nullable=True)  # type: ignore[assignment]

    # Year rollup this event was aggregated into
    attendance_year_id: int | None = Column(  # type: ignore[assignment]
        Integer, ForeignKey("attendance_years.id"), nullable=True
    )

    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    employee = relationship("Employee", back_populates="check_ins")
