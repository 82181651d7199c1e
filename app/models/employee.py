"""
Employee model — the person whose attendance is tracked.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base


class Employee(Base):
    __tablename__ = "employees"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_code: str = Column(String(32), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    contact_number: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    department: str | None = Column(String(100), nullable=True, index=True)  # type: ignore[assignment]
    designation: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    fingerprint_hash: str | None = Column(String(128), nullable=True)  # type: ignore[assignment]
    is_registered: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    on_leave: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    # Login account (role "employee") used for check-in requests
    user_id: int | None = Column(  # type: ignore[assignment]
        Integer, ForeignKey("users.id"), nullable=True, unique=True
    )
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    check_ins = relationship("CheckIn", back_populates="employee")
    attendance_years = relationship("AttendanceYear", back_populates="employee")
