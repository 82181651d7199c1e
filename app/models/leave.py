"""
Leave request model — an employee asks for time off, an admin decides.

Approving a request writes one Leave day per calendar date of the range into
the employee's attendance rollup.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.db.base import Base


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)  # type: ignore[assignment]
    leave_type: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    start_date: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # YYYY-MM-DD
    end_date: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # YYYY-MM-DD, inclusive
    reason: str = Column(String(1000), nullable=False)  # type: ignore[assignment]
    status: str = Column(String(10), nullable=False, default="pending")  # type: ignore[assignment]
    # pending | approved | rejected
    admin_comment: str = Column(String(1000), nullable=False, default="")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def days(self) -> int:
        """Calendar days covered, both ends included."""
        return (date.fromisoformat(self.end_date) - date.fromisoformat(self.start_date)).days + 1
