"""
Task model — work items assigned to employees by administrators.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.db.base import Base


class Task(Base):
    __tablename__ = "tasks"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)  # type: ignore[assignment]
    title: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    description: str = Column(String(2000), nullable=False)  # type: ignore[assignment]
    priority: str = Column(String(10), nullable=False, default="Medium")  # type: ignore[assignment]  # High | Medium | Low
    due_date: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # YYYY-MM-DD
    status: str = Column(String(30), nullable=False, default="Pending")  # type: ignore[assignment]
    # Pending | Partially Completed | Completed
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
