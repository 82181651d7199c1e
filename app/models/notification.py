"""
Notification model — persisted copy of every broadcast message.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from app.db.base import Base


class Notification(Base):
    __tablename__ = "notifications"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    title: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    message: str = Column(String(2000), nullable=False)  # type: ignore[assignment]
    recipient_type: str = Column(String(20), nullable=False, default="all")  # type: ignore[assignment]
    # all | department | individual | admin
    recipient_value: str | None = Column(String(320), nullable=True)  # type: ignore[assignment]
    priority: str = Column(String(10), nullable=False, default="Normal")  # type: ignore[assignment]  # Normal | High
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
