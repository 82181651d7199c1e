"""Pydantic schemas for notifications."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class NotificationCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=2000)
    recipient_type: Literal["all", "department", "individual"] = "all"
    # department name or employee code, depending on recipient_type
    recipient_value: str | None = None
    priority: Literal["Normal", "High"] = "Normal"

    @model_validator(mode="after")
    def _recipient(self) -> NotificationCreate:
        if self.recipient_type != "all" and not self.recipient_value:
            raise ValueError("recipient_value is required for department / individual")
        return self


class NotificationRead(BaseModel):
    id: int
    title: str
    message: str
    recipient_type: str
    recipient_value: str | None
    priority: str
    created_at: datetime | None

    model_config = {"from_attributes": True}
