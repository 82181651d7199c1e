"""Pydantic schemas for leave requests."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

LeaveType = Literal["casual", "sick", "earned", "maternity", "paternity", "unpaid"]


class LeaveCreate(BaseModel):
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str = Field(max_length=1000)

    @field_validator("reason")
    @classmethod
    def _reason(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Reason must be 3+ characters")
        return v

    @model_validator(mode="after")
    def _range(self) -> LeaveCreate:
        if self.end_date < self.start_date:
            raise ValueError("End date must not be before start date")
        # One request maps onto one employee-year rollup
        if self.end_date.year != self.start_date.year:
            raise ValueError("A leave request must not span two calendar years")
        return self


class LeaveDecision(BaseModel):
    status: Literal["approved", "rejected"]
    admin_comment: str = Field(default="", max_length=1000)


class LeaveRead(BaseModel):
    id: int
    employee_id: int
    leave_type: str
    start_date: str
    end_date: str
    days: int
    reason: str
    status: str
    admin_comment: str
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}
