"""Pydantic schemas for tasks."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

TaskPriority = Literal["High", "Medium", "Low"]
TaskStatus = Literal["Pending", "Partially Completed", "Completed"]


class TaskCreate(BaseModel):
    employee_id: int
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=2000)
    priority: TaskPriority = "Medium"
    due_date: date
    status: TaskStatus = "Pending"


class TaskUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    priority: TaskPriority | None = None
    due_date: date | None = None
    status: TaskStatus | None = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskRead(BaseModel):
    id: int
    employee_id: int
    title: str
    description: str
    priority: str
    due_date: str
    status: str
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}
