"""Pydantic schemas for Employee CRUD."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, field_validator

_CODE_RE = re.compile(r"^[A-Za-z0-9_-]{2,32}$")


class EmployeeCreate(BaseModel):
    name: str
    email: str
    employee_code: str | None = None  # generated when omitted
    contact_number: str | None = None
    department: str | None = None
    designation: str | None = None
    # When given, an "employee" login account is created and linked
    password: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        if len(v) > 200:
            raise ValueError("Name must not exceed 200 characters")
        return v

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator("employee_code")
    @classmethod
    def _code(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip().upper()
        if not _CODE_RE.match(v):
            raise ValueError("Employee code must be 2-32 alphanumeric chars")
        return v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str | None) -> str | None:
        if v is not None and len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v


class EmployeeUpdate(BaseModel):
    name: str | None = None
    contact_number: str | None = None
    department: str | None = None
    designation: str | None = None
    on_leave: bool | None = None


class EmployeeRead(BaseModel):
    id: int
    employee_code: str
    name: str
    email: str
    contact_number: str | None
    department: str | None
    designation: str | None
    is_registered: bool
    on_leave: bool
    is_active: bool
    created_at: datetime | None

    model_config = {"from_attributes": True}
