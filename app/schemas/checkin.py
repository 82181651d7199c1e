"""Pydantic schemas for check-in / check-out and fingerprint credentials."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class CheckInRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class FingerprintRequest(BaseModel):
    credential: str = Field(min_length=8, max_length=4096)

    @field_validator("credential")
    @classmethod
    def _credential(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Credential must not be empty")
        return v


class CheckInRead(BaseModel):
    id: int
    employee_id: int
    date: str
    is_auto: bool
    check_in_time: datetime | None
    check_out_time: datetime | None
    verified: bool
    status: str
    hours_worked: float

    model_config = {"from_attributes": True}


class CheckInStatusResponse(BaseModel):
    date: str
    checked_in: bool
    checked_out: bool
    check_in_time: datetime | None = None
    check_out_time: datetime | None = None
    verified: bool = False
    is_auto: bool = False
    status: str | None = None
    hours_worked: float = 0.0

    model_config = {"from_attributes": True}


class FingerprintResponse(BaseModel):
    success: bool
    message: str
