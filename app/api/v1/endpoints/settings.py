"""
Settings endpoints — admin-configurable attendance rules.

Singleton pattern: only one row in attendance_settings. GET retrieves it,
PUT updates it. If no row exists, one is created with defaults on first GET.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, require_admin
from app.core.clock import parse_hhmm
from app.core.exceptions import ValidationError
from app.models.attendance_settings import AttendanceSettings
from app.models.user import User
from app.schemas.attendance import AttendanceSettingsRead, AttendanceSettingsUpdate
from app.services.rules import get_or_create_settings

router = APIRouter(tags=["settings"])
logger = logging.getLogger(__name__)


@router.get("/settings", response_model=AttendanceSettingsRead)
async def get_settings(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> AttendanceSettings:
    return await get_or_create_settings(db)


@router.put("/settings", response_model=AttendanceSettingsRead)
async def update_settings(
    body: AttendanceSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> AttendanceSettings:
    """Update attendance rules. Takes effect on the next check-in or sweep tick."""
    row = await get_or_create_settings(db)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)

    window_start = parse_hhmm(changes.get("checkin_window_start", row.checkin_window_start))
    window_end = parse_hhmm(changes.get("checkin_window_end", row.checkin_window_end))
    if window_start >= window_end:
        raise ValidationError("Check-in window must start before it ends")

    for field, value in changes.items():
        setattr(row, field, value)

    await db.commit()
    await db.refresh(row)
    logger.info("Attendance settings updated: %s", changes)
    return row
