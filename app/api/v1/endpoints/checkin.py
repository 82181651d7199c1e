"""
Employee check-in endpoints — fingerprint registration, geofenced
check-in, check-out, fingerprint verification and today's status.

All routes act on the Employee linked to the logged-in account.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_current_employee, get_db, get_notifier, get_rules
from app.core.security import hash_credential
from app.models.checkin import CheckIn
from app.models.employee import Employee
from app.schemas.checkin import (CheckInRead, CheckInRequest,
                                 CheckInStatusResponse, FingerprintRequest,
                                 FingerprintResponse)
from app.services import reconciler
from app.services.notifications import NotificationEmitter
from app.services.rules import AttendanceRules

router = APIRouter(tags=["checkin"])
logger = logging.getLogger(__name__)


@router.post("/checkin/fingerprint", response_model=FingerprintResponse, status_code=201)
async def register_fingerprint(
    body: FingerprintRequest,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
) -> FingerprintResponse:
    """Store the hashed fingerprint credential. One registration per employee."""
    if employee.is_registered and employee.fingerprint_hash:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Fingerprint already registered",
        )
    employee.fingerprint_hash = hash_credential(body.credential)
    employee.is_registered = True
    await db.commit()
    logger.info("Fingerprint registered for employee %s", employee.id)
    return FingerprintResponse(success=True, message="Fingerprint registered")


@router.post("/checkin", response_model=CheckInRead, status_code=201)
async def check_in(
    body: CheckInRequest,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
    rules: AttendanceRules = Depends(get_rules),
    notifier: NotificationEmitter = Depends(get_notifier),
) -> CheckIn:
    return await reconciler.check_in(
        db,
        employee,
        latitude=body.latitude,
        longitude=body.longitude,
        rules=rules,
        notifier=notifier,
    )


@router.post("/checkout", response_model=CheckInRead)
async def check_out(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
    rules: AttendanceRules = Depends(get_rules),
) -> CheckIn:
    return await reconciler.check_out(db, employee, rules=rules)


@router.post("/checkin/verify", response_model=CheckInRead)
async def verify_fingerprint(
    body: FingerprintRequest,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
    rules: AttendanceRules = Depends(get_rules),
) -> CheckIn:
    """Confirm today's check-in with the registered fingerprint."""
    return await reconciler.verify_fingerprint(db, employee, body.credential, rules=rules)


@router.get("/checkin/status", response_model=CheckInStatusResponse)
async def checkin_status(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
    rules: AttendanceRules = Depends(get_rules),
):
    return await reconciler.today_status(db, employee.id, rules=rules)
