"""
Salary endpoint: hours from closed check-ins times the configured hourly rate.
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_current_active_user, get_db
from app.api.v1.endpoints.attendance import authorize_view
from app.core.config import settings
from app.core.exceptions import ValidationError
from app.models.user import User
from app.schemas.attendance import SalaryResponse
from app.services.metrics import salary_summary

router = APIRouter(prefix="/salary", tags=["salary"])


@router.get("/{employee_id}", response_model=SalaryResponse)
async def get_salary(
    employee_id: int,
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> SalaryResponse:
    if month is not None and year is None:
        raise ValidationError("month requires year")
    await authorize_view(db, user, employee_id)
    summary = await salary_summary(
        db, employee_id, hourly_rate=settings.HOURLY_RATE, year=year, month=month
    )
    return SalaryResponse(**asdict(summary), currency=settings.SALARY_CURRENCY)
