"""
Employee CRUD.

- GET operations require any authenticated staff user.
- POST / PUT / DELETE operations require admin role.
- Creating an employee with a password also creates the linked
  ``employee`` login account used for check-in.
"""

from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import (get_current_active_user, get_db, get_rules,
                             require_admin, require_manager)
from app.core.exceptions import EmployeeNotFound
from app.core.security import get_password_hash
from app.models.employee import Employee
from app.models.user import User
from app.schemas.attendance import DeleteResponse
from app.schemas.checkin import CheckInStatusResponse
from app.schemas.employee import EmployeeCreate, EmployeeRead, EmployeeUpdate
from app.services.reconciler import today_status
from app.services.rules import AttendanceRules

router = APIRouter(prefix="/employees", tags=["employees"])
logger = logging.getLogger(__name__)


async def get_employee_or_404(db: AsyncSession, employee_id: int) -> Employee:
    result = await db.execute(select(Employee).where(Employee.id == employee_id))
    employee = result.scalar_one_or_none()
    if employee is None:
        raise EmployeeNotFound(f"Employee {employee_id} not found")
    return employee


@router.get("", response_model=list[EmployeeRead])
async def list_employees(
    skip: int = 0,
    limit: int = Query(default=50, le=500),
    search: str | None = None,
    department: str | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_manager),
) -> list[Employee]:
    query = (
        select(Employee)
        .where(Employee.is_active.is_(True))
        .order_by(Employee.name)
        .offset(skip)
        .limit(limit)
    )
    if search:
        # Escape SQL LIKE metacharacters to prevent wildcard injection
        safe_search = search.replace("%", r"\%").replace("_", r"\_")
        pattern = f"%{safe_search}%"
        query = query.where(
            or_(
                Employee.name.ilike(pattern, escape="\\"),
                Employee.employee_code.ilike(pattern, escape="\\"),
            )
        )
    if department:
        query = query.where(Employee.department == department)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("", response_model=EmployeeRead, status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Employee:
    existing = await db.execute(select(Employee).where(Employee.email == body.email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail=f"Email '{body.email}' already registered")

    code = body.employee_code or f"EMP-{secrets.token_hex(3).upper()}"
    existing = await db.execute(select(Employee).where(Employee.employee_code == code))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail=f"Employee code '{code}' already in use")

    employee = Employee(
        employee_code=code,
        **body.model_dump(exclude={"employee_code", "password"}),
    )
    if body.password:
        taken = await db.execute(select(User).where(User.email == body.email))
        if taken.scalar_one_or_none():
            raise HTTPException(status_code=400, detail="Login email already registered")
        account = User(
            email=body.email,
            hashed_password=get_password_hash(body.password),
            full_name=body.name,
            role="employee",
        )
        db.add(account)
        await db.flush()
        employee.user_id = account.id

    db.add(employee)
    await db.commit()
    await db.refresh(employee)
    logger.info("Created employee %s (%s)", employee.name, employee.employee_code)
    return employee


@router.get("/{employee_id}", response_model=EmployeeRead)
async def get_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> Employee:
    return await get_employee_or_404(db, employee_id)


@router.get("/{employee_id}/checkin/today", response_model=CheckInStatusResponse)
async def get_employee_today(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    rules: AttendanceRules = Depends(get_rules),
    _user: User = Depends(require_manager),
):
    """Today's check-in state for one employee (office-local date)."""
    await get_employee_or_404(db, employee_id)
    return await today_status(db, employee_id, rules=rules)


@router.put("/{employee_id}", response_model=EmployeeRead)
async def update_employee(
    employee_id: int,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> Employee:
    emp = await get_employee_or_404(db, employee_id)

    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(emp, field, value)

    await db.commit()
    await db.refresh(emp)
    logger.info("Updated employee %d", employee_id)
    return emp


@router.delete("/{employee_id}", response_model=DeleteResponse)
async def delete_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> DeleteResponse:
    """Soft-delete (deactivate) an employee. Attendance history is preserved."""
    emp = await get_employee_or_404(db, employee_id)
    if emp.is_active is False:
        raise HTTPException(status_code=400, detail="Employee already deactivated")

    emp.is_active = False
    if emp.user_id is not None:
        account = await db.get(User, emp.user_id)
        if account is not None:
            account.is_active = False
    await db.commit()
    logger.info("Soft-deleted employee %d (%s)", employee_id, emp.name)
    return DeleteResponse(success=True, message=f"Employee '{emp.name}' deactivated")
