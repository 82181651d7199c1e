"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import (attendance, auth, checkin, dashboard,
                                  employees, leave, notifications, salary,
                                  settings, tasks)

api_router = APIRouter()

# Auth (login, refresh, staff accounts)
api_router.include_router(auth.router)

# Employees and their check-in lifecycle
api_router.include_router(employees.router)
api_router.include_router(checkin.router)

# Monthly / yearly rollups, leave and pay
api_router.include_router(attendance.router)
api_router.include_router(leave.router)
api_router.include_router(salary.router)

# Notifications, tasks
api_router.include_router(notifications.router)
api_router.include_router(tasks.router)

# Rules, dashboard, health
api_router.include_router(settings.router)
api_router.include_router(dashboard.router)
