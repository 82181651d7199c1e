"""
Shared test fixtures for the attendance service test suite.

Async throughout (aiosqlite + AsyncSession).  Staff routes run as an admin
by default; ``login_as_employee`` switches the caller to an employee account.
"""

import os
import sys
from datetime import datetime
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
# Use async sqlite driver
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
# CORS fix (JSON format)
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["SCHEDULER_ENABLED"] = "false"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.v1.deps import (get_current_active_user, get_db, get_notifier,
                             require_admin)
from app.db.base import Base
from app.main import app
from app.models.employee import Employee
from app.models.user import User
from app.services.notifications import LiveBroadcaster, NotificationEmitter
from app.services.rules import AttendanceRules, default_settings_row

# Create a test engine for the entire session
test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before usage and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


# ── Auth Overrides ──────────────────────────────────────────────────
async def _override_get_current_active_user():
    return User(id=1, email="test@example.com", is_active=True, role="admin")


async def _override_require_admin():
    return User(id=1, email="admin@example.com", is_active=True, role="admin")


app.dependency_overrides[get_current_active_user] = _override_get_current_active_user
app.dependency_overrides[require_admin] = _override_require_admin


@pytest.fixture
def login_as_employee():
    """Make subsequent requests come from the employee's linked account."""

    def _login(employee: Employee) -> None:
        async def _employee_user():
            return User(
                id=employee.user_id, email=employee.email, is_active=True, role="employee"
            )

        app.dependency_overrides[get_current_active_user] = _employee_user

    yield _login
    app.dependency_overrides[get_current_active_user] = _override_get_current_active_user


# ── Domain fixtures ─────────────────────────────────────────────────
@pytest.fixture
def rules() -> AttendanceRules:
    return AttendanceRules.from_settings(default_settings_row())


@pytest.fixture
def broadcaster() -> LiveBroadcaster:
    return LiveBroadcaster()


@pytest.fixture
def notifier(broadcaster: LiveBroadcaster):
    emitter = NotificationEmitter(TestingSessionLocal, broadcaster)
    app.dependency_overrides[get_notifier] = lambda: emitter
    yield emitter
    app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture
def make_employee(db_session: AsyncSession):
    """Factory: persist an employee with a linked ``employee`` login."""
    counter = {"n": 0}

    async def _make(**fields) -> Employee:
        counter["n"] += 1
        n = counter["n"]
        email = fields.pop("email", f"emp{n}@example.com")
        user = User(email=email, hashed_password="x", role="employee")
        db_session.add(user)
        await db_session.flush()
        employee = Employee(
            employee_code=fields.pop("employee_code", f"EMP{n:03d}"),
            name=fields.pop("name", f"Employee {n}"),
            email=email,
            user_id=user.id,
            **fields,
        )
        db_session.add(employee)
        await db_session.commit()
        await db_session.refresh(employee)
        return employee

    return _make


@pytest.fixture
def freeze_now(monkeypatch):
    """Pin the wall clock seen by the check-in routes."""

    def _freeze(moment: datetime) -> None:
        monkeypatch.setattr("app.services.reconciler.utcnow", lambda: moment)
        monkeypatch.setattr("app.api.v1.endpoints.dashboard.utcnow", lambda: moment)

    return _freeze


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    """The test sessionmaker, for code that opens its own sessions."""
    return TestingSessionLocal
