"""
Trackzone Attendance — Application entry point.

This is the **only** file that assembles the app.  Business logic lives in
the `services/` package; `api/` holds the HTTP surface and `models/` the
tables.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import select

from app.api.v1.api import api_router
from app.api.v1.endpoints.auth import limiter
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.security import get_password_hash
from app.db.base import Base
from app.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from app.models.attendance import AttendanceDay, AttendanceMonth, AttendanceYear  # noqa: F401
from app.models.attendance_settings import AttendanceSettings  # noqa: F401
from app.models.checkin import CheckIn  # noqa: F401
from app.models.employee import Employee  # noqa: F401
from app.models.leave import LeaveRequest  # noqa: F401
from app.models.notification import Notification  # noqa: F401
from app.models.task import Task  # noqa: F401
from app.models.user import User
from app.services.rules import get_or_create_settings
from app.services.sweep import build_scheduler

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logging.getLogger("apscheduler").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    async with async_session_factory() as session:
        # Seed default admin user on first run
        result = await session.execute(
            select(User).where(User.email == settings.FIRST_ADMIN_EMAIL)
        )
        if result.scalar_one_or_none() is None:
            admin = User(
                email=settings.FIRST_ADMIN_EMAIL,
                hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
                full_name="System Administrator",
                role="admin",
            )
            session.add(admin)
            await session.commit()
            logger.info(
                "Default admin created: %s (password: <redacted>)",
                settings.FIRST_ADMIN_EMAIL,
            )
        await get_or_create_settings(session)

    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = build_scheduler(async_session_factory)
        scheduler.start()
        logger.info("Attendance sweep scheduler started")
    app.state.scheduler = scheduler

    logger.info("🚀 %s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Geofenced employee check-in with monthly / yearly attendance rollups",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting on the auth routes
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)
    return application


app = create_app()
