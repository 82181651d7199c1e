"""
Domain exceptions and global exception handlers.

Business-rule rejections are raised as ``AttendanceError`` subclasses by the
service layer and translated here into JSON responses; nothing below the API
layer knows about HTTP status codes.  The generic handlers prevent
stack-trace leakage to clients.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


# ── Domain errors ───────────────────────────────────────────────────
class AttendanceError(Exception):
    """Base class for attendance business-rule violations."""

    status_code = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__doc__ or self.__class__.__name__)
        self.message = str(self.args[0])


class ValidationError(AttendanceError):
    """Malformed or missing attendance data."""


class InvalidInterval(ValidationError):
    """Check-out time is earlier than check-in time."""


class OutsideGeofence(AttendanceError):
    """Check-in location is outside the office geofence."""

    status_code = 403


class OutsideWindow(AttendanceError):
    """Check-in attempted outside the allowed time window."""

    status_code = 403


class FingerprintMismatch(AttendanceError):
    """Fingerprint credential does not match the registered one."""

    status_code = 401


class FingerprintNotRegistered(AttendanceError):
    """No fingerprint credential is registered for this employee."""

    status_code = 409


class AlreadyCheckedIn(AttendanceError):
    """Employee has already checked in today."""

    status_code = 409


class NotCheckedIn(AttendanceError):
    """Employee has not checked in today."""

    status_code = 409


class AlreadyCheckedOut(AttendanceError):
    """Employee has already checked out today."""

    status_code = 409


class DuplicateRecord(AttendanceError):
    """Concurrent writers collided on a unique attendance key."""

    status_code = 409


class EmployeeNotFound(AttendanceError):
    """Employee not found."""

    status_code = 404


class LeaveRequestNotFound(AttendanceError):
    """Leave request not found."""

    status_code = 404


class LeaveAlreadyDecided(AttendanceError):
    """Leave request has already been approved or rejected."""

    status_code = 409


# ── Handlers ────────────────────────────────────────────────────────
async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
    )


async def _attendance_error_handler(_request: Request, exc: AttendanceError) -> JSONResponse:
    logger.info("Rejected (%s): %s", exc.__class__.__name__, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "error": exc.__class__.__name__,
            "success": False,
        },
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(AttendanceError, _attendance_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
