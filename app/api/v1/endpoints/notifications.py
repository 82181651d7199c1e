"""
Notification endpoints — admin broadcast, per-user inbox and a live
websocket feed.
"""

from __future__ import annotations

import logging

from fastapi import (APIRouter, Depends, Query, WebSocket, WebSocketDisconnect,
                     status)
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import (extract_token, get_current_active_user, get_db,
                             get_notifier, require_admin)
from app.core.exceptions import EmployeeNotFound
from app.core.security import decode_access_token
from app.models.employee import Employee
from app.models.notification import Notification
from app.models.user import User
from app.schemas.notification import NotificationCreate, NotificationRead
from app.services.notifications import (NotificationEmitter, broadcaster,
                                        visible_to)

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


async def _employee_for(db: AsyncSession, user: User) -> Employee | None:
    result = await db.execute(select(Employee).where(Employee.user_id == user.id))
    return result.scalar_one_or_none()


@router.post("", response_model=NotificationRead, status_code=201)
async def create_notification(
    body: NotificationCreate,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationEmitter = Depends(get_notifier),
    _admin: User = Depends(require_admin),
) -> Notification:
    if body.recipient_type == "individual":
        result = await db.execute(
            select(Employee.id).where(Employee.employee_code == body.recipient_value)
        )
        if result.scalar_one_or_none() is None:
            raise EmployeeNotFound(f"No employee with code {body.recipient_value}")

    notification = Notification(**body.model_dump())
    db.add(notification)
    await db.commit()
    await db.refresh(notification)
    logger.info(
        "Notification %s sent to %s %s",
        notification.id,
        notification.recipient_type,
        notification.recipient_value or "",
    )
    await notifier.announce(notification)
    return notification


@router.get("", response_model=list[NotificationRead])
async def list_notifications(
    limit: int = Query(default=50, le=200),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> list[Notification]:
    """Newest first. Employees only see what was addressed to them."""
    query = select(Notification).order_by(Notification.id.desc()).limit(limit)
    if user.role not in ("admin", "manager"):
        employee = await _employee_for(db, user)
        scopes = [Notification.recipient_type == "all"]
        if employee is not None:
            if employee.department:
                scopes.append(
                    and_(
                        Notification.recipient_type == "department",
                        Notification.recipient_value == employee.department,
                    )
                )
            scopes.append(
                and_(
                    Notification.recipient_type == "individual",
                    Notification.recipient_value == employee.employee_code,
                )
            )
        query = query.where(or_(*scopes))
    result = await db.execute(query)
    return list(result.scalars().all())


@router.websocket("/live")
async def live_notifications(
    websocket: WebSocket,
    token: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Stream live events; auth via ``?token=`` or the access_token cookie."""
    raw = extract_token(token, websocket.cookies.get("access_token"))
    payload = decode_access_token(raw) if raw else None
    sub = payload.get("sub") if payload else None
    if sub is None or not str(sub).isdigit():
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user = await db.get(User, int(sub))
    if user is None or not user.is_active:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    employee = await _employee_for(db, user)
    role = user.role
    department = employee.department if employee else None
    code = employee.employee_code if employee else None
    await db.close()

    await websocket.accept()
    queue = broadcaster.subscribe()
    logger.info("Live feed opened for user %s (%d subscribers)", user.id, broadcaster.subscriber_count)
    try:
        while True:
            event = await queue.get()
            if visible_to(
                event.get("recipient_type"), event.get("recipient_value"), role, department, code
            ):
                await websocket.send_json(event)
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.unsubscribe(queue)
        logger.info("Live feed closed for user %s", user.id)
