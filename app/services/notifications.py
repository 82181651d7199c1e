"""
Notification delivery — live push to connected admins plus a persisted record.

Check-in notifications are fire-and-forget: they are emitted after the
check-in has been committed and any delivery failure is logged, never
propagated.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.notification import Notification

logger = logging.getLogger(__name__)


class LiveBroadcaster:
    """In-process fan-out of live events to subscriber queues (one per websocket)."""

    def __init__(self, max_queue: int = 100) -> None:
        self._max_queue = max_queue
        self._subscribers: set[asyncio.Queue] = set()

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event: dict[str, Any]) -> int:
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Live subscriber queue full, dropping %s event", event.get("type"))
        return delivered


def notification_payload(notification: Notification) -> dict[str, Any]:
    return {
        "type": "notification",
        "id": notification.id,
        "title": notification.title,
        "message": notification.message,
        "recipient_type": notification.recipient_type,
        "recipient_value": notification.recipient_value,
        "priority": notification.priority,
        "timestamp": notification.created_at.isoformat() if notification.created_at else None,
    }


class NotificationEmitter:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        broadcaster: LiveBroadcaster,
    ) -> None:
        self.session_factory = session_factory
        self.broadcaster = broadcaster

    async def emit_check_in(
        self, employee_name: str, check_in_time: datetime, tz: timezone = timezone.utc
    ) -> None:
        local_time = check_in_time.astimezone(tz).strftime("%H:%M")
        try:
            await self.broadcaster.publish(
                {
                    "type": "checkin_notification",
                    "recipient_type": "admin",
                    "employee": employee_name,
                    "time": local_time,
                    "message": f"{employee_name} has checked in",
                }
            )
        except Exception:
            logger.exception("Live check-in notification failed for %s", employee_name)

        try:
            async with self.session_factory() as session:
                session.add(
                    Notification(
                        title="New Check-in",
                        message=f"{employee_name} has checked in at {local_time}",
                        recipient_type="admin",
                        priority="Normal",
                    )
                )
                await session.commit()
        except Exception:
            logger.exception("Could not persist check-in notification for %s", employee_name)

    async def announce(self, notification: Notification) -> None:
        """Push an already-committed notification to live subscribers."""
        try:
            await self.broadcaster.publish(notification_payload(notification))
        except Exception:
            logger.exception("Live push failed for notification %s", notification.id)


def visible_to(
    recipient_type: str | None,
    recipient_value: str | None,
    role: str,
    department: str | None = None,
    employee_code: str | None = None,
) -> bool:
    """Whether a notification addressed this way reaches a user with *role*."""
    if role in ("admin", "manager"):
        return True
    if recipient_type == "all":
        return True
    if recipient_type == "department":
        return department is not None and department == recipient_value
    if recipient_type == "individual":
        return employee_code is not None and employee_code == recipient_value
    # "admin" notifications and untyped live events (check-ins) are staff only
    return False


broadcaster = LiveBroadcaster()
