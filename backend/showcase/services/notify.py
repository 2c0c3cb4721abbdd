"""
Notification service: persisted notifications plus live push.

A ``NotificationBus`` lives on ``app.state`` and is handed to routes through
``get_notification_bus``. WebSocket connections subscribe after they
authenticate and unsubscribe when they disconnect; publishing to a user with
no open connection only stores the notification.
"""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any

from fastapi import Request, WebSocket
from sqlalchemy.ext.asyncio import AsyncSession

from showcase.models import Notification, NotificationType, User

logger = logging.getLogger(__name__)

QUEUE_MAXSIZE = 100


class NotificationBus:
    def __init__(self, queue_maxsize: int = QUEUE_MAXSIZE) -> None:
        self._queue_maxsize = queue_maxsize
        self._subscribers: dict[int, set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, user_id: int) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._subscribers[user_id].add(queue)
        logger.debug(f"[notify] user {user_id} subscribed ({len(self._subscribers[user_id])} connections)")
        return queue

    def unsubscribe(self, user_id: int, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(user_id)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[user_id]
        logger.debug(f"[notify] user {user_id} unsubscribed")

    def is_connected(self, user_id: int) -> bool:
        return bool(self._subscribers.get(user_id))

    def publish(self, user_id: int, payload: dict[str, Any]) -> int:
        """Push to every open connection of ``user_id``; returns deliveries."""
        delivered = 0
        for queue in list(self._subscribers.get(user_id, ())):
            try:
                queue.put_nowait(payload)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"[notify] queue full for user {user_id}, dropping {payload.get('type')}")
        return delivered

    def close(self) -> None:
        self._subscribers.clear()


def get_notification_bus(request: Request) -> NotificationBus:
    return request.app.state.notification_bus


def get_ws_notification_bus(websocket: WebSocket) -> NotificationBus:
    return websocket.app.state.notification_bus


def _actor_payload(actor: User) -> dict[str, Any]:
    return {"id": actor.id, "username": actor.username, "avatarUrl": actor.avatar_url}


async def notify_user(
    session: AsyncSession,
    bus: NotificationBus,
    *,
    recipient_id: int,
    actor: User,
    type: NotificationType,
    project: dict[str, Any] | None = None,
    comment: dict[str, Any] | None = None,
) -> Notification | None:
    """Store a notification and push it live. Self-notifications are skipped."""
    if recipient_id == actor.id:
        return None
    notification = Notification(
        user_id=recipient_id,
        actor_id=actor.id,
        type=type.value,
        project_id=(project or {}).get("id"),
        comment_id=(comment or {}).get("id"),
    )
    session.add(notification)
    await session.commit()

    payload: dict[str, Any] = {
        "type": type.value,
        "actor": _actor_payload(actor),
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }
    if project:
        payload["project"] = project
    if comment:
        payload["comment"] = comment
    bus.publish(recipient_id, payload)
    return notification


def excerpt(content: str, length: int = 50) -> str:
    return content[:length] + ("..." if len(content) > length else "")
