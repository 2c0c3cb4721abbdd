from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from .routes_auth import resolve_token
from .services.notify import NotificationBus, get_ws_notification_bus
from .settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])


async def _forward(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        payload = await queue.get()
        await websocket.send_json(payload)


async def _drain(websocket: WebSocket) -> None:
    # client messages are ignored; this only notices the disconnect
    while True:
        await websocket.receive_text()


@router.websocket("/ws/notifications")
async def notifications_socket(
    websocket: WebSocket,
    bus: NotificationBus = Depends(get_ws_notification_bus),
):
    token = websocket.query_params.get("token") or websocket.cookies.get(get_settings().session_cookie_name)
    user_id = resolve_token(token)
    # accept before rejecting: a 1008 close code only reaches the client on an accepted socket
    await websocket.accept()
    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    queue = bus.subscribe(user_id)
    logger.info(f"[ws] user {user_id} connected")
    await websocket.send_json({"type": "connected", "userId": user_id})
    tasks = [
        asyncio.create_task(_forward(websocket, queue)),
        asyncio.create_task(_drain(websocket)),
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc and not isinstance(exc, WebSocketDisconnect):
                logger.warning(f"[ws] connection for user {user_id} failed: {exc!r}")
    finally:
        for task in tasks:
            task.cancel()
        bus.unsubscribe(user_id, queue)
        logger.info(f"[ws] user {user_id} disconnected")
