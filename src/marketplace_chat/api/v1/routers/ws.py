from __future__ import annotations

import asyncio
import contextlib
import logging

from fastapi import APIRouter, Query, WebSocket

from marketplace_chat.application.exceptions import AppError, UnauthenticatedError
from marketplace_chat.config import settings
from marketplace_chat.infrastructure.ws.connection import ClientConnection
from marketplace_chat.infrastructure.ws.gateway import PONG, RealtimeGateway

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


def _credential(websocket: WebSocket, token: str | None) -> str | None:
    if token:
        return token
    header = websocket.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:]
    return None


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str | None = Query(None),
) -> None:
    gateway: RealtimeGateway = websocket.app.state.gateway
    try:
        identity = await gateway.authenticate(
            _credential(websocket, token), settings.WS_AUTH_TIMEOUT_SECONDS,
        )
    except UnauthenticatedError as exc:
        logger.debug("WS auth failed: %s", exc.detail)
        await websocket.close(code=4001, reason="Authentication failed")
        return
    except AppError as exc:
        logger.warning("WS auth unavailable: %s", exc.detail)
        await websocket.close(code=1011, reason="Authentication unavailable")
        return

    await websocket.accept()
    conn = await gateway.connect(websocket, identity)

    heartbeat_task = asyncio.create_task(
        _heartbeat(conn), name=f"ws-heartbeat-{conn.id}",
    )
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                await gateway.reject_frame(conn, "Binary frames are not supported")
                continue
            await gateway.handle_text(conn, raw)
    except Exception:
        logger.exception("WS error for %s", identity.id)
    finally:
        heartbeat_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await heartbeat_task
        await gateway.disconnect(conn)


async def _heartbeat(conn: ClientConnection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    while True:
        await asyncio.sleep(interval)
        if not await conn.send(PONG, {}):
            return
