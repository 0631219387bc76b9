from __future__ import annotations

import logging
import uuid
from typing import Any, Protocol

from marketplace_chat.application.dto.identity import Identity
from marketplace_chat.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class Transport(Protocol):
    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


class ClientConnection:
    """One live socket session of an authenticated identity."""

    def __init__(self, transport: Transport, identity: Identity) -> None:
        self.id = uuid.uuid4().hex
        self.identity = identity
        self._transport = transport
        self.authenticated = False
        self.closed = False

    def __repr__(self) -> str:
        return f"<ClientConnection {self.id} user={self.identity.id}>"

    async def send(self, event_type: str, data: dict[str, Any]) -> bool:
        """Push one event. Returns False if the socket could not take it."""
        if self.closed:
            return False
        raw = WsOutbound(type=event_type, data=data).model_dump_json()
        try:
            await self._transport.send_text(raw)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Send to %r failed: %s", self, exc)
            return False
        return True

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        try:
            await self._transport.close(code=code, reason=reason)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Close of %r failed: %s", self, exc)
