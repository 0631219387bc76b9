"""Realtime chat gateway: presence, rooms and the chat event protocol."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable
from uuid import UUID

from marketplace_chat.application.dto.identity import Identity
from marketplace_chat.application.dto.message import SeenReceipt
from marketplace_chat.application.exceptions import AppError, UnauthenticatedError, ValidationError
from marketplace_chat.application.uow import UoWFactory
from marketplace_chat.domain.entities.message import Message
from marketplace_chat.domain.value_objects.enums import ConnectionState
from marketplace_chat.infrastructure.ws.connection import ClientConnection, Transport
from marketplace_chat.infrastructure.ws.presence import PresenceRegistry
from marketplace_chat.infrastructure.ws.protocol import (
    ClientEvent,
    DeleteMessage,
    EditMessage,
    JoinRoom,
    LeaveRoom,
    MarkSeen,
    SendMessage,
    TypingStart,
    TypingStop,
    edited_payload,
    message_payload,
    parse_client_event,
    seen_payload,
)
from marketplace_chat.infrastructure.ws.rooms import ConversationRouter
from marketplace_chat.services import conversation_service
from marketplace_chat.services.identity_service import IdentityResolver

logger = logging.getLogger(__name__)

# Server → Client event names
NEW_MESSAGE = "new_message"
MESSAGES_SEEN = "messages_seen"
EDIT_MSG = "edit_msg"
DELETE_MSG = "delete_msg"
USER_TYPING = "user_typing"
USER_TYPING_STOP = "user_typing_stop"
ONLINE_USERS = "get_online_user"
ERROR = "error"
PONG = "pong"


class RealtimeGateway:
    """Ties authentication, presence and rooms to the chat event handlers.

    Deliveries go to every live connection of each participant, never only
    to a room. Handlers of a single connection run one at a time; presence
    and room maps are updated synchronously before any awaited I/O.
    """

    def __init__(
        self,
        presence: PresenceRegistry[ClientConnection],
        router: ConversationRouter[ClientConnection],
        resolver: IdentityResolver,
        uow_factory: UoWFactory,
        *,
        enforce_project_access: bool | None = None,
    ) -> None:
        self.presence = presence
        self.router = router
        self.resolver = resolver
        self._uow_factory = uow_factory
        self._enforce_project_access = enforce_project_access

    # -- lifecycle -----------------------------------------------------------

    async def authenticate(self, credential: str | None, timeout: float) -> Identity:
        """Resolve the handshake credential, bounded by ``timeout`` seconds."""
        try:
            return await asyncio.wait_for(self.resolver.authenticate(credential), timeout)
        except asyncio.TimeoutError as exc:
            raise UnauthenticatedError("Authentication timed out") from exc

    async def connect(self, transport: Transport, identity: Identity) -> ClientConnection:
        conn = ClientConnection(transport, identity)
        conn.authenticated = True
        came_online = self.presence.register(identity.id, conn)
        logger.debug(
            "WS connected: %s (%s), online=%d",
            identity.id, conn.id, len(self.presence.online_identities()),
        )
        if came_online:
            await self.broadcast_presence()
        else:
            await conn.send(ONLINE_USERS, self._online_payload())
        return conn

    async def disconnect(self, conn: ClientConnection) -> None:
        """Tear down a connection. Safe to call more than once."""
        if conn.closed:
            return
        conn.closed = True
        self.router.drop(conn)
        went_offline = self.presence.unregister(conn.identity.id, conn)
        logger.debug("WS disconnected: %s (%s)", conn.identity.id, conn.id)
        if went_offline:
            await self.broadcast_presence()

    async def shutdown(self) -> None:
        for conn in self.presence.all_connections():
            conn.closed = True
            self.router.drop(conn)
            await conn.close(code=1001, reason="Server shutting down")
        self.presence.clear()
        logger.info("Realtime gateway stopped")

    def connection_state(self, conn: ClientConnection) -> ConnectionState:
        if conn.closed:
            return ConnectionState.CLOSED
        if not conn.authenticated:
            return ConnectionState.CONNECTING
        if self.router.rooms_of(conn):
            return ConnectionState.IN_ROOM
        return ConnectionState.IDLE

    # -- inbound -------------------------------------------------------------

    async def handle_text(self, conn: ClientConnection, raw: str) -> None:
        """Process one client frame. Failures are reported to ``conn`` only."""
        if self.connection_state(conn) in (ConnectionState.CONNECTING, ConnectionState.CLOSED):
            logger.debug("Dropping frame on inactive connection %r", conn)
            return

        event_type = "unknown"
        try:
            event_type, event = parse_client_event(raw)
            await self.dispatch(conn, event)
        except AppError as exc:
            await self._send_error(conn, event_type, exc.code, exc.detail)
        except Exception:
            logger.exception("Unhandled error in %s for %s", event_type, conn.identity.id)
            await self._send_error(conn, event_type, "internal_error", "Internal server error")

    async def reject_frame(self, conn: ClientConnection, detail: str) -> None:
        """Report a frame that cannot carry an event (e.g. binary) without closing."""
        if self.connection_state(conn) in (ConnectionState.CONNECTING, ConnectionState.CLOSED):
            return
        err = ValidationError(detail)
        await self._send_error(conn, "unknown", err.code, err.detail)

    async def dispatch(self, conn: ClientConnection, event: ClientEvent) -> None:
        if event.type == "join_room":
            self._on_join_room(conn, event)
        elif event.type == "leave_room":
            self._on_leave_room(conn, event)
        elif event.type == "send_message":
            await self._on_send_message(conn, event)
        elif event.type == "mark_seen":
            await self._on_mark_seen(conn, event)
        elif event.type == "edit_message":
            await self._on_edit_message(conn, event)
        elif event.type == "delete_message":
            await self._on_delete_message(conn, event)
        elif event.type == "typing_start":
            await self._on_typing(conn, event, USER_TYPING)
        elif event.type == "typing_stop":
            await self._on_typing(conn, event, USER_TYPING_STOP)
        elif event.type == "ping":
            await conn.send(PONG, {})

    def _on_join_room(self, conn: ClientConnection, event: JoinRoom) -> None:
        room = self.router.room_id(conn.identity.id, event.receiver_id, event.project_id)
        self.router.join(conn, room)

    def _on_leave_room(self, conn: ClientConnection, event: LeaveRoom) -> None:
        room = self.router.room_id(conn.identity.id, event.receiver_id, event.project_id)
        self.router.leave(conn, room)

    async def _on_send_message(self, conn: ClientConnection, event: SendMessage) -> None:
        async with self._uow_factory() as uow:
            msg = await conversation_service.send_message(
                conn.identity,
                event.receiver_id,
                event.message,
                event.project_id,
                uow,
                enforce_project_access=self._enforce_project_access,
            )
        await self.deliver_message(msg)

    async def _on_mark_seen(self, conn: ClientConnection, event: MarkSeen) -> None:
        async with self._uow_factory() as uow:
            receipt = await conversation_service.mark_seen(
                conn.identity,
                event.other_party_id,
                event.project_id,
                event.message_ids,
                uow,
            )
        await self.notify_seen(event.other_party_id, receipt)

    async def _on_edit_message(self, conn: ClientConnection, event: EditMessage) -> None:
        async with self._uow_factory() as uow:
            msg = await conversation_service.edit_message(
                conn.identity, event.message_id, event.message, uow,
            )
        await self.notify_edited(msg)

    async def _on_delete_message(self, conn: ClientConnection, event: DeleteMessage) -> None:
        async with self._uow_factory() as uow:
            msg = await conversation_service.delete_message(conn.identity, event.message_id, uow)
        await self.notify_deleted(msg)

    async def _on_typing(
        self,
        conn: ClientConnection,
        event: TypingStart | TypingStop,
        outbound: str,
    ) -> None:
        # Ephemeral: nothing is queued for an offline receiver.
        await self._emit(
            [event.receiver_id],
            outbound,
            {"userId": str(conn.identity.id)},
            exclude=conn,
        )

    # -- outbound ------------------------------------------------------------

    async def deliver_message(self, msg: Message) -> None:
        await self._emit([msg.sender_id, msg.receiver_id], NEW_MESSAGE, message_payload(msg))

    async def notify_seen(self, sender_id: UUID, receipt: SeenReceipt) -> None:
        if not receipt:
            return
        await self._emit([sender_id], MESSAGES_SEEN, seen_payload(receipt))

    async def notify_edited(self, msg: Message) -> None:
        await self._emit([msg.sender_id, msg.receiver_id], EDIT_MSG, edited_payload(msg))

    async def notify_deleted(self, msg: Message) -> None:
        await self._emit(
            [msg.sender_id, msg.receiver_id], DELETE_MSG, {"messageId": str(msg.id)},
        )

    async def broadcast_presence(self) -> None:
        await self._send_all(self.presence.all_connections(), ONLINE_USERS, self._online_payload())

    def _online_payload(self) -> dict[str, Any]:
        return {"onlineUserIds": sorted(str(uid) for uid in self.presence.online_identities())}

    async def _emit(
        self,
        identity_ids: Iterable[UUID],
        event_type: str,
        data: dict[str, Any],
        *,
        exclude: ClientConnection | None = None,
    ) -> None:
        targets: list[ClientConnection] = []
        for identity_id in dict.fromkeys(identity_ids):
            targets.extend(c for c in self.presence.connections(identity_id) if c is not exclude)
        await self._send_all(targets, event_type, data)

    async def _send_all(
        self,
        conns: list[ClientConnection],
        event_type: str,
        data: dict[str, Any],
    ) -> None:
        dead: list[ClientConnection] = []
        for conn in conns:
            if not await conn.send(event_type, data):
                dead.append(conn)
        for conn in dead:
            await self.disconnect(conn)

    async def _send_error(
        self,
        conn: ClientConnection,
        event_type: str,
        code: str,
        detail: str,
    ) -> None:
        await conn.send(ERROR, {"message": detail, "code": code, "event": event_type})
