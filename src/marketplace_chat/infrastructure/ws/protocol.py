"""WebSocket message envelopes and the typed client event payloads."""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union
from uuid import UUID

import pydantic
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from marketplace_chat.application.dto.message import SeenReceipt
from marketplace_chat.application.exceptions import ValidationError
from marketplace_chat.domain.entities.message import Message


class WsInbound(BaseModel):
    """Client → Server."""

    type: str
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str
    data: dict[str, Any] = {}


# Client → Server events

class _ClientEvent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _ConversationTarget(_ClientEvent):
    receiver_id: UUID
    project_id: UUID | None = None


class JoinRoom(_ConversationTarget):
    type: Literal["join_room"] = "join_room"


class LeaveRoom(_ConversationTarget):
    type: Literal["leave_room"] = "leave_room"


class TypingStart(_ConversationTarget):
    type: Literal["typing_start"] = "typing_start"


class TypingStop(_ConversationTarget):
    type: Literal["typing_stop"] = "typing_stop"


class SendMessage(_ConversationTarget):
    type: Literal["send_message"] = "send_message"
    message: str


class MarkSeen(_ClientEvent):
    type: Literal["mark_seen"] = "mark_seen"
    other_party_id: UUID
    project_id: UUID | None = None
    message_ids: list[UUID] | None = None


class EditMessage(_ClientEvent):
    type: Literal["edit_message"] = "edit_message"
    message_id: UUID
    message: str


class DeleteMessage(_ClientEvent):
    type: Literal["delete_message"] = "delete_message"
    message_id: UUID


class Ping(_ClientEvent):
    type: Literal["ping"] = "ping"


ClientEvent = Annotated[
    Union[
        JoinRoom,
        LeaveRoom,
        SendMessage,
        MarkSeen,
        EditMessage,
        DeleteMessage,
        TypingStart,
        TypingStop,
        Ping,
    ],
    Field(discriminator="type"),
]

CLIENT_EVENT_TYPES = frozenset({
    "join_room",
    "leave_room",
    "send_message",
    "mark_seen",
    "edit_message",
    "delete_message",
    "typing_start",
    "typing_stop",
    "ping",
})

_client_event_adapter: TypeAdapter[ClientEvent] = TypeAdapter(ClientEvent)


def _describe(exc: pydantic.ValidationError) -> str:
    parts = []
    for err in exc.errors():
        # the first loc element is the union tag
        field = ".".join(str(p) for p in err["loc"][1:]) or "payload"
        parts.append(f"{field}: {err['msg']}")
    return "; ".join(parts)


def parse_client_event(raw: str) -> tuple[str, ClientEvent]:
    """Decode one text frame into a typed event.

    Returns ``(event_type, event)``. Raises ``ValidationError`` for frames
    that are not a JSON envelope, carry an unknown type, or whose data does
    not match that type's schema.
    """
    try:
        envelope = WsInbound.model_validate_json(raw)
    except pydantic.ValidationError as exc:
        raise ValidationError("Malformed event envelope") from exc

    if envelope.type not in CLIENT_EVENT_TYPES:
        raise ValidationError(f"Unknown event type: {envelope.type}")

    try:
        event = _client_event_adapter.validate_python({**envelope.data, "type": envelope.type})
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid {envelope.type} payload: {_describe(exc)}") from exc
    return envelope.type, event


# Server → Client payloads

class MessageEvent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    message: str
    project_id: UUID | None
    read: bool
    seen_at: datetime | None
    created_at: datetime
    updated_at: datetime


def message_payload(msg: Message) -> dict[str, Any]:
    return MessageEvent(
        id=msg.id,
        sender_id=msg.sender_id,
        receiver_id=msg.receiver_id,
        message=msg.body,
        project_id=msg.project_id,
        read=msg.read,
        seen_at=msg.seen_at,
        created_at=msg.created_at,
        updated_at=msg.updated_at,
    ).model_dump(mode="json", by_alias=True)


def edited_payload(msg: Message) -> dict[str, Any]:
    return {
        "messageId": str(msg.id),
        "message": msg.body,
        "sender": str(msg.sender_id),
        "receiver": str(msg.receiver_id),
        "updatedAt": msg.updated_at.isoformat(),
    }


def seen_payload(receipt: SeenReceipt) -> dict[str, Any]:
    return {
        "by": str(receipt.viewer_id),
        "messageIds": [str(mid) for mid in receipt.message_ids],
        "seenAt": receipt.seen_at.isoformat(),
    }
