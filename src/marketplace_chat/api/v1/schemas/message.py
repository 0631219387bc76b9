from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from marketplace_chat.application.dto.message import ConversationSummary
from marketplace_chat.domain.entities.message import Message

_camel = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SendMessageRequest(BaseModel):
    model_config = _camel

    receiver_id: UUID
    message: str
    project_id: UUID | None = None


class EditMessageRequest(BaseModel):
    message: str


class MessageResponse(BaseModel):
    model_config = _camel

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    message: str
    project_id: UUID | None
    read: bool
    seen_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, msg: Message) -> MessageResponse:
        return cls(
            id=msg.id,
            sender_id=msg.sender_id,
            receiver_id=msg.receiver_id,
            message=msg.body,
            project_id=msg.project_id,
            read=msg.read,
            seen_at=msg.seen_at,
            created_at=msg.created_at,
            updated_at=msg.updated_at,
        )


class ConversationSummaryResponse(BaseModel):
    model_config = _camel

    other_party_id: UUID
    last_message: MessageResponse
    unread: bool

    @classmethod
    def from_summary(cls, summary: ConversationSummary) -> ConversationSummaryResponse:
        return cls(
            other_party_id=summary.other_party_id,
            last_message=MessageResponse.from_entity(summary.last_message),
            unread=summary.unread,
        )


class UnreadCountResponse(BaseModel):
    count: int
