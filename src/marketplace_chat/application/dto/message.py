from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from marketplace_chat.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class SeenReceipt:
    """Messages a viewer has just seen, reported back to their sender."""

    viewer_id: UUID
    seen_at: datetime
    message_ids: list[UUID] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.message_ids)


@dataclass(frozen=True, slots=True)
class ConversationSummary:
    other_party_id: UUID
    last_message: Message
    unread: bool
