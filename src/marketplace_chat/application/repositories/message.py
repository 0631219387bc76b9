from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from marketplace_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def find_conversation(
        self,
        user_a: UUID,
        user_b: UUID,
        project_id: UUID | None = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Message]:
        """Messages between two users in either direction, oldest first."""
        ...

    async def unread_count(self, receiver_id: UUID) -> int: ...

    async def list_recent_for_user(self, user_id: UUID, *, limit: int = 100) -> list[Message]:
        """Newest first; messages where the user is sender or receiver."""
        ...


class MessageWriter(Protocol):
    async def create(self, message: Message) -> Message: ...

    async def mark_seen(
        self,
        receiver_id: UUID,
        sender_id: UUID,
        seen_at: datetime,
        *,
        project_id: UUID | None = None,
        message_ids: list[UUID] | None = None,
    ) -> list[UUID]:
        """Flag unread messages as read/seen. Return the ids actually changed."""
        ...

    async def mark_read(self, message_id: UUID) -> bool: ...

    async def update_body(
        self, message_id: UUID, body: str, updated_at: datetime,
    ) -> Message | None: ...

    async def delete(self, message_id: UUID) -> bool: ...
