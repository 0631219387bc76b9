from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    sender_id: UUID
    receiver_id: UUID
    body: str
    project_id: UUID | None
    read: bool
    seen_at: datetime | None
    created_at: datetime
    updated_at: datetime

    def involves(self, user_id: UUID) -> bool:
        return user_id in (self.sender_id, self.receiver_id)

    def other_party(self, user_id: UUID) -> UUID:
        return self.receiver_id if self.sender_id == user_id else self.sender_id
