from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Project:
    """Read-only view of a marketplace project, used for chat access checks."""

    id: UUID
    client_id: UUID
    freelancer_id: UUID | None

    def has_member(self, user_id: UUID) -> bool:
        return user_id == self.client_id or (
            self.freelancer_id is not None and user_id == self.freelancer_id
        )
