from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from marketplace_chat.domain.value_objects.enums import UserRole


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """Claims extracted from a verified bearer token, before the user lookup."""

    subject_id: UUID
    role: str | None = None


@dataclass(frozen=True, slots=True)
class Identity:
    """Authenticated principal, immutable for the lifetime of a connection."""

    id: UUID
    display_name: str
    role: str = UserRole.FREELANCER