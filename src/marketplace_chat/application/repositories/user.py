from __future__ import annotations

from typing import Protocol
from uuid import UUID

from marketplace_chat.application.dto.identity import Identity


class UserReader(Protocol):
    async def get_identity(self, user_id: UUID) -> Identity | None: ...

    async def exists(self, user_id: UUID) -> bool: ...
