from __future__ import annotations

from typing import Protocol
from uuid import UUID

from marketplace_chat.domain.entities.project import Project


class ProjectReader(Protocol):
    async def get_by_id(self, project_id: UUID) -> Project | None: ...
