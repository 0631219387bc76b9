from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_chat.domain.entities.project import Project
from marketplace_chat.infrastructure.db.mappers import project as mapper
from marketplace_chat.infrastructure.db.models.project import ProjectModel


class ProjectReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, project_id: UUID) -> Project | None:
        model = await self._session.get(ProjectModel, project_id)
        return mapper.model_to_entity(model) if model else None
