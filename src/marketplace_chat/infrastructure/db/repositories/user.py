from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_chat.application.dto.identity import Identity
from marketplace_chat.infrastructure.db.mappers import user as mapper
from marketplace_chat.infrastructure.db.models.user import UserModel


class UserReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_identity(self, user_id: UUID) -> Identity | None:
        model = await self._session.get(UserModel, user_id)
        return mapper.model_to_identity(model) if model else None

    async def exists(self, user_id: UUID) -> bool:
        stmt = select(UserModel.id).where(UserModel.id == user_id).limit(1)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None
