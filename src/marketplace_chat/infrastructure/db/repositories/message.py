from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_chat.domain.entities.message import Message
from marketplace_chat.infrastructure.db.mappers import message as mapper
from marketplace_chat.infrastructure.db.models.message import MessageModel


def _between(user_a: UUID, user_b: UUID):
    return or_(
        and_(MessageModel.sender_id == user_a, MessageModel.receiver_id == user_b),
        and_(MessageModel.sender_id == user_b, MessageModel.receiver_id == user_a),
    )


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: UUID) -> Message | None:
        model = await self._session.get(MessageModel, message_id)
        return mapper.model_to_entity(model) if model else None

    async def find_conversation(
        self,
        user_a: UUID,
        user_b: UUID,
        project_id: UUID | None = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Message]:
        # Page from the newest end, then flip so callers get oldest first.
        stmt = (
            select(MessageModel)
            .where(_between(user_a, user_b))
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        if project_id is not None:
            stmt = stmt.where(MessageModel.project_id == project_id)
        result = await self._session.execute(stmt)
        rows = [mapper.model_to_entity(m) for m in result.scalars().all()]
        rows.reverse()
        return rows

    async def unread_count(self, receiver_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(MessageModel)
            .where(MessageModel.receiver_id == receiver_id, MessageModel.read.is_(False))
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def list_recent_for_user(self, user_id: UUID, *, limit: int = 100) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(or_(MessageModel.sender_id == user_id, MessageModel.receiver_id == user_id))
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, message: Message) -> Message:
        model = mapper.entity_to_model(message)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def mark_seen(
        self,
        receiver_id: UUID,
        sender_id: UUID,
        seen_at: datetime,
        *,
        project_id: UUID | None = None,
        message_ids: list[UUID] | None = None,
    ) -> list[UUID]:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.receiver_id == receiver_id,
                MessageModel.sender_id == sender_id,
                MessageModel.read.is_(False),
            )
            .values(read=True, seen_at=seen_at)
            .returning(MessageModel.id)
            .execution_options(synchronize_session=False)
        )
        if project_id is not None:
            stmt = stmt.where(MessageModel.project_id == project_id)
        if message_ids is not None:
            stmt = stmt.where(MessageModel.id.in_(message_ids))
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def mark_read(self, message_id: UUID) -> bool:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id)
            .values(read=True)
            .returning(MessageModel.id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def update_body(
        self, message_id: UUID, body: str, updated_at: datetime,
    ) -> Message | None:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id)
            .values(message=body, updated_at=updated_at)
            .returning(MessageModel.id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.scalar_one_or_none() is None:
            return None
        # the row may already sit in the identity map with the old text
        model = await self._session.get(MessageModel, message_id, populate_existing=True)
        return mapper.model_to_entity(model) if model else None

    async def delete(self, message_id: UUID) -> bool:
        stmt = (
            delete(MessageModel)
            .where(MessageModel.id == message_id)
            .returning(MessageModel.id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None
