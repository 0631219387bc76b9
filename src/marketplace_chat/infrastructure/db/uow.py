from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from types import TracebackType
from typing import AsyncIterator, Self

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_chat.application.exceptions import PersistenceError
from marketplace_chat.infrastructure.db.repositories.message import (
    MessageReaderRepo,
    MessageWriterRepo,
)
from marketplace_chat.infrastructure.db.repositories.project import ProjectReaderRepo
from marketplace_chat.infrastructure.db.repositories.user import UserReaderRepo
from marketplace_chat.infrastructure.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)


class SqlAlchemyUoW:
    """Concrete Unit-of-Work backed by a single AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.users = UserReaderRepo(session)
        self.projects = ProjectReaderRepo(session)
        self.messages = MessageReaderRepo(session)
        self.messages_w = MessageWriterRepo(session)

    async def flush(self) -> None:
        await self._session.flush()

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            return
        await self.rollback()
        if isinstance(exc_val, SQLAlchemyError):
            logger.error("Database error: %s", exc_val)
            raise PersistenceError("Database operation failed") from exc_val


@asynccontextmanager
async def open_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with AsyncSessionLocal() as session:
        async with SqlAlchemyUoW(session) as uow:
            yield uow
