from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Callable, Protocol

from marketplace_chat.application.repositories.message import MessageReader, MessageWriter
from marketplace_chat.application.repositories.project import ProjectReader
from marketplace_chat.application.repositories.user import UserReader


class UnitOfWork(Protocol):
    users: UserReader
    projects: ProjectReader
    messages: MessageReader
    messages_w: MessageWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]
