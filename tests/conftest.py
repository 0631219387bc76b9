"""Shared test fixtures."""
from __future__ import annotations

import dataclasses
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import jwt
import pytest

from marketplace_chat.application.dto.identity import Identity, TokenClaims
from marketplace_chat.application.exceptions import PersistenceError
from marketplace_chat.domain.entities.message import Message
from marketplace_chat.domain.entities.project import Project
from marketplace_chat.domain.value_objects.enums import UserRole
from marketplace_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from marketplace_chat.infrastructure.ws.gateway import RealtimeGateway
from marketplace_chat.infrastructure.ws.presence import PresenceRegistry
from marketplace_chat.infrastructure.ws.rooms import ConversationRouter
from marketplace_chat.services.identity_service import IdentityResolver

ALICE_ID = UUID("00000000-0000-4000-8000-00000000000a")
BOB_ID = UUID("00000000-0000-4000-8000-00000000000b")
CAROL_ID = UUID("00000000-0000-4000-8000-00000000000c")

TEST_SECRET = "test-secret-key-with-at-least-32-bytes!"


@pytest.fixture
def alice() -> Identity:
    return Identity(id=ALICE_ID, display_name="alice", role=UserRole.CLIENT)


@pytest.fixture
def bob() -> Identity:
    return Identity(id=BOB_ID, display_name="bob", role=UserRole.FREELANCER)


@pytest.fixture
def carol() -> Identity:
    return Identity(id=CAROL_ID, display_name="carol", role=UserRole.FREELANCER)


@pytest.fixture
def uow(alice, bob, carol) -> FakeUoW:
    uow = FakeUoW()
    for identity in (alice, bob, carol):
        uow.users._users[identity.id] = identity
    return uow


@pytest.fixture
def gateway(uow) -> RealtimeGateway:
    return make_gateway(uow)


def make_gateway(uow: FakeUoW, *, enforce_project_access: bool | None = None) -> RealtimeGateway:
    factory = lambda: uow  # noqa: E731
    return RealtimeGateway(
        PresenceRegistry(),
        ConversationRouter(),
        IdentityResolver(HS256Verifier(TEST_SECRET), factory),
        factory,
        enforce_project_access=enforce_project_access,
    )


def make_token(sub: UUID | str, *, secret: str = TEST_SECRET, **claims: Any) -> str:
    return jwt.encode({"sub": str(sub), **claims}, secret, algorithm="HS256")


def make_message(
    *,
    sender_id: UUID = ALICE_ID,
    receiver_id: UUID = BOB_ID,
    body: str = "hello",
    project_id: UUID | None = None,
    read: bool = False,
    created_at: datetime | None = None,
) -> Message:
    ts = created_at or datetime.now(timezone.utc)
    return Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        receiver_id=receiver_id,
        body=body,
        project_id=project_id,
        read=read,
        seen_at=None,
        created_at=ts,
        updated_at=ts,
    )


def make_project(
    *,
    client_id: UUID = ALICE_ID,
    freelancer_id: UUID | None = BOB_ID,
) -> Project:
    return Project(id=uuid.uuid4(), client_id=client_id, freelancer_id=freelancer_id)


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class FakeVerifier:
    """Maps raw tokens to claims without any cryptography."""

    def __init__(self, tokens: dict[str, TokenClaims] | None = None) -> None:
        self.tokens = tokens or {}
        self.calls = 0

    async def verify(self, token: str) -> TokenClaims:
        self.calls += 1
        try:
            return self.tokens[token]
        except KeyError:
            raise jwt.InvalidTokenError("unknown token") from None


class FakeTransport:
    """Stands in for a WebSocket: records frames, can be made to fail."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.broken = False
        self.closed_with: tuple[int, str | None] | None = None

    async def send_text(self, data: str) -> None:
        if self.broken:
            raise RuntimeError("socket is gone")
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed_with = (code, reason)

    def events(self, event_type: str) -> list[dict[str, Any]]:
        return [frame["data"] for frame in self.sent if frame["type"] == event_type]

    def types(self) -> list[str]:
        return [frame["type"] for frame in self.sent]

    def clear(self) -> None:
        self.sent.clear()


@dataclass
class FakeUserReader:
    _users: dict[UUID, Identity] = field(default_factory=dict)

    async def get_identity(self, user_id: UUID) -> Identity | None:
        return self._users.get(user_id)

    async def exists(self, user_id: UUID) -> bool:
        return user_id in self._users


@dataclass
class FakeProjectReader:
    _projects: dict[UUID, Project] = field(default_factory=dict)

    def add(self, project: Project) -> Project:
        self._projects[project.id] = project
        return project

    async def get_by_id(self, project_id: UUID) -> Project | None:
        return self._projects.get(project_id)


def _between(m: Message, a: UUID, b: UUID) -> bool:
    return (m.sender_id, m.receiver_id) in ((a, b), (b, a))


@dataclass
class FakeMessageReader:
    _messages: dict[UUID, Message] = field(default_factory=dict)

    def add(self, message: Message) -> Message:
        self._messages[message.id] = message
        return message

    async def get_by_id(self, message_id: UUID) -> Message | None:
        return self._messages.get(message_id)

    async def find_conversation(
        self,
        user_a: UUID,
        user_b: UUID,
        project_id: UUID | None = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Message]:
        rows = [
            m for m in self._messages.values()
            if _between(m, user_a, user_b) and (project_id is None or m.project_id == project_id)
        ]
        rows.sort(key=lambda m: (m.created_at, str(m.id)), reverse=True)
        page = rows[offset:offset + limit]
        page.reverse()
        return page

    async def unread_count(self, receiver_id: UUID) -> int:
        return sum(1 for m in self._messages.values() if m.receiver_id == receiver_id and not m.read)

    async def list_recent_for_user(self, user_id: UUID, *, limit: int = 100) -> list[Message]:
        rows = [m for m in self._messages.values() if m.involves(user_id)]
        rows.sort(key=lambda m: (m.created_at, str(m.id)), reverse=True)
        return rows[:limit]


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    fail_with: Exception | None = None

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def create(self, message: Message) -> Message:
        self._maybe_fail()
        self._reader._messages[message.id] = message
        return message

    async def mark_seen(
        self,
        receiver_id: UUID,
        sender_id: UUID,
        seen_at: datetime,
        *,
        project_id: UUID | None = None,
        message_ids: list[UUID] | None = None,
    ) -> list[UUID]:
        self._maybe_fail()
        affected: list[UUID] = []
        for m in list(self._reader._messages.values()):
            if m.receiver_id != receiver_id or m.sender_id != sender_id or m.read:
                continue
            if project_id is not None and m.project_id != project_id:
                continue
            if message_ids is not None and m.id not in message_ids:
                continue
            self._reader._messages[m.id] = dataclasses.replace(m, read=True, seen_at=seen_at)
            affected.append(m.id)
        return affected

    async def mark_read(self, message_id: UUID) -> bool:
        self._maybe_fail()
        m = self._reader._messages.get(message_id)
        if m is None:
            return False
        self._reader._messages[message_id] = dataclasses.replace(m, read=True)
        return True

    async def update_body(self, message_id: UUID, body: str, updated_at: datetime) -> Message | None:
        self._maybe_fail()
        m = self._reader._messages.get(message_id)
        if m is None:
            return None
        updated = dataclasses.replace(m, body=body, updated_at=updated_at)
        self._reader._messages[message_id] = updated
        return updated

    async def delete(self, message_id: UUID) -> bool:
        self._maybe_fail()
        return self._reader._messages.pop(message_id, None) is not None


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    users: FakeUserReader = field(default_factory=FakeUserReader)
    projects: FakeProjectReader = field(default_factory=FakeProjectReader)
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    commits: int = 0
    rollbacks: int = 0

    def __post_init__(self) -> None:
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    @property
    def _committed(self) -> bool:
        return self.commits > 0

    def fail_writes(self, detail: str = "database unavailable") -> None:
        self.messages_w.fail_with = PersistenceError(detail)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            await self.rollback()
