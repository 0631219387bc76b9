"""Durable operations on persisted chat messages."""
from __future__ import annotations

import uuid
from uuid import UUID

from marketplace_chat.application.dto.message import ConversationSummary, SeenReceipt
from marketplace_chat.application.exceptions import ValidationError
from marketplace_chat.application.ports.clock import Clock, SystemClock
from marketplace_chat.application.uow import UnitOfWork
from marketplace_chat.config import settings
from marketplace_chat.domain.entities.message import Message

_system_clock = SystemClock()


def normalize_body(body: str | None) -> str:
    """Trim a message body and reject it if nothing is left or it is too long."""
    text = (body or "").strip()
    if not text:
        raise ValidationError("Message text is required")
    if len(text) > settings.MESSAGE_MAX_LENGTH:
        raise ValidationError(
            f"Message text exceeds {settings.MESSAGE_MAX_LENGTH} characters"
        )
    return text


async def create_message(
    sender_id: UUID,
    receiver_id: UUID,
    body: str | None,
    project_id: UUID | None,
    uow: UnitOfWork,
    *,
    clock: Clock = _system_clock,
) -> Message:
    text = normalize_body(body)
    now = clock.now()
    msg = Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        receiver_id=receiver_id,
        body=text,
        project_id=project_id,
        read=False,
        seen_at=None,
        created_at=now,
        updated_at=now,
    )
    msg = await uow.messages_w.create(msg)
    await uow.commit()
    return msg


async def get_message(message_id: UUID, uow: UnitOfWork) -> Message | None:
    return await uow.messages.get_by_id(message_id)


async def find_conversation(
    user_a: UUID,
    user_b: UUID,
    project_id: UUID | None,
    limit: int,
    offset: int,
    uow: UnitOfWork,
) -> list[Message]:
    """Messages exchanged between two users (either direction), oldest first."""
    return await uow.messages.find_conversation(
        user_a, user_b, project_id, limit=limit, offset=offset,
    )


async def mark_all_seen(
    viewer_id: UUID,
    other_party_id: UUID,
    project_id: UUID | None,
    uow: UnitOfWork,
    *,
    message_ids: list[UUID] | None = None,
    clock: Clock = _system_clock,
) -> SeenReceipt:
    """Flag everything ``other_party_id`` sent to ``viewer_id`` that is still unread.

    ``message_ids`` narrows the update to those ids. Only messages that
    actually changed are reported, so a repeated call yields an empty receipt.
    """
    seen_at = clock.now()
    if message_ids is not None and not message_ids:
        return SeenReceipt(viewer_id=viewer_id, seen_at=seen_at)

    affected = await uow.messages_w.mark_seen(
        viewer_id,
        other_party_id,
        seen_at,
        project_id=project_id,
        message_ids=message_ids,
    )
    if affected:
        await uow.commit()
    return SeenReceipt(viewer_id=viewer_id, seen_at=seen_at, message_ids=affected)


async def mark_read(message_id: UUID, uow: UnitOfWork) -> bool:
    updated = await uow.messages_w.mark_read(message_id)
    if updated:
        await uow.commit()
    return updated


async def update_body(
    message_id: UUID,
    new_body: str | None,
    uow: UnitOfWork,
    *,
    clock: Clock = _system_clock,
) -> Message | None:
    """Replace the text of a message. Returns None if it no longer exists."""
    text = normalize_body(new_body)
    updated = await uow.messages_w.update_body(message_id, text, clock.now())
    if updated is not None:
        await uow.commit()
    return updated


async def delete_message(message_id: UUID, uow: UnitOfWork) -> bool:
    deleted = await uow.messages_w.delete(message_id)
    if deleted:
        await uow.commit()
    return deleted


async def unread_count(user_id: UUID, uow: UnitOfWork) -> int:
    return await uow.messages.unread_count(user_id)


async def recent_conversations(
    user_id: UUID,
    uow: UnitOfWork,
    *,
    limit: int = 100,
) -> list[ConversationSummary]:
    """Latest message per counterpart, newest conversation first."""
    recent = await uow.messages.list_recent_for_user(user_id, limit=limit)
    summaries: dict[UUID, ConversationSummary] = {}
    for msg in recent:
        other = msg.other_party(user_id)
        if other in summaries:
            continue
        summaries[other] = ConversationSummary(
            other_party_id=other,
            last_message=msg,
            unread=msg.receiver_id == user_id and not msg.read,
        )
    return list(summaries.values())
