"""Authorized chat operations shared by the REST API and the realtime gateway."""
from __future__ import annotations

from uuid import UUID

from marketplace_chat.application.dto.identity import Identity
from marketplace_chat.application.dto.message import ConversationSummary, SeenReceipt
from marketplace_chat.application.exceptions import NotFoundError
from marketplace_chat.application.policies.permissions import (
    assert_can_delete,
    assert_can_edit,
    assert_can_mark_read,
    assert_project_access,
)
from marketplace_chat.application.uow import UnitOfWork
from marketplace_chat.config import settings
from marketplace_chat.domain.entities.message import Message
from marketplace_chat.services import message_service


async def _check_counterpart(
    identity: Identity,
    other_id: UUID,
    project_id: UUID | None,
    uow: UnitOfWork,
    enforce_project_access: bool | None,
) -> None:
    if not await uow.users.exists(other_id):
        raise NotFoundError("Receiver not found")

    if enforce_project_access is None:
        enforce_project_access = settings.CHAT_ENFORCE_PROJECT_ACCESS
    if project_id is not None and enforce_project_access:
        project = await uow.projects.get_by_id(project_id)
        assert_project_access(project, identity.id, other_id)


async def send_message(
    sender: Identity,
    receiver_id: UUID,
    body: str | None,
    project_id: UUID | None,
    uow: UnitOfWork,
    *,
    enforce_project_access: bool | None = None,
) -> Message:
    """Validate and persist a new message. Nothing is written if any check fails."""
    message_service.normalize_body(body)
    await _check_counterpart(sender, receiver_id, project_id, uow, enforce_project_access)
    return await message_service.create_message(
        sender.id, receiver_id, body, project_id, uow,
    )


async def get_history(
    viewer: Identity,
    other_id: UUID,
    project_id: UUID | None,
    limit: int,
    offset: int,
    uow: UnitOfWork,
    *,
    enforce_project_access: bool | None = None,
) -> tuple[list[Message], SeenReceipt]:
    """Return the conversation page and mark the viewer's unread messages as seen."""
    await _check_counterpart(viewer, other_id, project_id, uow, enforce_project_access)
    messages = await message_service.find_conversation(
        viewer.id, other_id, project_id, limit, offset, uow,
    )
    receipt = await message_service.mark_all_seen(viewer.id, other_id, project_id, uow)
    return messages, receipt


async def mark_seen(
    viewer: Identity,
    other_party_id: UUID,
    project_id: UUID | None,
    message_ids: list[UUID] | None,
    uow: UnitOfWork,
) -> SeenReceipt:
    return await message_service.mark_all_seen(
        viewer.id, other_party_id, project_id, uow, message_ids=message_ids,
    )


async def mark_message_read(identity: Identity, message_id: UUID, uow: UnitOfWork) -> None:
    message = await message_service.get_message(message_id, uow)
    assert_can_mark_read(identity, message)
    await message_service.mark_read(message_id, uow)


async def edit_message(
    editor: Identity,
    message_id: UUID,
    new_body: str | None,
    uow: UnitOfWork,
) -> Message:
    message_service.normalize_body(new_body)
    message = await message_service.get_message(message_id, uow)
    assert_can_edit(editor, message)
    updated = await message_service.update_body(message_id, new_body, uow)
    if updated is None:
        raise NotFoundError("Message not found")
    return updated


async def delete_message(actor: Identity, message_id: UUID, uow: UnitOfWork) -> Message:
    """Hard-delete a message. Returns the removed message so both parties can be told."""
    message = await message_service.get_message(message_id, uow)
    message = assert_can_delete(actor, message)
    if not await message_service.delete_message(message_id, uow):
        raise NotFoundError("Message not found")
    return message


async def list_conversations(identity: Identity, uow: UnitOfWork) -> list[ConversationSummary]:
    return await message_service.recent_conversations(identity.id, uow)


async def unread_count(identity: Identity, uow: UnitOfWork) -> int:
    return await message_service.unread_count(identity.id, uow)
