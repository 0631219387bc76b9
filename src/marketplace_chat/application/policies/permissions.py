from __future__ import annotations

from uuid import UUID

from marketplace_chat.application.dto.identity import Identity
from marketplace_chat.application.exceptions import ForbiddenError, NotFoundError
from marketplace_chat.domain.entities.message import Message
from marketplace_chat.domain.entities.project import Project


def assert_message_exists(message: Message | None) -> Message:
    if message is None:
        raise NotFoundError("Message not found")
    return message


def assert_can_edit(identity: Identity, message: Message | None) -> Message:
    """Only the sender may edit a message."""
    message = assert_message_exists(message)
    if message.sender_id != identity.id:
        raise ForbiddenError("Only the sender can edit this message")
    return message


def assert_can_delete(identity: Identity, message: Message | None) -> Message:
    """Either party of the conversation may delete a message."""
    message = assert_message_exists(message)
    if not message.involves(identity.id):
        raise ForbiddenError("You can only delete messages in your conversations")
    return message


def assert_can_mark_read(identity: Identity, message: Message | None) -> Message:
    message = assert_message_exists(message)
    if message.receiver_id != identity.id:
        raise ForbiddenError("You can only mark your received messages as read")
    return message


def assert_project_access(
    project: Project | None,
    user_a: UUID,
    user_b: UUID,
) -> Project:
    """Raise unless the project exists and one of the two parties belongs to it."""
    if project is None:
        raise NotFoundError("Project not found")
    if not (project.has_member(user_a) or project.has_member(user_b)):
        raise ForbiddenError("You do not have access to this project")
    return project
