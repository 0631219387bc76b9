from __future__ import annotations

from marketplace_chat.domain.entities.message import Message
from marketplace_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        sender_id=model.sender_id,
        receiver_id=model.receiver_id,
        body=model.message,
        project_id=model.project_id,
        read=model.read,
        seen_at=model.seen_at,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def entity_to_model(entity: Message) -> MessageModel:
    return MessageModel(
        id=entity.id,
        sender_id=entity.sender_id,
        receiver_id=entity.receiver_id,
        message=entity.body,
        project_id=entity.project_id,
        read=entity.read,
        seen_at=entity.seen_at,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )
