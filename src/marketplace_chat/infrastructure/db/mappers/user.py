from __future__ import annotations

from marketplace_chat.application.dto.identity import Identity
from marketplace_chat.domain.value_objects.enums import UserRole
from marketplace_chat.infrastructure.db.models.user import UserModel


def model_to_identity(model: UserModel) -> Identity:
    return Identity(
        id=model.id,
        display_name=model.user_name,
        role=(model.role or UserRole.FREELANCER).lower(),
    )
