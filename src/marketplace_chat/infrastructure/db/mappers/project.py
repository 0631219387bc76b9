from __future__ import annotations

from marketplace_chat.domain.entities.project import Project
from marketplace_chat.infrastructure.db.models.project import ProjectModel


def model_to_entity(model: ProjectModel) -> Project:
    return Project(
        id=model.id,
        client_id=model.client_id,
        freelancer_id=model.freelancer_id,
    )
