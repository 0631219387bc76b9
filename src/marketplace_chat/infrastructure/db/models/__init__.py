"""Import all models so Alembic can discover them via Base.metadata."""
from marketplace_chat.infrastructure.db.models.message import MessageModel
from marketplace_chat.infrastructure.db.models.project import ProjectModel
from marketplace_chat.infrastructure.db.models.user import UserModel

__all__ = [
    "MessageModel",
    "ProjectModel",
    "UserModel",
]
