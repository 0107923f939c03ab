# Import all models so SQLAlchemy metadata is populated for Alembic autogenerate
from src.models.conversation import Conversation
from src.models.enums import IdeaCategory, IdeaIcon, Sender, UserRole
from src.models.idea import Idea
from src.models.message import Message
from src.models.user import User

__all__ = [
    "Conversation",
    "Idea",
    "IdeaCategory",
    "IdeaIcon",
    "Message",
    "Sender",
    "User",
    "UserRole",
]
