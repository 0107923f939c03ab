from src.database import soft_delete  # noqa: F401  registers the soft-delete hook
from src.database.base import Base, SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin
from src.database.engine import async_session, engine

__all__ = [
    "Base",
    "SoftDeleteMixin",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "async_session",
    "engine",
]
