"""Message model: immutable chat entry written by a user or the assistant."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Text, Uuid
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import Sender

if TYPE_CHECKING:
    from src.models.conversation import Conversation
    from src.models.idea import Idea


class Message(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "messages"

    # For assistant replies this is the conversation owner, not a system actor.
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sender: Mapped[Sender] = mapped_column(
        SQLAlchemyEnum(Sender, name="sender", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    contains_idea: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    idea_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("ideas.id", ondelete="SET NULL", use_alter=True)
    )

    conversation: Mapped[Conversation] = relationship("Conversation", back_populates="messages")
    idea: Mapped[Idea | None] = relationship("Idea", foreign_keys=[idea_id])

    __table_args__ = (
        Index("ix_messages_conversation_id", "conversation_id"),
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
        Index("ix_messages_contains_idea", "contains_idea"),
    )
