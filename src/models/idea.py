"""Idea model: structured project idea derived from an assistant message."""

from __future__ import annotations

import uuid

from sqlalchemy import JSON, ForeignKey, Index, String, Text, Uuid
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import IdeaCategory, IdeaIcon

StringList = JSON().with_variant(JSONB, "postgresql")


class Idea(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "ideas"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    message_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("messages.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[IdeaCategory] = mapped_column(
        SQLAlchemyEnum(IdeaCategory, name="ideacategory", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=IdeaCategory.ALL,
    )
    icon: Mapped[IdeaIcon] = mapped_column(
        SQLAlchemyEnum(IdeaIcon, name="ideaicon", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=IdeaIcon.LIGHTNING,
    )
    problem_solved: Mapped[str] = mapped_column(Text, nullable=False)
    target_audience: Mapped[str] = mapped_column(Text, nullable=False)
    core_features: Mapped[list[str]] = mapped_column(StringList, nullable=False, default=list)
    benefits: Mapped[list[str]] = mapped_column(StringList, nullable=False, default=list)
    tech_stack: Mapped[list[str]] = mapped_column(StringList, nullable=False, default=list)
    monetization: Mapped[list[str]] = mapped_column(StringList, nullable=False, default=list)
    challenges: Mapped[list[str]] = mapped_column(StringList, nullable=False, default=list)
    next_steps: Mapped[list[str]] = mapped_column(StringList, nullable=False, default=list)

    __table_args__ = (
        Index("ix_ideas_user_id", "user_id"),
        Index("ix_ideas_conversation_id", "conversation_id"),
        Index("ix_ideas_message_id", "message_id"),
        Index("ix_ideas_category", "category"),
        Index("ix_ideas_title", "title"),
    )
