from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Integer, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, SoftDeleteMixin, TimestampMixin, UUIDPrimaryKeyMixin, utcnow
from src.models.enums import UserRole

if TYPE_CHECKING:
    from src.models.conversation import Conversation


class User(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Local projection of an identity-provider user.

    Holds the daily idea quota and the live connection handle; credentials
    live with the identity provider.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[UserRole] = mapped_column(
        SQLAlchemyEnum(UserRole, name="userrole", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.USER,
        server_default=UserRole.USER.value,
    )
    remaining_ideas: Mapped[int] = mapped_column(
        Integer, nullable=False, default=10, server_default="10"
    )
    last_idea_reset_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    connection_id: Mapped[str | None] = mapped_column(String(255))

    conversations: Mapped[list[Conversation]] = relationship(
        "Conversation", back_populates="user"
    )
