"""Declarative base and shared column mixins."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Uuid, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


class UUIDPrimaryKeyMixin:
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )


class SoftDeleteMixin:
    """Rows are flagged, never removed.

    Reads exclude flagged rows unless the statement carries the
    ``include_deleted`` execution option (see ``src.database.soft_delete``).
    """

    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false", index=True
    )

    @classmethod
    def not_deleted(cls):
        return cls.is_deleted.is_(False)

    @classmethod
    async def soft_delete(cls, session: AsyncSession, row_id: uuid.UUID) -> bool:
        result = await session.execute(
            update(cls).where(cls.id == row_id).values(is_deleted=True)
        )
        return result.rowcount > 0

    @classmethod
    async def restore(cls, session: AsyncSession, row_id: uuid.UUID) -> bool:
        result = await session.execute(
            update(cls)
            .where(cls.id == row_id)
            .values(is_deleted=False)
            .execution_options(include_deleted=True)
        )
        return result.rowcount > 0
