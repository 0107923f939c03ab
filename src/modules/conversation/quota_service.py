"""QuotaService: per-user daily budget of idea-generating messages."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.exceptions import NotFoundException, QuotaExceededException
from src.models.user import User

logger = logging.getLogger(__name__)


def _start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


class QuotaService:
    """Runs inside the caller's transaction so a failed send leaves the counter untouched."""

    def __init__(self, session: AsyncSession, daily_allowance: int | None = None) -> None:
        self.session = session
        self.daily_allowance = (
            settings.free_ideas_per_day if daily_allowance is None else daily_allowance
        )

    async def reset_if_new_day(self, user_id: uuid.UUID, now: datetime | None = None) -> bool:
        """Restore the daily allowance when the last reset was on an earlier UTC day."""
        now = now or datetime.now(UTC)
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id, User.last_idea_reset_at < _start_of_day(now))
            .values(remaining_ideas=self.daily_allowance, last_idea_reset_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info("Reset daily idea quota for user %s", user_id)
        return bool(result.rowcount)

    async def consume(self, user_id: uuid.UUID, now: datetime | None = None) -> None:
        """Reset-then-decrement; raises QuotaExceededException when nothing is left.

        The decrement is a single conditional UPDATE, so concurrent sends can
        never take the counter below zero.
        """
        await self.reset_if_new_day(user_id, now)
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id, User.remaining_ideas > 0)
            .values(remaining_ideas=User.remaining_ideas - 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            exists = await self.session.scalar(select(User.id).where(User.id == user_id))
            if exists is None:
                raise NotFoundException(f"User {user_id} not found")
            raise QuotaExceededException("Daily idea limit reached. Please try again tomorrow.")

    async def remaining(self, user_id: uuid.UUID) -> int:
        value = await self.session.scalar(select(User.remaining_ideas).where(User.id == user_id))
        if value is None:
            raise NotFoundException(f"User {user_id} not found")
        return value
