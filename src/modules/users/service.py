"""UserService: local projection of identity-provider users."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import settings
from src.models.enums import UserRole
from src.models.user import User
from src.modules.notifications.queue import JobQueue
from src.modules.users.constants import WELCOME_EMAIL_HTML, WELCOME_EMAIL_SUBJECT

logger = logging.getLogger(__name__)


class UserService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        jobs: JobQueue | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._jobs = jobs

    async def ensure_user(
        self,
        user_id: uuid.UUID,
        email: str,
        role: UserRole = UserRole.USER,
    ) -> User:
        """Return the local user row, creating it on first sight.

        A newly created user gets a welcome email through the job queue.
        """
        async with self._session_factory() as session:
            user = await session.scalar(select(User).where(User.id == user_id))
            if user is not None:
                return user

            user = User(
                id=user_id,
                email=email,
                role=role,
                remaining_ideas=settings.free_ideas_per_day,
            )
            session.add(user)
            try:
                await session.commit()
            except IntegrityError:
                # Another request created it first
                await session.rollback()
                return await session.scalar(select(User).where(User.id == user_id))
            logger.info("Created local user %s", user_id)

        self._send_welcome(user)
        return user

    def _send_welcome(self, user: User) -> None:
        if self._jobs is None:
            return
        try:
            job_id = self._jobs.enqueue_email(user.email, WELCOME_EMAIL_SUBJECT, WELCOME_EMAIL_HTML)
        except Exception:
            # The user row is already committed; a broker outage must not fail the request
            logger.exception("Failed to enqueue welcome email for user %s", user.id)
            return
        logger.info("Queued welcome email %s for user %s", job_id, user.id)
