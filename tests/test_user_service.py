"""UserService tests: local user rows are created on first sight."""

import uuid
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select

from src.models.enums import UserRole
from src.models.user import User
from src.modules.users.constants import WELCOME_EMAIL_HTML, WELCOME_EMAIL_SUBJECT
from src.modules.users.service import UserService


@pytest.mark.asyncio
async def test_ensure_user_creates_once(session_factory):
    service = UserService(session_factory)
    user_id = uuid.uuid4()

    first = await service.ensure_user(user_id, "ada@example.com", UserRole.ADMIN)
    second = await service.ensure_user(user_id, "ada@example.com")

    assert first.id == second.id == user_id
    assert first.remaining_ideas == 10
    assert second.role is UserRole.ADMIN
    async with session_factory() as session:
        assert await session.scalar(select(func.count()).select_from(User)) == 1


@pytest.mark.asyncio
async def test_new_user_gets_one_welcome_email(session_factory):
    jobs = MagicMock()
    jobs.enqueue_email.return_value = "job-1"
    service = UserService(session_factory, jobs=jobs)
    user_id = uuid.uuid4()

    await service.ensure_user(user_id, "ada@example.com")
    await service.ensure_user(user_id, "ada@example.com")

    jobs.enqueue_email.assert_called_once_with(
        "ada@example.com", WELCOME_EMAIL_SUBJECT, WELCOME_EMAIL_HTML
    )


@pytest.mark.asyncio
async def test_queue_outage_does_not_block_user_creation(session_factory):
    jobs = MagicMock()
    jobs.enqueue_email.side_effect = ConnectionError("broker down")
    service = UserService(session_factory, jobs=jobs)
    user_id = uuid.uuid4()

    user = await service.ensure_user(user_id, "ada@example.com")

    assert user.id == user_id
    async with session_factory() as session:
        assert await session.scalar(select(func.count()).select_from(User)) == 1
