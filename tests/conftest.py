"""Pytest fixtures for IdeaSpark store and pagination tests."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

import src.models  # noqa: F401  populates Base.metadata
from src.database.base import Base
from src.models.user import User
from src.modules.conversation.service import ConversationService
from src.modules.pagination.paginator import Paginator
from tests.factories import make_user


class RecordingTrigger:
    """Reply trigger that only remembers what it was asked to schedule."""

    def __init__(self) -> None:
        self.scheduled: list[tuple] = []

    def schedule(self, conversation_id, user_id, content) -> None:
        self.scheduled.append((conversation_id, user_id, content))


@pytest_asyncio.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite so concurrent sessions see the same data."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ideaspark.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def paginator(session_factory) -> Paginator:
    return Paginator(session_factory)


@pytest.fixture
def reply_trigger() -> RecordingTrigger:
    return RecordingTrigger()


@pytest.fixture
def conversation_service(session_factory, paginator, reply_trigger) -> ConversationService:
    return ConversationService(session_factory, paginator, reply_trigger)


@pytest_asyncio.fixture
async def owner(session_factory) -> User:
    return await make_user(session_factory)
