"""ConversationService tests: ownership, quota and soft delete against SQLite."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select

from src.exceptions import ForbiddenException, NotFoundException, QuotaExceededException
from src.models.enums import IdeaCategory, Sender
from src.models.message import Message
from src.modules.conversation.quota_service import QuotaService
from src.modules.pagination.schemas import PaginationParams
from tests.factories import make_conversation, make_idea, make_messages, make_user


async def _message_count(session_factory, conversation_id) -> int:
    async with session_factory() as session:
        return await session.scalar(
            select(func.count()).select_from(Message).where(Message.conversation_id == conversation_id)
        )


async def _remaining(session_factory, user_id) -> int:
    async with session_factory() as session:
        return await QuotaService(session).remaining(user_id)


class TestCreateConversation:
    @pytest.mark.asyncio
    async def test_creates_conversation_with_first_message(
        self, session_factory, conversation_service, reply_trigger, owner
    ):
        conversation = await conversation_service.create_conversation(
            owner.id, "I want to build a study app"
        )

        assert conversation.user_id == owner.id
        assert conversation.title == "I want to build a study app"
        page = await conversation_service.list_messages(conversation.id, owner.id)
        assert [(m.sender, m.content) for m in page.data] == [
            (Sender.USER, "I want to build a study app")
        ]
        assert reply_trigger.scheduled == [
            (conversation.id, owner.id, "I want to build a study app")
        ]

    @pytest.mark.asyncio
    async def test_title_is_truncated(self, conversation_service, owner):
        conversation = await conversation_service.create_conversation(owner.id, "x" * 300)
        assert len(conversation.title) == 100

    @pytest.mark.asyncio
    async def test_explicit_title_wins(self, conversation_service, owner):
        conversation = await conversation_service.create_conversation(
            owner.id, "hello", title="Side projects"
        )
        assert conversation.title == "Side projects"

    @pytest.mark.asyncio
    async def test_blank_title_falls_back_to_message(self, conversation_service, owner):
        conversation = await conversation_service.create_conversation(
            owner.id, "  Study app  ", title="   "
        )
        assert conversation.title == "Study app"


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_persists_decrements_and_triggers(
        self, session_factory, conversation_service, reply_trigger, owner
    ):
        conversation = await make_conversation(session_factory, owner)

        message = await conversation_service.send_message(conversation.id, owner.id, "Any ideas?")

        assert message.sender == Sender.USER
        assert message.content == "Any ideas?"
        assert message.user_id == owner.id
        assert await _message_count(session_factory, conversation.id) == 1
        assert await _remaining(session_factory, owner.id) == 9
        assert reply_trigger.scheduled == [(conversation.id, owner.id, "Any ideas?")]

    @pytest.mark.asyncio
    async def test_quota_exhausted_persists_nothing(
        self, session_factory, conversation_service, reply_trigger
    ):
        broke = await make_user(session_factory, remaining_ideas=0)
        conversation = await make_conversation(session_factory, broke)

        with pytest.raises(QuotaExceededException):
            await conversation_service.send_message(conversation.id, broke.id, "One more?")

        assert await _message_count(session_factory, conversation.id) == 0
        assert await _remaining(session_factory, broke.id) == 0
        assert reply_trigger.scheduled == []

    @pytest.mark.asyncio
    async def test_non_owner_is_forbidden_and_nothing_changes(
        self, session_factory, conversation_service, reply_trigger, owner
    ):
        intruder = await make_user(session_factory)
        conversation = await make_conversation(session_factory, owner)

        with pytest.raises(ForbiddenException):
            await conversation_service.send_message(conversation.id, intruder.id, "Hi")

        assert await _message_count(session_factory, conversation.id) == 0
        assert await _remaining(session_factory, owner.id) == 10
        assert await _remaining(session_factory, intruder.id) == 10
        assert reply_trigger.scheduled == []

    @pytest.mark.asyncio
    async def test_missing_conversation_is_not_found(self, conversation_service, owner):
        with pytest.raises(NotFoundException):
            await conversation_service.send_message(uuid.uuid4(), owner.id, "Hi")

    @pytest.mark.asyncio
    async def test_new_day_restores_allowance_before_decrement(
        self, session_factory, conversation_service
    ):
        yesterday = datetime.now(UTC) - timedelta(days=1)
        user = await make_user(session_factory, remaining_ideas=0, last_idea_reset_at=yesterday)
        conversation = await make_conversation(session_factory, user)

        await conversation_service.send_message(conversation.id, user.id, "Fresh day")

        assert await _remaining(session_factory, user.id) == 9

    @pytest.mark.asyncio
    async def test_last_idea_is_spendable_once(self, session_factory, conversation_service):
        user = await make_user(session_factory, remaining_ideas=1)
        conversation = await make_conversation(session_factory, user)

        await conversation_service.send_message(conversation.id, user.id, "Last one")
        with pytest.raises(QuotaExceededException):
            await conversation_service.send_message(conversation.id, user.id, "Too many")

        assert await _message_count(session_factory, conversation.id) == 1


class TestReads:
    @pytest.mark.asyncio
    async def test_messages_are_listed_oldest_first(
        self, session_factory, conversation_service, owner
    ):
        conversation = await make_conversation(session_factory, owner)
        messages = await make_messages(session_factory, conversation, 4)

        page = await conversation_service.list_messages(conversation.id, owner.id)

        assert [m.id for m in page.data] == [m.id for m in messages]
        assert page.meta.total == 4

    @pytest.mark.asyncio
    async def test_messages_of_foreign_conversation_are_hidden(
        self, session_factory, conversation_service, owner
    ):
        stranger = await make_user(session_factory)
        conversation = await make_conversation(session_factory, owner)

        with pytest.raises(NotFoundException):
            await conversation_service.list_messages(conversation.id, stranger.id)

    @pytest.mark.asyncio
    async def test_cursor_listing_defaults_to_newest_first(
        self, session_factory, conversation_service, owner
    ):
        conversation = await make_conversation(session_factory, owner)
        messages = await make_messages(session_factory, conversation, 3)

        first = await conversation_service.list_messages_cursor(
            conversation.id, owner.id, PaginationParams(limit=2)
        )
        second = await conversation_service.list_messages_cursor(
            conversation.id, owner.id, PaginationParams(limit=2, cursor=first.next_cursor)
        )

        assert [m.id for m in first.data] == [messages[2].id, messages[1].id]
        assert [m.id for m in second.data] == [messages[0].id]
        assert second.next_cursor is None

    @pytest.mark.asyncio
    async def test_conversations_are_scoped_to_owner(
        self, session_factory, conversation_service, owner
    ):
        other = await make_user(session_factory)
        mine = await make_conversation(session_factory, owner)
        await make_conversation(session_factory, other)

        page = await conversation_service.list_conversations(owner.id)

        assert [c.id for c in page.data] == [mine.id]


class TestSoftDelete:
    @pytest.mark.asyncio
    async def test_deleted_conversation_disappears(
        self, session_factory, conversation_service, owner
    ):
        conversation = await make_conversation(session_factory, owner)

        await conversation_service.delete_conversation(conversation.id, owner.id)

        with pytest.raises(NotFoundException):
            await conversation_service.get_conversation(conversation.id, owner.id)
        page = await conversation_service.list_conversations(owner.id)
        assert page.data == []
        with pytest.raises(NotFoundException):
            await conversation_service.send_message(conversation.id, owner.id, "Still there?")

    @pytest.mark.asyncio
    async def test_reply_to_deleted_conversation_is_not_found(
        self, session_factory, conversation_service, owner
    ):
        conversation = await make_conversation(session_factory, owner)
        await conversation_service.delete_conversation(conversation.id, owner.id)

        with pytest.raises(NotFoundException):
            await conversation_service.append_system_message(conversation.id, "Late reply")


class TestAppendSystemMessage:
    @pytest.mark.asyncio
    async def test_reply_is_attributed_to_owner(
        self, session_factory, conversation_service, reply_trigger, owner
    ):
        conversation = await make_conversation(session_factory, owner)

        message = await conversation_service.append_system_message(conversation.id, "Try flashcards")

        assert message.sender == Sender.SYSTEM
        assert message.user_id == owner.id
        assert await _remaining(session_factory, owner.id) == 10
        assert reply_trigger.scheduled == []


class TestIdeas:
    @pytest.mark.asyncio
    async def test_ideas_of_live_conversations_by_category(
        self, session_factory, conversation_service, owner
    ):
        live = await make_conversation(session_factory, owner)
        gone = await make_conversation(session_factory, owner)
        live_messages = await make_messages(session_factory, live, 2)
        [gone_message] = await make_messages(session_factory, gone, 1)
        startup = await make_idea(session_factory, live_messages[0], "Tutor marketplace")
        learning = await make_idea(
            session_factory, live_messages[1], "Spaced repetition", category=IdeaCategory.LEARNING
        )
        await make_idea(session_factory, gone_message, "Forgotten")
        await conversation_service.delete_conversation(gone.id, owner.id)

        everything = await conversation_service.list_ideas(owner.id, category=IdeaCategory.ALL)
        only_learning = await conversation_service.list_ideas(
            owner.id, category=IdeaCategory.LEARNING
        )

        assert {i.id for i in everything.data} == {startup.id, learning.id}
        assert everything.meta.total == 2
        assert [i.id for i in only_learning.data] == [learning.id]


class TestRowHelpers:
    @pytest.mark.asyncio
    async def test_soft_delete_and_restore(self, session_factory, conversation_service, owner):
        from src.models.conversation import Conversation

        conversation = await make_conversation(session_factory, owner)

        async with session_factory() as session, session.begin():
            assert await Conversation.soft_delete(session, conversation.id) is True
        with pytest.raises(NotFoundException):
            await conversation_service.get_conversation(conversation.id, owner.id)

        async with session_factory() as session, session.begin():
            assert await Conversation.restore(session, conversation.id) is True
        restored = await conversation_service.get_conversation(conversation.id, owner.id)
        assert restored.id == conversation.id

    @pytest.mark.asyncio
    async def test_soft_delete_of_unknown_row(self, session_factory):
        from src.models.conversation import Conversation

        async with session_factory() as session, session.begin():
            assert await Conversation.soft_delete(session, uuid.uuid4()) is False
