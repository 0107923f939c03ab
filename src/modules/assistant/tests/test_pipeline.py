"""Unit tests for ReplyPipeline with stubbed store, provider and gateway."""

import asyncio
import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from src.exceptions import NotFoundException
from src.models.enums import Sender
from src.models.message import Message
from src.modules.assistant.constants import APOLOGY_MESSAGE, TYPING_NOTE
from src.modules.assistant.generation import GenerationResult
from src.modules.assistant.pipeline import ReplyPipeline, ReplyState
from src.modules.pagination.types import Page, PageMeta

CONVERSATION_ID = uuid.uuid4()
USER_ID = uuid.uuid4()


def _message(content: str, sender: Sender = Sender.SYSTEM) -> Message:
    now = datetime.now(UTC)
    return Message(
        id=uuid.uuid4(),
        user_id=USER_ID,
        conversation_id=CONVERSATION_ID,
        content=content,
        sender=sender,
        contains_idea=False,
        idea=None,
        created_at=now,
        updated_at=now,
    )


class RecordingGateway:
    """Keeps every notification in arrival order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    async def notify_typing(self, user_id, event) -> bool:
        self.events.append(("typing", event))
        return True

    async def notify_message(self, user_id, message) -> bool:
        self.events.append(("message", message))
        return True

    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.events]

    def typing_stopped(self) -> int:
        return sum(1 for kind, e in self.events if kind == "typing" and not e.is_typing)


def _store(history: list[Message] | None = None) -> AsyncMock:
    store = AsyncMock()
    # list_messages is asked for newest first
    newest_first = list(reversed(history or []))
    store.list_messages.return_value = Page(
        data=newest_first, meta=PageMeta(page=1, limit=10, total=len(newest_first), total_pages=1)
    )
    store.append_system_message.side_effect = lambda conversation_id, content: _message(content)
    return store


def _provider(text: str | None = "Here's an idea...") -> AsyncMock:
    provider = AsyncMock()
    provider.generate.return_value = GenerationResult(text=text)
    return provider


@pytest.mark.asyncio
async def test_success_persists_and_notifies_in_order():
    store, provider, gateway = _store(), _provider(), RecordingGateway()
    pipeline = ReplyPipeline(store, provider, gateway, timeout=5)

    outcome = await pipeline.run(CONVERSATION_ID, USER_ID, "I want to build a study app")

    store.append_system_message.assert_awaited_once_with(CONVERSATION_ID, "Here's an idea...")
    assert gateway.kinds() == ["typing", "message", "typing"]
    started, (_, payload), stopped = gateway.events
    assert started[1].is_typing is True
    assert started[1].note == TYPING_NOTE
    assert payload["content"] == "Here's an idea..."
    assert payload["sender"] == "system"
    assert payload["conversationId"] == str(CONVERSATION_ID)
    assert stopped[1].is_typing is False
    assert outcome.succeeded
    assert outcome.states == [
        ReplyState.STARTED,
        ReplyState.TYPING_NOTIFIED,
        ReplyState.CONTEXT_FETCHED,
        ReplyState.GENERATION_REQUESTED,
        ReplyState.SUCCEEDED,
        ReplyState.TYPING_CLEARED,
    ]


@pytest.mark.asyncio
async def test_provider_error_stores_one_apology():
    store, gateway = _store(), RecordingGateway()
    provider = AsyncMock()
    provider.generate.side_effect = RuntimeError("boom")
    pipeline = ReplyPipeline(store, provider, gateway, timeout=5)

    outcome = await pipeline.run(CONVERSATION_ID, USER_ID, "Hello")

    store.append_system_message.assert_awaited_once_with(CONVERSATION_ID, APOLOGY_MESSAGE)
    assert gateway.typing_stopped() == 1
    assert gateway.kinds() == ["typing", "message", "typing"]
    assert ReplyState.FAILED in outcome.states
    assert not outcome.succeeded
    provider.generate.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize("text", [None, "", "   "])
async def test_blank_result_counts_as_failure(text):
    store, gateway = _store(), RecordingGateway()
    pipeline = ReplyPipeline(store, _provider(text), gateway, timeout=5)

    await pipeline.run(CONVERSATION_ID, USER_ID, "Hello")

    store.append_system_message.assert_awaited_once_with(CONVERSATION_ID, APOLOGY_MESSAGE)


@pytest.mark.asyncio
async def test_timeout_counts_as_failure():
    async def slow(request):
        await asyncio.sleep(1)
        return GenerationResult(text="too late")

    store, gateway = _store(), RecordingGateway()
    provider = AsyncMock()
    provider.generate.side_effect = slow
    pipeline = ReplyPipeline(store, provider, gateway, timeout=0.01)

    outcome = await pipeline.run(CONVERSATION_ID, USER_ID, "Hello")

    store.append_system_message.assert_awaited_once_with(CONVERSATION_ID, APOLOGY_MESSAGE)
    assert "timed out" in outcome.error


@pytest.mark.asyncio
async def test_history_is_chronological_with_roles():
    history = [
        _message("Study app ideas?", Sender.USER),
        _message("Try a focus timer", Sender.SYSTEM),
        _message("What about flashcards?", Sender.USER),
    ]
    store, provider = _store(history), _provider()
    pipeline = ReplyPipeline(store, provider, RecordingGateway(), history_limit=3, timeout=5)

    await pipeline.run(CONVERSATION_ID, USER_ID, "What about flashcards?")

    request = provider.generate.await_args.args[0]
    assert request.messages == [
        {"role": "user", "content": "Study app ideas?"},
        {"role": "assistant", "content": "Try a focus timer"},
        {"role": "user", "content": "What about flashcards?"},
    ]
    params = store.list_messages.await_args.args[2]
    assert params.limit == 3
    assert params.sort_order.value == "desc"


@pytest.mark.asyncio
async def test_history_failure_falls_back_to_latest_message():
    store, provider = _store(), _provider()
    store.list_messages.side_effect = RuntimeError("db down")
    pipeline = ReplyPipeline(store, provider, RecordingGateway(), timeout=5)

    outcome = await pipeline.run(CONVERSATION_ID, USER_ID, "Hello")

    request = provider.generate.await_args.args[0]
    assert request.messages == [{"role": "user", "content": "Hello"}]
    assert outcome.succeeded


@pytest.mark.asyncio
async def test_everything_failing_still_clears_typing_once():
    store, gateway = _store(), RecordingGateway()
    store.list_messages.side_effect = RuntimeError("db down")
    store.append_system_message.side_effect = RuntimeError("db still down")
    provider = AsyncMock()
    provider.generate.side_effect = RuntimeError("provider down")
    pipeline = ReplyPipeline(store, provider, gateway, timeout=5)

    outcome = await pipeline.run(CONVERSATION_ID, USER_ID, "Hello")

    assert gateway.typing_stopped() == 1
    assert "message" not in gateway.kinds()
    assert outcome.final_state is ReplyState.TYPING_CLEARED


@pytest.mark.asyncio
async def test_failed_persist_of_reply_tries_apology_once():
    store, gateway = _store(), RecordingGateway()
    store.append_system_message.side_effect = [RuntimeError("write failed"), _message(APOLOGY_MESSAGE)]
    pipeline = ReplyPipeline(store, _provider(), gateway, timeout=5)

    outcome = await pipeline.run(CONVERSATION_ID, USER_ID, "Hello")

    assert store.append_system_message.await_count == 2
    assert store.append_system_message.await_args.args == (CONVERSATION_ID, APOLOGY_MESSAGE)
    assert outcome.states[-2:] == [ReplyState.FAILED, ReplyState.TYPING_CLEARED]


@pytest.mark.asyncio
async def test_deleted_conversation_drops_reply_quietly():
    store, gateway = _store(), RecordingGateway()
    store.append_system_message.side_effect = NotFoundException("Conversation not found")
    pipeline = ReplyPipeline(store, _provider(), gateway, timeout=5)

    outcome = await pipeline.run(CONVERSATION_ID, USER_ID, "Hello")

    store.append_system_message.assert_awaited_once()
    assert gateway.kinds() == ["typing", "typing"]
    assert outcome.message is None


@pytest.mark.asyncio
async def test_notification_errors_are_absorbed():
    store = _store()
    gateway = AsyncMock()
    gateway.notify_typing.side_effect = RuntimeError("redis down")
    gateway.notify_message.side_effect = RuntimeError("redis down")
    pipeline = ReplyPipeline(store, _provider(), gateway, timeout=5)

    outcome = await pipeline.run(CONVERSATION_ID, USER_ID, "Hello")

    assert outcome.succeeded
    assert gateway.notify_typing.await_count == 2
