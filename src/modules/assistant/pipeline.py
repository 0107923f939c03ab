"""ReplyPipeline: generates, stores and pushes one assistant reply.

One invocation walks these states in order::

    STARTED -> TYPING_NOTIFIED -> CONTEXT_FETCHED -> GENERATION_REQUESTED
            -> SUCCEEDED | FAILED -> TYPING_CLEARED

Nothing raised inside an invocation escapes ``run``: generation problems
become a stored apology message, notification problems are logged, and the
typing indicator is always cleared exactly once.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol

from src.config import settings
from src.exceptions import GenerationFailure, NotFoundException
from src.models.enums import Sender
from src.models.message import Message
from src.modules.assistant.constants import (
    APOLOGY_MESSAGE,
    DEFAULT_HISTORY_LIMIT,
    ROLE_ASSISTANT,
    ROLE_USER,
    TYPING_NOTE,
)
from src.modules.assistant.generation import GenerationProvider, GenerationRequest
from src.modules.assistant.system_prompt import SYSTEM_PROMPT
from src.modules.conversation.schemas import MessageResponse
from src.modules.notifications.gateway import NotificationGateway, TypingEvent
from src.modules.pagination.schemas import PaginationParams
from src.modules.pagination.types import Page, SortOrder

logger = logging.getLogger(__name__)


class ReplyState(str, enum.Enum):
    STARTED = "started"
    TYPING_NOTIFIED = "typing_notified"
    CONTEXT_FETCHED = "context_fetched"
    GENERATION_REQUESTED = "generation_requested"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TYPING_CLEARED = "typing_cleared"


@dataclass
class ReplyOutcome:
    conversation_id: uuid.UUID
    states: list[ReplyState] = field(default_factory=list)
    message: Message | None = None
    error: str | None = None

    def advance(self, state: ReplyState) -> None:
        self.states.append(state)

    @property
    def final_state(self) -> ReplyState | None:
        return self.states[-1] if self.states else None

    @property
    def succeeded(self) -> bool:
        return ReplyState.SUCCEEDED in self.states and ReplyState.FAILED not in self.states


class MessageStore(Protocol):
    async def list_messages(
        self, conversation_id: uuid.UUID, owner_id: uuid.UUID, params: PaginationParams | None = None
    ) -> Page: ...

    async def append_system_message(
        self, conversation_id: uuid.UUID, content: str, sender: Sender = Sender.SYSTEM
    ) -> Message: ...


class ReplyPipeline:
    def __init__(
        self,
        store: MessageStore,
        generator: GenerationProvider,
        notifier: NotificationGateway,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        timeout: float | None = None,
    ) -> None:
        self.store = store
        self.generator = generator
        self.notifier = notifier
        self.history_limit = history_limit
        self.timeout = settings.generation_timeout_seconds if timeout is None else timeout

    async def run(
        self,
        conversation_id: uuid.UUID,
        user_id: uuid.UUID,
        latest_content: str,
    ) -> ReplyOutcome:
        outcome = ReplyOutcome(conversation_id=conversation_id)
        outcome.advance(ReplyState.STARTED)
        try:
            await self._notify_typing(user_id, conversation_id, is_typing=True, note=TYPING_NOTE)
            outcome.advance(ReplyState.TYPING_NOTIFIED)

            history = await self._fetch_context(conversation_id, user_id)
            outcome.advance(ReplyState.CONTEXT_FETCHED)

            request = self._build_request(history, latest_content)
            outcome.advance(ReplyState.GENERATION_REQUESTED)
            try:
                text = await self._generate(request)
            except GenerationFailure as exc:
                logger.warning("Generation failed for conversation %s: %s", conversation_id, exc)
                outcome.error = str(exc)
                outcome.advance(ReplyState.FAILED)
                await self._deliver_fallback(outcome, user_id)
            else:
                outcome.advance(ReplyState.SUCCEEDED)
                await self._deliver(outcome, user_id, text)
        except Exception:
            logger.exception("Error generating reply for conversation %s", conversation_id)
        finally:
            await self._notify_typing(user_id, conversation_id, is_typing=False, note="")
            outcome.advance(ReplyState.TYPING_CLEARED)
        return outcome

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _fetch_context(self, conversation_id: uuid.UUID, user_id: uuid.UUID) -> list[Message]:
        """Most recent messages in chronological order; empty on any failure."""
        params = PaginationParams(
            limit=self.history_limit,
            sort_field="created_at",
            sort_order=SortOrder.DESC,
        )
        try:
            page = await self.store.list_messages(conversation_id, user_id, params)
        except Exception:
            logger.exception("Failed to fetch conversation history for %s", conversation_id)
            return []
        return list(reversed(page.data))

    def _build_request(self, history: list[Message], latest_content: str) -> GenerationRequest:
        messages = [
            {
                "role": ROLE_USER if message.sender == Sender.USER else ROLE_ASSISTANT,
                "content": message.content,
            }
            for message in history
        ]
        # The triggering message is normally already the newest history entry
        if not history or history[-1].sender != Sender.USER or history[-1].content != latest_content:
            messages.append({"role": ROLE_USER, "content": latest_content})
        return GenerationRequest(system_instruction=SYSTEM_PROMPT, messages=messages)

    async def _generate(self, request: GenerationRequest) -> str:
        """Exactly one provider call; every problem becomes GenerationFailure."""
        try:
            async with asyncio.timeout(self.timeout):
                result = await self.generator.generate(request)
        except TimeoutError as exc:
            raise GenerationFailure(f"Generation timed out after {self.timeout}s") from exc
        except Exception as exc:
            raise GenerationFailure(f"Generation provider error: {exc}") from exc

        text = (result.text or "").strip() if result is not None else ""
        if not text:
            raise GenerationFailure("Generation provider returned an empty result")
        return text

    async def _deliver(self, outcome: ReplyOutcome, user_id: uuid.UUID, text: str) -> None:
        try:
            outcome.message = await self.store.append_system_message(outcome.conversation_id, text)
        except NotFoundException:
            logger.warning(
                "Conversation %s disappeared before its reply was stored", outcome.conversation_id
            )
            return
        except Exception as exc:
            logger.exception("Failed to store reply for conversation %s", outcome.conversation_id)
            outcome.error = str(exc)
            outcome.advance(ReplyState.FAILED)
            await self._deliver_fallback(outcome, user_id)
            return
        await self._notify_message(user_id, outcome.message)

    async def _deliver_fallback(self, outcome: ReplyOutcome, user_id: uuid.UUID) -> None:
        try:
            outcome.message = await self.store.append_system_message(
                outcome.conversation_id, APOLOGY_MESSAGE
            )
        except Exception:
            logger.exception(
                "Failed to save error message to conversation %s", outcome.conversation_id
            )
            return
        await self._notify_message(user_id, outcome.message)

    # ------------------------------------------------------------------
    # Notifications (never raise)
    # ------------------------------------------------------------------

    async def _notify_typing(
        self, user_id: uuid.UUID, conversation_id: uuid.UUID, is_typing: bool, note: str
    ) -> None:
        event = TypingEvent(conversation_id=str(conversation_id), is_typing=is_typing, note=note)
        try:
            await self.notifier.notify_typing(user_id, event)
        except Exception:
            logger.warning("Typing notification to user %s failed", user_id, exc_info=True)

    async def _notify_message(self, user_id: uuid.UUID, message: Message) -> None:
        payload: dict[str, Any] = MessageResponse.model_validate(message).model_dump(
            mode="json", by_alias=True
        )
        try:
            await self.notifier.notify_message(user_id, payload)
        except Exception:
            logger.warning("Message notification to user %s failed", user_id, exc_info=True)
