"""ConversationService: conversations, messages and ideas with ownership checks.

Writes happen in short transactions on sessions from the injected factory;
reads go through the Paginator. Assistant replies are never awaited here:
after a user message is committed the reply trigger is handed the work.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from src.database.base import utcnow
from src.exceptions import ForbiddenException, NotFoundException
from src.models.conversation import Conversation
from src.models.enums import IdeaCategory, Sender
from src.models.idea import Idea
from src.models.message import Message
from src.modules.conversation.constants import (
    CONVERSATION_SORT_FIELD,
    CONVERSATION_SORT_ORDER,
    MAX_TITLE_LENGTH,
    MESSAGE_CURSOR_SORT_ORDER,
    MESSAGE_SORT_FIELD,
    MESSAGE_SORT_ORDER,
)
from src.modules.conversation.quota_service import QuotaService
from src.modules.pagination.paginator import Paginator
from src.modules.pagination.schemas import PaginationParams
from src.modules.pagination.types import CursorPage, Page

logger = logging.getLogger(__name__)


class ReplyTrigger(Protocol):
    def schedule(self, conversation_id: uuid.UUID, user_id: uuid.UUID, content: str) -> Any: ...


class ConversationService:
    """Conversation and message store."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        paginator: Paginator,
        reply_trigger: ReplyTrigger | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._paginator = paginator
        self._reply_trigger = reply_trigger

    def with_reply_trigger(self, reply_trigger: ReplyTrigger) -> ConversationService:
        return ConversationService(self._session_factory, self._paginator, reply_trigger)

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def create_conversation(
        self,
        owner_id: uuid.UUID,
        first_message: str,
        title: str | None = None,
    ) -> Conversation:
        """Create a conversation and its first user message in one transaction."""
        async with self._session_factory() as session, session.begin():
            conversation = Conversation(
                user_id=owner_id,
                title=((title or "").strip() or first_message.strip())[:MAX_TITLE_LENGTH],
                last_message_at=utcnow(),
            )
            session.add(conversation)
            await session.flush()
            session.add(self._new_message(conversation, owner_id, first_message, Sender.USER))

        logger.info("Created conversation %s for user %s", conversation.id, owner_id)
        self._trigger_reply(conversation.id, owner_id, first_message)
        return conversation

    async def list_conversations(
        self, owner_id: uuid.UUID, params: PaginationParams | None = None
    ) -> Page:
        options = (params or PaginationParams()).to_options(
            CONVERSATION_SORT_FIELD, CONVERSATION_SORT_ORDER
        )
        return await self._paginator.find_page(
            Conversation, [Conversation.user_id == owner_id], options
        )

    async def get_conversation(self, conversation_id: uuid.UUID, owner_id: uuid.UUID) -> Conversation:
        async with self._session_factory() as session:
            return await self._get_owned(session, conversation_id, owner_id)

    async def delete_conversation(self, conversation_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        """Soft-delete; the conversation disappears from every read path."""
        async with self._session_factory() as session, session.begin():
            conversation = await self._get_owned(session, conversation_id, owner_id)
            await Conversation.soft_delete(session, conversation.id)
        logger.info("Soft-deleted conversation %s", conversation_id)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def send_message(
        self,
        conversation_id: uuid.UUID,
        owner_id: uuid.UUID,
        content: str,
    ) -> Message:
        """Persist a user message and schedule the assistant reply.

        Checks run in order: NotFound, Forbidden, QuotaExceeded. The quota
        decrement, the insert and the ``last_message_at`` bump commit
        together, so a rejected send persists nothing.
        """
        async with self._session_factory() as session, session.begin():
            conversation = await self._get_live(session, conversation_id)
            if conversation is None:
                raise NotFoundException("Conversation not found")
            if conversation.user_id != owner_id:
                raise ForbiddenException("User not authorized for this conversation")

            await QuotaService(session).consume(owner_id)

            message = self._new_message(conversation, owner_id, content, Sender.USER)
            session.add(message)
            conversation.last_message_at = utcnow()

        self._trigger_reply(conversation_id, owner_id, content)
        return message

    async def list_messages(
        self,
        conversation_id: uuid.UUID,
        owner_id: uuid.UUID,
        params: PaginationParams | None = None,
    ) -> Page:
        """Offset page of messages, oldest first by default, ideas resolved inline."""
        await self.get_conversation(conversation_id, owner_id)
        options = (params or PaginationParams()).to_options(MESSAGE_SORT_FIELD, MESSAGE_SORT_ORDER)
        return await self._paginator.find_page(
            Message,
            [Message.conversation_id == conversation_id],
            options,
            joins=[selectinload(Message.idea)],
        )

    async def list_messages_cursor(
        self,
        conversation_id: uuid.UUID,
        owner_id: uuid.UUID,
        params: PaginationParams | None = None,
    ) -> CursorPage:
        """Keyset page of messages for infinite scroll, newest first by default."""
        await self.get_conversation(conversation_id, owner_id)
        options = (params or PaginationParams()).to_options(
            MESSAGE_SORT_FIELD, MESSAGE_CURSOR_SORT_ORDER, cursor_mode=True
        )
        return await self._paginator.cursor_paginate(
            Message,
            [Message.conversation_id == conversation_id],
            options,
            joins=[selectinload(Message.idea)],
        )

    async def append_system_message(
        self,
        conversation_id: uuid.UUID,
        content: str,
        sender: Sender = Sender.SYSTEM,
    ) -> Message:
        """Store an assistant message on behalf of the conversation owner.

        Raises NotFoundException when the conversation is gone, which can
        happen between a reply being triggered and it completing.
        """
        async with self._session_factory() as session, session.begin():
            conversation = await self._get_live(session, conversation_id)
            if conversation is None:
                raise NotFoundException("Conversation not found")

            message = self._new_message(conversation, conversation.user_id, content, sender)
            session.add(message)
            conversation.last_message_at = utcnow()

        return message

    # ------------------------------------------------------------------
    # Ideas
    # ------------------------------------------------------------------

    async def list_ideas(
        self,
        owner_id: uuid.UUID,
        params: PaginationParams | None = None,
        category: IdeaCategory | None = None,
    ) -> Page:
        """Ideas of live conversations, paginated over a joined statement."""
        statement = (
            select(Idea)
            .join(Conversation, Idea.conversation_id == Conversation.id)
            .where(Idea.user_id == owner_id, Conversation.not_deleted())
        )
        if category is not None and category is not IdeaCategory.ALL:
            statement = statement.where(Idea.category == category)
        options = (params or PaginationParams()).to_options()
        return await self._paginator.aggregate_page(Idea, statement, options)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    async def _get_live(session: AsyncSession, conversation_id: uuid.UUID) -> Conversation | None:
        return await session.scalar(
            select(Conversation).where(
                Conversation.id == conversation_id, Conversation.not_deleted()
            )
        )

    async def _get_owned(
        self, session: AsyncSession, conversation_id: uuid.UUID, owner_id: uuid.UUID
    ) -> Conversation:
        conversation = await session.scalar(
            select(Conversation).where(
                Conversation.id == conversation_id,
                Conversation.user_id == owner_id,
                Conversation.not_deleted(),
            )
        )
        if conversation is None:
            raise NotFoundException("Conversation not found")
        return conversation

    @staticmethod
    def _new_message(
        conversation: Conversation, user_id: uuid.UUID, content: str, sender: Sender
    ) -> Message:
        # idea=None marks the relationship as loaded so the detached row serialises
        return Message(
            user_id=user_id,
            conversation_id=conversation.id,
            content=content,
            sender=sender,
            contains_idea=False,
            idea=None,
        )

    def _trigger_reply(self, conversation_id: uuid.UUID, owner_id: uuid.UUID, content: str) -> None:
        if self._reply_trigger is None:
            return
        self._reply_trigger.schedule(conversation_id, owner_id, content)
