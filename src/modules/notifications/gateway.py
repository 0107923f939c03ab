"""Push notifications to connected clients.

The transport (websocket/socket server) registers a connection handle per user
and subscribes to that handle's Redis channel; this gateway only resolves the
handle and publishes. Both notify methods return ``False`` instead of raising.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Protocol

import redis.asyncio as redis

from src.config import settings
from src.exceptions import NotificationDeliveryFailure
from src.modules.cache.store import CacheStore
from src.modules.notifications.constants import (
    CONNECTION_CHANNEL,
    CONNECTION_KEY,
    EVENT_MESSAGE,
    EVENT_TYPING,
)

logger = logging.getLogger(__name__)


@dataclass
class TypingEvent:
    conversation_id: str
    is_typing: bool
    note: str = ""

    def to_payload(self) -> dict[str, Any]:
        """Wire shape shared with message events: camelCase keys."""
        return {"conversationId": self.conversation_id, "isTyping": self.is_typing, "message": self.note}


class NotificationGateway(Protocol):
    async def notify_message(self, user_id: uuid.UUID, message: dict[str, Any]) -> bool: ...

    async def notify_typing(self, user_id: uuid.UUID, event: TypingEvent) -> bool: ...


class RedisNotificationGateway:
    """Publishes events on the Redis channel of the user's live connection."""

    def __init__(
        self,
        cache: CacheStore,
        publisher: redis.Redis,
        connection_ttl: int = settings.connection_ttl_seconds,
    ) -> None:
        self._cache = cache
        self._publisher = publisher
        self._connection_ttl = connection_ttl

    async def register_connection(self, user_id: uuid.UUID, handle: str) -> None:
        await self._cache.set(CONNECTION_KEY.format(user_id=user_id), handle, ttl=self._connection_ttl)
        logger.info("Registered connection %s for user %s", handle, user_id)

    async def clear_connection(self, user_id: uuid.UUID) -> None:
        await self._cache.delete(CONNECTION_KEY.format(user_id=user_id))
        logger.info("Cleared connection for user %s", user_id)

    async def notify_message(self, user_id: uuid.UUID, message: dict[str, Any]) -> bool:
        return await self._send(user_id, EVENT_MESSAGE, message)

    async def notify_typing(self, user_id: uuid.UUID, event: TypingEvent) -> bool:
        return await self._send(user_id, EVENT_TYPING, event.to_payload())

    async def _send(self, user_id: uuid.UUID, event: str, data: dict[str, Any]) -> bool:
        try:
            handle = await self._cache.get(CONNECTION_KEY.format(user_id=user_id))
            if not handle:
                logger.warning("User %s not connected; dropping %s event", user_id, event)
                return False

            channel = CONNECTION_CHANNEL.format(prefix=settings.cache_key_prefix, handle=handle)
            envelope = json.dumps({"event": event, "data": data}, default=str)
            receivers = await self._publisher.publish(channel, envelope)
            if receivers == 0:
                raise NotificationDeliveryFailure(f"No subscriber on {channel}")

            logger.info("Sent %s to user %s via connection %s", event, user_id, handle)
            return True
        except Exception as exc:
            logger.warning("Failed to deliver %s to user %s: %s", event, user_id, exc)
            return False
