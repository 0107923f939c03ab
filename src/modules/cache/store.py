"""Key/value cache abstraction with a Redis binding.

Process-local state (connection registry, counters) goes through an injected
``CacheStore`` so several API workers can share it.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol

import redis.asyncio as redis

from src.config import settings

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def expire(self, key: str, ttl: int) -> bool: ...

    async def incr(self, key: str, amount: int = 1) -> int: ...

    def scan(self, pattern: str) -> AsyncIterator[str]: ...


class RedisCacheStore:
    """Redis-backed ``CacheStore`` with application key namespacing.

    Every key is prefixed with ``{app_name}:{environment}:``; values are
    JSON-encoded.
    """

    def __init__(self, redis_client: redis.Redis, prefix: str | None = None) -> None:
        self._redis = redis_client
        self._prefix = settings.cache_key_prefix if prefix is None else prefix

    @classmethod
    def from_url(cls, url: str | None = None) -> RedisCacheStore:
        return cls(redis.from_url(url or settings.redis_url, decode_responses=True))

    @property
    def client(self) -> redis.Redis:
        return self._redis

    def _make_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Any | None:
        raw = await self._redis.get(self._make_key(key))
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        await self._redis.set(self._make_key(key), json.dumps(value, default=str), ex=ttl)

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._make_key(key))

    async def expire(self, key: str, ttl: int) -> bool:
        return bool(await self._redis.expire(self._make_key(key), ttl))

    async def incr(self, key: str, amount: int = 1) -> int:
        return await self._redis.incrby(self._make_key(key), amount)

    async def scan(self, pattern: str) -> AsyncIterator[str]:
        """Yield matching keys with the namespace prefix stripped."""
        async for full_key in self._redis.scan_iter(match=self._make_key(pattern), count=100):
            yield full_key[len(self._prefix):]

    async def close(self) -> None:
        try:
            await self._redis.aclose()
        except Exception as exc:
            logger.warning("Redis close error: %s", exc)
