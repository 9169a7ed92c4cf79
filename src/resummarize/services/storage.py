"""
Key-Value Store

Durable home for per-user client state (chat transcript, chat mode,
chat visibility). Values are JSON-serialisable.

Backends:
    - RedisStore: shared, survives restarts (production)
    - MemoryStore: process-local fallback when Redis is unreachable, and tests
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Async JSON key-value store."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Stored value, or None when the key is absent or unreadable."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key`` (no-op when absent)."""

    async def close(self) -> None:  # noqa: B027
        """Release backend resources."""


class MemoryStore(KeyValueStore):
    """Dict-backed store. Values round-trip through JSON like the Redis backend."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self.writes = 0

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)
        self.writes += 1

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisStore(KeyValueStore):
    """
    Redis-backed store.

    Corrupt values are logged and treated as absent, so a bad entry never
    prevents the conversation from loading.
    """

    def __init__(self, url: str, prefix: str = "resummarize:") -> None:
        self._client = redis.from_url(url, decode_responses=True)
        self._prefix = prefix

    async def get(self, key: str) -> Any | None:
        raw = await self._client.get(self._prefix + key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Corrupt value for %s: %s", key, e)
            return None

    async def set(self, key: str, value: Any) -> None:
        await self._client.set(self._prefix + key, json.dumps(value))

    async def delete(self, key: str) -> None:
        await self._client.delete(self._prefix + key)

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()
