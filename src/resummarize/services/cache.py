"""
Query Cache

Explicit client-side cache keyed by operation signature, e.g.
``("notes",)`` or ``("note-summary", "<id>", "brief")``.

Each entry is tagged ``pending | success | error``. Guarantees:
    - single-flight: concurrent fetches of a pending key share one request
    - freshness: a successful entry is served without refetching until its
      window elapses (``stale_seconds=None`` keeps it until invalidated)
    - forced refresh and ``cancel`` give the key a new generation, so a
      superseded in-flight request never overwrites newer state
    - settled entries older than the window are evicted on the next fetch
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any

from resummarize.schemas.ai import QueryResult, QueryStatus

logger = logging.getLogger(__name__)

CacheKey = tuple[Hashable, ...]


@dataclass
class CacheEntry:
    status: QueryStatus
    data: Any = None
    error: BaseException | None = None
    fetched_at: float | None = None  # monotonic clock, None = stale
    settled_at: float | None = None  # monotonic clock of the last success/error
    updated_at: datetime | None = None  # wall clock, for clients
    generation: int = 0
    task: asyncio.Future[Any] | None = None


class QueryCache:
    """
    In-process cache store with a fixed freshness window.

    Args:
        stale_seconds: Freshness window; ``None`` means fresh until invalidated.
        clock: Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        stale_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._stale_seconds = stale_seconds
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._generation = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_entry(self, key: CacheKey) -> CacheEntry | None:
        return self._entries.get(key)

    def get_data(self, key: CacheKey) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def is_fresh(self, key: CacheKey) -> bool:
        entry = self._entries.get(key)
        if entry is None or entry.status is not QueryStatus.SUCCESS:
            return False
        if entry.fetched_at is None:
            return False
        if self._stale_seconds is None:
            return True
        return self._clock() - entry.fetched_at < self._stale_seconds

    def result(self, key: CacheKey) -> QueryResult[Any]:
        """Tagged snapshot of ``key`` (``idle`` when never fetched)."""
        entry = self._entries.get(key)
        if entry is None:
            return QueryResult(status=QueryStatus.IDLE)
        return QueryResult(
            status=entry.status,
            data=entry.data if entry.status is QueryStatus.SUCCESS else None,
            error=str(entry.error) if entry.error is not None else None,
            error_type=type(entry.error).__name__ if entry.error is not None else None,
            updated_at=entry.updated_at,
        )

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def fetch(
        self,
        key: CacheKey,
        fetcher: Callable[[], Awaitable[Any]],
        *,
        force: bool = False,
    ) -> Any:
        """
        Return cached data for ``key`` or run ``fetcher`` once to fill it.

        Raises whatever ``fetcher`` raises; the entry is then tagged
        ``error`` and the next call retries.
        """
        entry = self._entries.get(key)

        if not force and entry is not None:
            if entry.status is QueryStatus.PENDING and entry.task is not None:
                return await asyncio.shield(entry.task)
            if self.is_fresh(key):
                return entry.data

        if force:
            self.remove(key)
            entry = None

        generation = self._next_generation()
        task = asyncio.ensure_future(fetcher())
        self._entries[key] = CacheEntry(
            status=QueryStatus.PENDING,
            data=entry.data if entry is not None else None,
            generation=generation,
            task=task,
        )

        try:
            data = await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if self._is_current(key, generation):
                self._entries[key] = CacheEntry(
                    status=QueryStatus.ERROR,
                    error=e,
                    settled_at=self._clock(),
                    updated_at=datetime.now(UTC),
                    generation=generation,
                )
            raise

        if self._is_current(key, generation):
            self._store(key, data, generation)
        return data

    async def query(
        self,
        key: CacheKey,
        fetcher: Callable[[], Awaitable[Any]],
        *,
        force: bool = False,
    ) -> QueryResult[Any]:
        """Like ``fetch`` but reports failures as a tagged ``error`` result."""
        try:
            data = await self.fetch(key, fetcher, force=force)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Query %s failed: %s: %s", key, type(e).__name__, e)
            return QueryResult(
                status=QueryStatus.ERROR,
                error=str(e),
                error_type=type(e).__name__,
                updated_at=datetime.now(UTC),
            )
        entry = self._entries.get(key)
        updated_at = entry.updated_at if entry is not None else None
        return QueryResult(
            status=QueryStatus.SUCCESS,
            data=data,
            updated_at=updated_at or datetime.now(UTC),
        )

    # ------------------------------------------------------------------
    # Mutation helpers (optimistic updates)
    # ------------------------------------------------------------------

    def set_data(self, key: CacheKey, data: Any) -> None:
        """Write ``data`` directly, keeping the entry's freshness unchanged."""
        entry = self._entries.get(key)
        if entry is None:
            self._store(key, data, self._next_generation())
            return
        self._entries[key] = replace(
            entry, status=QueryStatus.SUCCESS, data=data, error=None, task=None
        )

    def snapshot(self, key: CacheKey) -> CacheEntry | None:
        """Copy of the current entry, for ``restore`` after a failed mutation."""
        entry = self._entries.get(key)
        return replace(entry) if entry is not None else None

    def restore(self, key: CacheKey, entry: CacheEntry | None) -> None:
        if entry is None:
            self._entries.pop(key, None)
        else:
            self._entries[key] = replace(entry)

    def cancel(self, key: CacheKey) -> None:
        """Detach any in-flight request so its result is not written back."""
        entry = self._entries.get(key)
        if entry is not None and entry.status is QueryStatus.PENDING:
            if entry.data is None:
                self._entries.pop(key, None)
            else:
                self._entries[key] = replace(
                    entry,
                    status=QueryStatus.SUCCESS,
                    task=None,
                    fetched_at=None,
                    settled_at=self._clock(),
                    generation=self._next_generation(),
                )

    def invalidate(self, key: CacheKey) -> None:
        """Mark ``key`` stale; data stays readable until the next fetch."""
        entry = self._entries.get(key)
        if entry is not None and entry.status is not QueryStatus.PENDING:
            entry.fetched_at = None

    def remove(self, key: CacheKey) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _store(self, key: CacheKey, data: Any, generation: int) -> None:
        now = self._clock()
        self._entries[key] = CacheEntry(
            status=QueryStatus.SUCCESS,
            data=data,
            fetched_at=now,
            settled_at=now,
            updated_at=datetime.now(UTC),
            generation=generation,
        )

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, key: CacheKey, generation: int) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.generation == generation

    def _prune(self) -> None:
        if self._stale_seconds is None:
            return
        cutoff = self._clock() - self._stale_seconds
        expired = [
            key
            for key, entry in self._entries.items()
            if entry.status is not QueryStatus.PENDING
            and entry.settled_at is not None
            and entry.settled_at <= cutoff
        ]
        for key in expired:
            del self._entries[key]
