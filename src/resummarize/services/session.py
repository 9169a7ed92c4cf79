"""
Client Sessions

One ``ClientSession`` per signed-in user bundles the note controller,
the summarization orchestrator and the chat orchestrator, so cached
notes, summaries and the transcript survive between requests.

Sessions are held in a ``TTLCache``: idle users and the least recently
active ones beyond ``SESSION_MAX_USERS`` are evicted, and an evicted
session flushes its pending drafts in the background.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from cachetools import TTLCache

from resummarize.core.config import settings
from resummarize.repositories.notes import NotesGateway
from resummarize.services.ai import AIGateway
from resummarize.services.chat import ChatOrchestrator
from resummarize.services.notes import NoteLifecycleController
from resummarize.services.storage import KeyValueStore
from resummarize.services.summarization import SummarizationOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class ClientSession:
    user_id: str
    notes: NoteLifecycleController
    summaries: SummarizationOrchestrator
    chat: ChatOrchestrator

    async def close(self) -> None:
        await self.notes.close()


class SessionCache(TTLCache):
    """TTLCache that hands every evicted or expired session to ``on_evict``."""

    def __init__(
        self,
        maxsize: int,
        ttl: float,
        on_evict: Callable[[ClientSession], None],
        **kwargs: Any,
    ) -> None:
        super().__init__(maxsize=maxsize, ttl=ttl, **kwargs)
        self._on_evict = on_evict

    def popitem(self) -> tuple[str, ClientSession]:
        user_id, session = super().popitem()
        self._on_evict(session)
        return user_id, session

    def expire(self, time: float | None = None) -> list[tuple[str, ClientSession]]:
        expired = super().expire(time)
        for _, session in expired or ():
            self._on_evict(session)
        return expired


class SessionRegistry:
    """
    Lazily creates and caches ``ClientSession`` objects by user id.

    Args:
        notes_gateway: Shared persistence gateway.
        ai_gateway: Shared AI gateway.
        store: Backend for chat state.
        chat_factory: Optional override for building chat orchestrators.
        max_sessions: Most sessions kept at once.
        idle_seconds: Idle time after which a session is dropped.
        timer: Clock for the idle window (injectable for tests).
    """

    def __init__(
        self,
        notes_gateway: NotesGateway,
        ai_gateway: AIGateway,
        store: KeyValueStore,
        chat_factory: Callable[[str], ChatOrchestrator] | None = None,
        *,
        max_sessions: int | None = None,
        idle_seconds: float | None = None,
        timer: Callable[[], float] | None = None,
    ) -> None:
        self._notes_gateway = notes_gateway
        self._ai_gateway = ai_gateway
        self._store = store
        self._chat_factory = chat_factory
        cache_kwargs = {"timer": timer} if timer is not None else {}
        self._sessions = SessionCache(
            maxsize=max_sessions or settings.SESSION_MAX_USERS,
            ttl=idle_seconds or settings.SESSION_IDLE_SECONDS,
            on_evict=self._close_later,
            **cache_kwargs,
        )
        self._closing: set[asyncio.Task[None]] = set()
        self._lock = asyncio.Lock()

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def __len__(self) -> int:
        return len(self._sessions)

    async def get(self, user_id: str) -> ClientSession:
        async with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = await self._create(user_id)
            # re-inserting restarts the idle window
            self._sessions[user_id] = session
        return session

    async def discard(self, user_id: str) -> None:
        """Drop a user's session (sign-out); pending drafts are flushed first."""
        session = self._sessions.pop(user_id, None)
        if session is not None:
            await session.close()

    async def close(self) -> None:
        self._sessions.expire()
        for user_id in list(self._sessions):
            await self.discard(user_id)
        if self._closing:
            await asyncio.gather(*self._closing)

    def _close_later(self, session: ClientSession) -> None:
        logger.info("Client session evicted for %s", session.user_id)
        task = asyncio.get_running_loop().create_task(session.close())
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _create(self, user_id: str) -> ClientSession:
        if self._chat_factory is not None:
            chat = self._chat_factory(user_id)
        else:
            chat = ChatOrchestrator(self._ai_gateway, self._store, namespace=f"user:{user_id}")
        await chat.load()
        logger.info("Client session opened for %s", user_id)
        return ClientSession(
            user_id=user_id,
            notes=NoteLifecycleController(self._notes_gateway, user_id),
            summaries=SummarizationOrchestrator(self._ai_gateway),
            chat=chat,
        )
