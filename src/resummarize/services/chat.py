"""
Chat Orchestrator

Persistent, mode-scoped conversation with the AI assistant.

State machine: two modes, ``notes`` (answers about the user's notes, given
a few truncated notes as context) and ``therapist`` (supportive wellness
conversation, no note context). Mode changes are explicit; by
configuration they either keep or clear the transcript.

Transcript guarantees:
    - append-only, in the order messages are produced
    - every completed send appends exactly one ``model`` message
      (the reply, or a fixed apology on failure)
    - retained and stored length never exceeds ``max_history_length``
    - overlapping sends are queued and run one at a time
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from typing import Any, Final

from resummarize.core.config import settings
from resummarize.schemas.chat import ChatMessage, ChatMode, ChatState
from resummarize.schemas.notes import NoteRead
from resummarize.services.ai import AIGateway
from resummarize.services.prompts import CHAT_PROMPTS
from resummarize.services.storage import KeyValueStore

logger = logging.getLogger(__name__)

FALLBACK_REPLY: Final[str] = "I'm sorry, I encountered an error. Please try again."

MESSAGES_KEY: Final[str] = "chatbot-messages"
MODE_KEY: Final[str] = "chatbot-mode"
OPEN_KEY: Final[str] = "chatbot-open"


def build_notes_context(
    mode: ChatMode,
    notes: Sequence[NoteRead] | None,
    *,
    max_notes: int,
    max_chars: int,
) -> str:
    """Up to ``max_notes`` notes, each cut to ``max_chars`` characters."""
    if mode is not ChatMode.NOTES or not notes:
        return ""
    parts = []
    for note in list(notes)[:max_notes]:
        content = note.content[:max_chars]
        if len(note.content) > max_chars:
            content += "..."
        parts.append(f'Note titled "{note.title}":\n{content}')
    return "\n\n".join(parts)


def build_outgoing_message(
    message: str,
    mode_prompt: str,
    notes_context: str,
    is_first_turn: bool,
) -> str:
    """
    Assemble the text actually sent to the model.

    The first turn carries the mode prompt (and context, if any); later
    turns carry the context only when there is some, else the raw text.
    """
    if is_first_turn:
        context = f"Context from my notes:\n{notes_context}\n\n" if notes_context else ""
        return f"{mode_prompt}\n\n{context}User message: {message}"
    if notes_context:
        return f"Context from notes:\n{notes_context}\n\nUser message: {message}"
    return message


class ChatOrchestrator:
    """
    One user's chatbot.

    Call ``load()`` once before use to restore the persisted transcript,
    mode and visibility.

    Args:
        gateway: AI gateway for chat turns.
        store: Persistence backend for transcript/mode/visibility.
        namespace: Key prefix isolating this user's entries.
        max_history_length: Retained transcript cap (oldest dropped first).
        preserve_history_on_mode_switch: Keep the transcript on mode change.
        open_on_mount: Initial visibility when nothing is stored.
    """

    def __init__(
        self,
        gateway: AIGateway,
        store: KeyValueStore,
        *,
        namespace: str = "",
        max_history_length: int | None = None,
        preserve_history_on_mode_switch: bool | None = None,
        open_on_mount: bool = False,
        context_notes: int | None = None,
        context_chars: int | None = None,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._namespace = namespace
        self.max_history_length = (
            max_history_length if max_history_length is not None else settings.CHAT_MAX_HISTORY
        )
        self.preserve_history_on_mode_switch = (
            preserve_history_on_mode_switch
            if preserve_history_on_mode_switch is not None
            else settings.CHAT_PRESERVE_HISTORY_ON_MODE_SWITCH
        )
        self._context_notes = context_notes or settings.CHAT_CONTEXT_NOTES
        self._context_chars = context_chars or settings.CHAT_CONTEXT_CHARS

        self._messages: list[ChatMessage] = []
        self._mode = ChatMode.NOTES
        self._is_open = open_on_mount
        self._is_sending = False
        self.last_error: Exception | None = None

        self._lock = asyncio.Lock()
        self._written: dict[str, str] = {}  # key -> last serialized value

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    @property
    def mode(self) -> ChatMode:
        return self._mode

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def is_sending(self) -> bool:
        return self._is_sending

    def state(self) -> ChatState:
        return ChatState(
            messages=self.messages,
            mode=self._mode,
            is_open=self._is_open,
            is_sending=self._is_sending,
            last_error=str(self.last_error) if self.last_error else None,
        )

    async def load(self) -> None:
        """Restore persisted state; unreadable entries fall back to defaults."""
        stored_messages = await self._read(MESSAGES_KEY)
        if isinstance(stored_messages, list):
            try:
                self._messages = [ChatMessage.model_validate(m) for m in stored_messages]
            except ValueError as e:
                logger.error("Discarding unreadable chat transcript: %s", e)
                self._messages = []
            self._trim()
            self._remember(MESSAGES_KEY, stored_messages)

        stored_mode = await self._read(MODE_KEY)
        if stored_mode in {m.value for m in ChatMode}:
            self._mode = ChatMode(stored_mode)
            self._remember(MODE_KEY, stored_mode)

        stored_open = await self._read(OPEN_KEY)
        if isinstance(stored_open, bool):
            self._is_open = stored_open
            self._remember(OPEN_KEY, stored_open)

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    async def send_message(
        self,
        text: str,
        notes: Sequence[NoteRead] | None = None,
    ) -> ChatMessage | None:
        """
        Send one user turn and append the model's reply.

        Blank input is ignored (returns None). Gateway failures never
        propagate: the fallback apology is appended instead and the error
        is kept in ``last_error``.
        """
        if not text or not text.strip():
            return None

        async with self._lock:
            self._is_sending = True
            self.last_error = None
            try:
                prior = list(self._messages)
                self._append(ChatMessage(role="user", content=text))
                await self._persist_messages()

                outgoing = build_outgoing_message(
                    text,
                    CHAT_PROMPTS[self._mode],
                    build_notes_context(
                        self._mode,
                        notes,
                        max_notes=self._context_notes,
                        max_chars=self._context_chars,
                    ),
                    is_first_turn=not prior,
                )

                try:
                    content = await self._gateway.chat(prior, outgoing)
                    reply = ChatMessage(role="model", content=content)
                except Exception as e:
                    logger.error("Error in chatbot: %s: %s", type(e).__name__, e)
                    self.last_error = e
                    reply = ChatMessage(role="model", content=FALLBACK_REPLY)

                self._append(reply)
                await self._persist_messages()
                return reply
            finally:
                self._is_sending = False

    async def clear_chat(self) -> None:
        """Empty the transcript. Mode is left unchanged."""
        self._messages = []
        await self._persist_messages()

    async def switch_mode(self, mode: ChatMode) -> None:
        self._mode = ChatMode(mode)
        await self._persist(MODE_KEY, self._mode.value)
        if not self.preserve_history_on_mode_switch:
            await self.clear_chat()

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    async def toggle_chat(self) -> bool:
        return await self._set_open(not self._is_open)

    async def open_chat(self) -> bool:
        return await self._set_open(True)

    async def close_chat(self) -> bool:
        return await self._set_open(False)

    async def _set_open(self, value: bool) -> bool:
        self._is_open = value
        await self._persist(OPEN_KEY, value)
        return value

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _append(self, message: ChatMessage) -> None:
        self._messages.append(message)
        self._trim()

    def _trim(self) -> None:
        overflow = len(self._messages) - self.max_history_length
        if overflow > 0:
            del self._messages[:overflow]

    async def _persist_messages(self) -> None:
        trimmed = self._messages[-self.max_history_length :] if self.max_history_length else []
        await self._persist(MESSAGES_KEY, [m.model_dump() for m in trimmed])

    async def _persist(self, name: str, value: Any) -> bool:
        """
        Write ``value`` unless it equals what was last written. Returns True on write.

        A store failure is logged and kept in ``last_error``; the in-memory
        state stays authoritative and the write is retried on the next change.
        """
        serialized = json.dumps(value, sort_keys=True)
        if self._written.get(name) == serialized:
            return False
        try:
            await self._store.set(self._key(name), value)
        except Exception as e:
            logger.error("Failed to persist %s: %s: %s", name, type(e).__name__, e)
            self.last_error = e
            return False
        self._written[name] = serialized
        return True

    async def _read(self, name: str) -> Any | None:
        try:
            return await self._store.get(self._key(name))
        except Exception as e:
            logger.error("Failed to load %s: %s: %s", name, type(e).__name__, e)
            return None

    def _remember(self, name: str, value: Any) -> None:
        self._written[name] = json.dumps(value, sort_keys=True)

    def _key(self, name: str) -> str:
        return f"{self._namespace}:{name}" if self._namespace else name
