"""
Chat Schemas

Conversation messages and the persisted chatbot state.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field

ChatRole = Literal["user", "model"]


class ChatMode(StrEnum):
    NOTES = "notes"
    THERAPIST = "therapist"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class ChatMessage(BaseModel):
    role: ChatRole
    content: str
    timestamp: str = Field(default_factory=_now_iso)


class ChatState(BaseModel):
    """Snapshot of one user's conversation."""

    messages: list[ChatMessage] = Field(default_factory=list)
    mode: ChatMode = ChatMode.NOTES
    is_open: bool = False
    is_sending: bool = False
    last_error: str | None = None


class SendMessageRequest(BaseModel):
    content: str = Field(..., max_length=4000)


class SwitchModeRequest(BaseModel):
    mode: ChatMode
