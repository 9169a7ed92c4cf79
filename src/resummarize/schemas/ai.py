"""
AI Schemas

Summary, insight and action-item payloads plus the tagged query result
used by the summary cache.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Generic, Literal, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

T = TypeVar("T")


class SummaryType(StrEnum):
    """Fixed set of summary flavours, each with its own prompt template."""

    BRIEF = "brief"
    DETAILED = "detailed"
    ACTIONABLE = "actionable"
    TODO = "todo"
    KEYPOINTS = "keypoints"


class QueryStatus(StrEnum):
    IDLE = "idle"  # disabled query, nothing was requested
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class SummaryResult(BaseModel):
    summary: str
    type: SummaryType


class InsightsResult(BaseModel):
    insights: str


class QueryResult(BaseModel, Generic[T]):
    """
    Tagged cache entry snapshot returned by query-style reads.

    ``error`` carries the exception class name and message when
    ``status`` is ``error``; ``data`` is only set on success.
    """

    status: QueryStatus
    data: T | None = None
    error: str | None = None
    error_type: str | None = None
    updated_at: datetime | None = None


Priority = Literal["high", "medium", "low"]
Category = Literal[
    "Meeting",
    "Communication",
    "Review",
    "Creation",
    "Research",
    "Purchase",
    "Planning",
]


class ActionItem(BaseModel):
    """Task-like line parsed from an actionable summary."""

    id: str
    text: str
    completed: bool = False
    priority: Priority | None = None
    due_date: str | None = None
    category: Category | None = None
    source: str | None = None


class ActionItemSort(StrEnum):
    DEFAULT = "default"
    PRIORITY = "priority"
    DATE = "date"


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class SummaryRequest(BaseModel):
    """Body for multi-note summaries. Empty ``note_ids`` means all notes."""

    type: SummaryType = SummaryType.BRIEF
    note_ids: list[UUID] = Field(default_factory=list)
    refresh: bool = False


class InsightsRequest(BaseModel):
    note_ids: list[UUID] = Field(default_factory=list)
    refresh: bool = False


class QuickSummaryRequest(BaseModel):
    content: str = Field(default="", description="Raw note text")
    bulk: bool = False


class QuickSummaryResponse(BaseModel):
    summary: str = Field(description="Empty when the text is too short or AI is off")
