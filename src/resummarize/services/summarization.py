"""
Summarization Orchestrator

Chooses the prompt template for a summary type, batches note content,
and serves results through a freshness-windowed QueryCache.

Two families of operations:

**Query reads** (``summarize_one``, ``summarize_many``, ``insights``,
``action_items``): cached, de-duplicated, failures returned as tagged
``error`` results so callers can render an error state with a retry.

**Fire-and-forget** (``quick_summary``, ``quick_bulk_summary``): used for
inline previews while editing; never raise, degrade to ``""``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from resummarize.core.config import settings
from resummarize.schemas.ai import (
    ActionItem,
    ActionItemSort,
    InsightsResult,
    QueryResult,
    QueryStatus,
    SummaryResult,
    SummaryType,
)
from resummarize.schemas.notes import NoteRead
from resummarize.services import prompts
from resummarize.services.action_items import parse_action_items, sort_action_items
from resummarize.services.ai import AIGateway
from resummarize.services.cache import CacheKey, QueryCache

logger = logging.getLogger(__name__)


def _joined_ids(notes: Sequence[NoteRead]) -> str:
    return ",".join(str(note.id) for note in notes)


def _notes_content(notes: Sequence[NoteRead]) -> str:
    return prompts.NOTE_SEPARATOR.join(
        prompts.format_note(note.title, note.content) for note in notes
    )


class SummarizationOrchestrator:
    """
    Summaries, insights and action items for one user session.

    Args:
        gateway: AI gateway used for every generation.
        cache: Summary cache; defaults to a window of SUMMARY_STALE_SECONDS.
        min_note_chars: Minimum text length for ``quick_summary``.
        min_bulk_chars: Minimum text length for ``quick_bulk_summary``.
    """

    def __init__(
        self,
        gateway: AIGateway,
        cache: QueryCache | None = None,
        *,
        min_note_chars: int | None = None,
        min_bulk_chars: int | None = None,
    ) -> None:
        self._gateway = gateway
        self._cache = cache or QueryCache(stale_seconds=settings.SUMMARY_STALE_SECONDS)
        self._min_note_chars = (
            min_note_chars if min_note_chars is not None else settings.SUMMARY_MIN_NOTE_CHARS
        )
        self._min_bulk_chars = (
            min_bulk_chars if min_bulk_chars is not None else settings.SUMMARY_MIN_BULK_CHARS
        )
        # summary key -> (summary timestamp the flags belong to, completed ids)
        self._completed: dict[CacheKey, tuple[object, set[str]]] = {}

    @property
    def cache(self) -> QueryCache:
        return self._cache

    # ------------------------------------------------------------------
    # Cache keys
    # ------------------------------------------------------------------

    @staticmethod
    def note_key(note: NoteRead, summary_type: SummaryType) -> CacheKey:
        return ("note-summary", str(note.id), summary_type.value)

    @staticmethod
    def notes_key(notes: Sequence[NoteRead], summary_type: SummaryType) -> CacheKey:
        return ("notes-summary", _joined_ids(notes), summary_type.value)

    @staticmethod
    def insights_key(notes: Sequence[NoteRead]) -> CacheKey:
        return ("insights", _joined_ids(notes))

    # ------------------------------------------------------------------
    # Query reads
    # ------------------------------------------------------------------

    async def summarize_one(
        self,
        note: NoteRead | None,
        summary_type: SummaryType = SummaryType.BRIEF,
        *,
        refresh: bool = False,
    ) -> QueryResult[SummaryResult]:
        """Summary of one note; ``idle`` (no request) when ``note`` is None."""
        if note is None:
            return QueryResult(status=QueryStatus.IDLE)

        async def fetch() -> SummaryResult:
            prompt = prompts.build_single_summary_prompt(summary_type, note.title, note.content)
            text = await self._gateway.generate(prompt)
            return SummaryResult(summary=text, type=summary_type)

        key = self.note_key(note, summary_type)
        if refresh:
            self._completed.pop(key, None)
        return await self._cache.query(key, fetch, force=refresh)

    async def summarize_many(
        self,
        notes: Sequence[NoteRead],
        summary_type: SummaryType = SummaryType.BRIEF,
        *,
        refresh: bool = False,
    ) -> QueryResult[SummaryResult]:
        """One summary over all ``notes``; ``idle`` when the list is empty."""
        if not notes:
            return QueryResult(status=QueryStatus.IDLE)
        batch = list(notes)

        async def fetch() -> SummaryResult:
            prompt = prompts.build_multi_summary_prompt(summary_type, _notes_content(batch))
            text = await self._gateway.generate(prompt)
            return SummaryResult(summary=text, type=summary_type)

        key = self.notes_key(batch, summary_type)
        if refresh:
            self._completed.pop(key, None)
        return await self._cache.query(key, fetch, force=refresh)

    async def insights(
        self,
        notes: Sequence[NoteRead],
        *,
        refresh: bool = False,
    ) -> QueryResult[InsightsResult]:
        """Exactly five numbered plain-text insights over ``notes``."""
        if not notes:
            return QueryResult(status=QueryStatus.IDLE)
        batch = list(notes)

        async def fetch() -> InsightsResult:
            text = await self._gateway.generate(
                prompts.build_insight_prompt(_notes_content(batch))
            )
            return InsightsResult(insights=text)

        return await self._cache.query(self.insights_key(batch), fetch, force=refresh)

    async def action_items(
        self,
        notes: Sequence[NoteRead],
        *,
        refresh: bool = False,
        order: ActionItemSort = ActionItemSort.DEFAULT,
    ) -> QueryResult[list[ActionItem]]:
        """
        Parse the actionable summary of ``notes`` into action items.

        ``completed`` flags live only in this session and reset whenever
        the underlying summary is regenerated.
        """
        summary = await self.summarize_many(notes, SummaryType.ACTIONABLE, refresh=refresh)
        if summary.status is not QueryStatus.SUCCESS or summary.data is None:
            return QueryResult(
                status=summary.status,
                error=summary.error,
                error_type=summary.error_type,
                updated_at=summary.updated_at,
            )

        key = self.notes_key(list(notes), SummaryType.ACTIONABLE)
        completed = self._completed_ids(key, summary.updated_at)
        items = [
            item.model_copy(update={"completed": item.id in completed})
            for item in parse_action_items(summary.data.summary)
        ]
        return QueryResult(
            status=QueryStatus.SUCCESS,
            data=sort_action_items(items, order),
            updated_at=summary.updated_at,
        )

    async def toggle_action_item(
        self,
        notes: Sequence[NoteRead],
        item_id: str,
    ) -> ActionItem | None:
        """Flip ``completed`` on one item; None when the id is unknown."""
        result = await self.action_items(notes)
        if result.status is not QueryStatus.SUCCESS or result.data is None:
            return None
        item = next((i for i in result.data if i.id == item_id), None)
        if item is None:
            return None

        key = self.notes_key(list(notes), SummaryType.ACTIONABLE)
        completed = self._completed_ids(key, result.updated_at)
        if item.completed:
            completed.discard(item_id)
        else:
            completed.add(item_id)
        return item.model_copy(update={"completed": not item.completed})

    # ------------------------------------------------------------------
    # Fire-and-forget
    # ------------------------------------------------------------------

    async def quick_summary(self, content: str) -> str:
        """Inline summary of one note's text; ``""`` on any failure."""
        return await self._quiet_generate(
            content, self._min_note_chars, prompts.QUICK_SUMMARY_PROMPT
        )

    async def quick_bulk_summary(self, content: str) -> str:
        """Inline summary of concatenated notes; ``""`` on any failure."""
        return await self._quiet_generate(
            content, self._min_bulk_chars, prompts.QUICK_BULK_SUMMARY_PROMPT
        )

    async def _quiet_generate(self, content: str, min_chars: int, template: str) -> str:
        if not self._gateway.is_configured:
            logger.error("AI API not configured")
            return ""
        if not content or len(content.strip()) < min_chars:
            return ""
        try:
            text = await self._gateway.generate(template.format(content=content))
        except Exception as e:
            logger.error("Error generating inline summary: %s", e)
            return ""
        return text.strip()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _completed_ids(self, key: CacheKey, stamp: object) -> set[str]:
        for evicted in [k for k in self._completed if self._cache.get_entry(k) is None]:
            del self._completed[evicted]
        current = self._completed.get(key)
        if current is None or current[0] != stamp:
            current = (stamp, set())
            self._completed[key] = current
        return current[1]
