"""
AI API Router

Summaries, insights and action items over the signed-in user's notes.

Cached reads return the last good result while fresh; ``refresh=true``
forces a new generation. Failed generations surface as 502/503 with a
``retryable`` hint so the client can offer a retry.
"""

from collections.abc import Sequence
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from resummarize.api.deps import get_client_session
from resummarize.schemas.ai import (
    ActionItem,
    ActionItemSort,
    InsightsRequest,
    InsightsResult,
    QueryResult,
    QueryStatus,
    QuickSummaryRequest,
    QuickSummaryResponse,
    SummaryRequest,
    SummaryResult,
    SummaryType,
)
from resummarize.schemas.notes import NoteRead
from resummarize.services.session import ClientSession

router = APIRouter()


def _unwrap(result: QueryResult, empty_detail: str):
    if result.status is QueryStatus.SUCCESS:
        return result.data
    if result.status is QueryStatus.IDLE:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=empty_detail)
    code = (
        status.HTTP_503_SERVICE_UNAVAILABLE
        if result.error_type == "AIUnconfigured"
        else status.HTTP_502_BAD_GATEWAY
    )
    raise HTTPException(
        status_code=code,
        detail={
            "message": result.error or "Generation failed",
            "error": result.error_type,
            "retryable": result.error_type != "AIUnconfigured",
        },
    )


async def _select_notes(session: ClientSession, note_ids: Sequence[UUID]) -> list[NoteRead]:
    notes = await session.notes.list()
    if not note_ids:
        return notes
    wanted = set(note_ids)
    return [note for note in notes if note.id in wanted]


@router.get("/notes/{note_id}/summary", response_model=SummaryResult)
async def summarize_note(
    note_id: UUID,
    type: SummaryType = SummaryType.BRIEF,
    refresh: bool = False,
    session: ClientSession = Depends(get_client_session),
):
    """Summary of a single note in the requested style."""
    note = await session.notes.get(note_id)
    if note is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note not found")
    result = await session.summaries.summarize_one(note, type, refresh=refresh)
    return _unwrap(result, "Note not found")


@router.post("/summary", response_model=SummaryResult)
async def summarize_notes(
    request: SummaryRequest,
    session: ClientSession = Depends(get_client_session),
):
    """One summary across several notes (all notes when no ids are given)."""
    notes = await _select_notes(session, request.note_ids)
    result = await session.summaries.summarize_many(notes, request.type, refresh=request.refresh)
    return _unwrap(result, "No notes to summarize")


@router.post("/insights", response_model=InsightsResult)
async def generate_insights(
    request: InsightsRequest,
    session: ClientSession = Depends(get_client_session),
):
    notes = await _select_notes(session, request.note_ids)
    result = await session.summaries.insights(notes, refresh=request.refresh)
    return _unwrap(result, "No notes to analyze")


@router.get("/action-items", response_model=list[ActionItem])
async def read_action_items(
    sort: ActionItemSort = ActionItemSort.DEFAULT,
    refresh: bool = False,
    session: ClientSession = Depends(get_client_session),
):
    """Action items parsed from the actionable summary of all notes."""
    notes = await session.notes.list()
    result = await session.summaries.action_items(notes, refresh=refresh, order=sort)
    return _unwrap(result, "No notes to extract action items from")


@router.post("/action-items/{item_id}/toggle", response_model=ActionItem)
async def toggle_action_item(
    item_id: str,
    session: ClientSession = Depends(get_client_session),
):
    """Flip the completed flag of one action item (session-local)."""
    notes = await session.notes.list()
    item = await session.summaries.toggle_action_item(notes, item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Action item not found")
    return item


@router.post("/quick-summary", response_model=QuickSummaryResponse)
async def quick_summary(
    request: QuickSummaryRequest,
    session: ClientSession = Depends(get_client_session),
):
    """Inline preview summary; empty when the text is too short or AI is unavailable."""
    if request.bulk:
        text = await session.summaries.quick_bulk_summary(request.content)
    else:
        text = await session.summaries.quick_summary(request.content)
    return QuickSummaryResponse(summary=text)
