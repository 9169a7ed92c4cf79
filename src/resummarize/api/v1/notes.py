"""
Notes API Router

REST endpoints for note CRUD, search and debounced auto-save.
All routes act on the signed-in user's notes through the note
lifecycle controller of their client session.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status

from resummarize.api.deps import get_client_session
from resummarize.schemas.notes import (
    DraftAccepted,
    NoteCreate,
    NoteDraft,
    NoteRead,
    NoteUpdate,
)
from resummarize.services.session import ClientSession

router = APIRouter()


async def _existing_note(session: ClientSession, note_id: UUID) -> NoteRead:
    note = await session.notes.get(note_id)
    if note is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Note not found"
        )
    return note


@router.get("/", response_model=list[NoteRead])
async def read_notes(
    refresh: bool = False,
    session: ClientSession = Depends(get_client_session),
):
    """List the user's notes, most recently updated first."""
    return await session.notes.list(refresh=refresh)


@router.get("/search", response_model=list[NoteRead])
async def search_notes(
    q: str = "",
    session: ClientSession = Depends(get_client_session),
):
    """Case-insensitive search over titles and content."""
    return await session.notes.search(q)


@router.post("/", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def create_note(
    note: NoteCreate,
    session: ClientSession = Depends(get_client_session),
):
    """
    Create a new note.

    A blank title is stored as "Untitled Note".
    """
    return await session.notes.create(note.title, note.content)


@router.get("/{note_id}", response_model=NoteRead)
async def read_note(
    note_id: UUID,
    session: ClientSession = Depends(get_client_session),
):
    """Retrieve a single note by ID."""
    return await _existing_note(session, note_id)


@router.patch("/{note_id}", response_model=NoteRead)
async def update_note(
    note_id: UUID,
    fields: NoteUpdate,
    session: ClientSession = Depends(get_client_session),
):
    """Partially update a note; only the fields sent are written."""
    await _existing_note(session, note_id)
    return await session.notes.update(note_id, fields)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    note_id: UUID,
    session: ClientSession = Depends(get_client_session),
):
    """Permanently delete a note. Callers confirm with the user first."""
    await _existing_note(session, note_id)
    await session.notes.delete(note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/{note_id}/draft",
    response_model=DraftAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def save_draft(
    note_id: UUID,
    draft: NoteDraft,
    session: ClientSession = Depends(get_client_session),
):
    """
    Queue an editor change for auto-save.

    Changes arriving within the quiet period are merged and written once.
    """
    await _existing_note(session, note_id)
    session.notes.schedule_autosave(note_id, draft.model_dump(exclude_unset=True))
    return DraftAccepted(
        note_id=note_id,
        status="scheduled",
        delay_seconds=session.notes.autosave_delay,
    )


@router.post("/{note_id}/draft/flush", response_model=NoteRead | None)
async def flush_draft(
    note_id: UUID,
    session: ClientSession = Depends(get_client_session),
):
    """Write a pending draft immediately (editor closed). Null when none pending."""
    return await session.notes.flush_autosave(note_id)
