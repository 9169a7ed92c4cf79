"""
Note Schemas

Pydantic models for Note API request/response validation.
Separates concerns: NoteCreate (input), NoteRead (output), NoteUpdate (partial).
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NoteCreate(BaseModel):
    """
    Request schema for POST /notes.

    Title may be blank; the persistence layer substitutes "Untitled Note".
    """

    title: str = Field(default="", max_length=500, description="Note title")
    content: str = Field(default="", description="Note content")


class NoteUpdate(BaseModel):
    """
    Request schema for PATCH /notes/{id}.

    All fields optional to support partial updates. Only fields explicitly
    sent are written (``model_dump(exclude_unset=True)``).
    Omitted fields are left alone; an explicit null is rejected.
    """

    title: str | None = Field(None, max_length=500)
    content: str | None = None

    @field_validator("title", "content")
    @classmethod
    def reject_null(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("must not be null")
        return v


class NoteRead(BaseModel):
    """Full Note representation including ownership and timestamps."""

    id: UUID
    title: str
    content: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)  # Enables ORM model conversion


class NoteDraft(NoteUpdate):
    """Request schema for PUT /notes/{id}/draft (debounced auto-save)."""


class DraftAccepted(BaseModel):
    """Response for a queued auto-save."""

    note_id: UUID
    status: str = Field(description="'scheduled' or 'saved'")
    delay_seconds: float
