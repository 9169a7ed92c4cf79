"""
Note Model

A user-owned free-text record. Summaries are derived on demand and never
stored alongside the note.
"""

import uuid

from sqlalchemy import String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from resummarize.models.base import Base, TimestampMixin

DEFAULT_NOTE_TITLE = "Untitled Note"


class Note(Base, TimestampMixin):
    """
    Note entity.

    Attributes:
        id: UUID primary key (generated Python-side).
        title: Note title, defaulted to "Untitled Note" when blank.
        content: Full note content, no length limit.
        user_id: Owner reference from the identity provider (indexed).
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Note(id={self.id!s:.8}, title='{self.title[:20]}...')>"
