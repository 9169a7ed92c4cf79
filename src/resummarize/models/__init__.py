"""Models package - re-exports all models for convenient imports."""

from resummarize.models.base import Base, TimestampMixin
from resummarize.models.note import DEFAULT_NOTE_TITLE, Note

__all__ = [
    "Base",
    "TimestampMixin",
    "DEFAULT_NOTE_TITLE",
    "Note",
]
