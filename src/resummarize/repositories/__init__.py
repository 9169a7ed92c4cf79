"""Repositories package."""

from resummarize.repositories.base import OwnedRepository
from resummarize.repositories.notes import NoteRepository, NotesGateway, note_repository

__all__ = [
    "OwnedRepository",
    "NoteRepository",
    "NotesGateway",
    "note_repository",
]
