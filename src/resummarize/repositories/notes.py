"""
Note Repository

Data access layer for Note entities, scoped to the owning user.

``NoteRepository`` holds the queries; ``NotesGateway`` is the persistence
boundary the controllers talk to. The gateway opens its own session per
call (controllers outlive any single request), converts rows to
``NoteRead`` and maps driver failures to ``PersistenceError``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from resummarize.core.exceptions import PersistenceError, ValidationError
from resummarize.models import DEFAULT_NOTE_TITLE, Note
from resummarize.models.base import utcnow
from resummarize.repositories.base import OwnedRepository
from resummarize.schemas.notes import NoteCreate, NoteRead, NoteUpdate

logger = logging.getLogger(__name__)


class NoteRepository(OwnedRepository[Note]):
    """
    Repository for Note entities.

    Listings are ordered most recently updated first.
        - get_all_for_user: every note of one owner
        - get_for_user: owner-scoped lookup by id
        - search: case-insensitive title/content match
        - update: stamps a strictly increasing ``updated_at``
    """

    def __init__(self) -> None:
        super().__init__(Note, order_by=(Note.updated_at.desc(), Note.created_at.desc()))

    async def get_all_for_user(
        self,
        session: AsyncSession,
        user_id: str,
    ) -> Sequence[Note]:
        return await self.list_owned(session, user_id)

    async def get_for_user(
        self,
        session: AsyncSession,
        user_id: str,
        note_id: UUID,
    ) -> Note | None:
        return await self.get_owned(session, user_id, note_id)

    async def search(
        self,
        session: AsyncSession,
        user_id: str,
        query: str,
    ) -> Sequence[Note]:
        """Match ``query`` anywhere in title or content (ILIKE)."""
        pattern = f"%{query}%"
        return await self.list_owned(
            session, user_id, or_(Note.title.ilike(pattern), Note.content.ilike(pattern))
        )

    async def update(
        self,
        session: AsyncSession,
        db_obj: Note,
        obj_in: Any,
    ) -> Note:
        """
        Apply a partial update and restamp ``updated_at``.

        The new stamp is never equal to the previous one, even when two
        writes land within the clock's resolution.
        """
        update_data = (
            obj_in.model_dump(exclude_unset=True)
            if hasattr(obj_in, "model_dump")
            else dict(obj_in)
        )
        previous = db_obj.updated_at
        stamp = utcnow()
        if previous is not None:
            if previous.tzinfo is None:
                # SQLite hands back naive datetimes
                stamp = stamp.replace(tzinfo=None)
            if stamp <= previous:
                stamp = previous + timedelta(microseconds=1)
        update_data["updated_at"] = stamp
        return await super().update(session, db_obj, update_data)


# Module-level instance shared by gateways
note_repository = NoteRepository()


class NotesGateway:
    """
    Persistence gateway for notes.

    Every method is owner-scoped: a user can neither read nor mutate
    another user's rows. Missing identifiers raise ``ValidationError``
    before any database I/O.

    Usage::

        gateway = NotesGateway(get_session_factory())
        note = await gateway.create("user-1", NoteCreate(title="", content="..."))
        assert note.title == "Untitled Note"
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repository: NoteRepository = note_repository,
    ) -> None:
        self._session_factory = session_factory
        self._repository = repository

    async def list(self, user_id: str) -> list[NoteRead]:
        """All notes of ``user_id``, most recently updated first."""
        self._require_user(user_id, "list notes")
        try:
            async with self._session_factory() as session:
                rows = await self._repository.get_all_for_user(session, user_id)
                return [NoteRead.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error("Error fetching notes for %s: %s", user_id, e)
            raise PersistenceError("Failed to fetch notes") from e

    async def get(self, user_id: str, note_id: UUID | None) -> NoteRead | None:
        """Single note, or None when it does not exist for this user."""
        self._require_user(user_id, "fetch a note")
        if not note_id:
            raise ValidationError("Note ID is required")
        try:
            async with self._session_factory() as session:
                row = await self._repository.get_for_user(session, user_id, note_id)
                return NoteRead.model_validate(row) if row is not None else None
        except SQLAlchemyError as e:
            logger.error("Error fetching note %s: %s", note_id, e)
            raise PersistenceError("Failed to fetch note") from e

    async def search(self, user_id: str, query: str) -> list[NoteRead]:
        if not query or not query.strip():
            return await self.list(user_id)
        self._require_user(user_id, "search notes")
        try:
            async with self._session_factory() as session:
                rows = await self._repository.search(session, user_id, query.strip())
                return [NoteRead.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error("Error searching notes: %s", e)
            raise PersistenceError("Failed to search notes") from e

    async def create(self, user_id: str, note_in: NoteCreate) -> NoteRead:
        """Insert a note; a blank title becomes "Untitled Note"."""
        self._require_user(user_id, "create a note")
        data = {
            "title": note_in.title.strip() or DEFAULT_NOTE_TITLE,
            "content": note_in.content,
            "user_id": user_id,
        }
        try:
            async with self._session_factory() as session:
                row = await self._repository.create(session, data)
                logger.info("Created note %s for %s", row.id, user_id)
                return NoteRead.model_validate(row)
        except SQLAlchemyError as e:
            logger.error("Error creating note: %s", e)
            raise PersistenceError("Failed to create note") from e

    async def update(
        self,
        user_id: str,
        note_id: UUID | None,
        fields: NoteUpdate,
    ) -> NoteRead:
        """
        Write the supplied fields and restamp ``updated_at``.

        Raises:
            ValidationError: ``note_id`` missing.
            PersistenceError: Note not found for this user or the write failed.
        """
        self._require_user(user_id, "update a note")
        if not note_id:
            raise ValidationError("Note ID is required for updates")
        try:
            async with self._session_factory() as session:
                row = await self._repository.get_for_user(session, user_id, note_id)
                if row is None:
                    raise PersistenceError(f"Note {note_id} not found")
                row = await self._repository.update(session, row, fields)
                return NoteRead.model_validate(row)
        except SQLAlchemyError as e:
            logger.error("Error updating note %s: %s", note_id, e)
            raise PersistenceError("Failed to update note") from e

    async def delete(self, user_id: str, note_id: UUID | None) -> None:
        """Permanently remove a note. Deleting a missing note is a no-op."""
        self._require_user(user_id, "delete a note")
        if not note_id:
            raise ValidationError("Note ID is required for deletion")
        try:
            async with self._session_factory() as session:
                row = await self._repository.get_for_user(session, user_id, note_id)
                if row is not None:
                    await self._repository.delete(session, row)
                    logger.info("Deleted note %s", note_id)
        except SQLAlchemyError as e:
            logger.error("Error deleting note %s: %s", note_id, e)
            raise PersistenceError("Failed to delete note") from e

    @staticmethod
    def _require_user(user_id: str, action: str) -> None:
        if not user_id:
            raise ValidationError(f"user_id is required to {action}")
