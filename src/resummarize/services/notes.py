"""
Note Lifecycle Controller

Mediates every note mutation between the presentation layer and the
persistence gateway for one user session:

    - list/get/search read through the cached note list ``("notes",)``
    - create invalidates the list
    - update/delete are optimistic: snapshot -> apply -> call gateway ->
      (success) replace + invalidate | (failure) restore snapshot
    - auto-save coalesces editor keystrokes per note behind a Debouncer

Nothing is retried automatically; every failure reaches the caller.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from pydantic import ValidationError as SchemaError

from resummarize.core.config import settings
from resummarize.core.exceptions import NotAuthenticated, ValidationError
from resummarize.repositories.notes import NotesGateway
from resummarize.schemas.notes import NoteCreate, NoteRead, NoteUpdate
from resummarize.services.cache import QueryCache
from resummarize.services.debounce import Debouncer

logger = logging.getLogger(__name__)

NOTES_KEY = ("notes",)


def _note_update(fields: dict[str, Any]) -> NoteUpdate:
    try:
        return NoteUpdate(**fields)
    except SchemaError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise ValidationError(f"Invalid {field}: {error['msg']}") from e


class NoteLifecycleController:
    """
    Note CRUD with optimistic local state.

    Args:
        gateway: Persistence gateway.
        user_id: Authenticated owner; ``None`` makes every call raise
            ``NotAuthenticated``.
        autosave_delay: Quiet period before a draft is written.
        cache: Note list cache (fresh until invalidated by default).
    """

    def __init__(
        self,
        gateway: NotesGateway,
        user_id: str | None,
        *,
        autosave_delay: float | None = None,
        cache: QueryCache | None = None,
    ) -> None:
        self._gateway = gateway
        self._user_id = user_id
        self._autosave_delay = (
            autosave_delay if autosave_delay is not None else settings.AUTOSAVE_DELAY_SECONDS
        )
        self._cache = cache or QueryCache(stale_seconds=None)
        self._drafts: dict[UUID, dict[str, Any]] = {}
        self._savers: dict[UUID, Debouncer] = {}
        self.last_autosave_error: str | None = None

    @property
    def cache(self) -> QueryCache:
        return self._cache

    @property
    def autosave_delay(self) -> float:
        return self._autosave_delay

    def cached_notes(self) -> list[NoteRead] | None:
        """Current local view of the note list (None before the first fetch)."""
        data = self._cache.get_data(NOTES_KEY)
        return list(data) if data is not None else None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list(self, *, refresh: bool = False) -> list[NoteRead]:
        """All notes of the user, most recently updated first."""
        user_id = self._require_user()
        notes = await self._cache.fetch(
            NOTES_KEY,
            lambda: self._gateway.list(user_id),
            force=refresh,
        )
        return list(notes)

    async def get(self, note_id: UUID | None) -> NoteRead | None:
        user_id = self._require_user()
        if not note_id:
            raise ValidationError("Note ID is required")
        return await self._gateway.get(user_id, note_id)

    async def search(self, query: str) -> list[NoteRead]:
        """Title/content search; a blank query is the full list."""
        if not query or not query.strip():
            return await self.list()
        user_id = self._require_user()
        return await self._gateway.search(user_id, query)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, title: str = "", content: str = "") -> NoteRead:
        user_id = self._require_user()
        note = await self._gateway.create(user_id, NoteCreate(title=title, content=content))
        self._cache.invalidate(NOTES_KEY)
        return note

    async def update(
        self,
        note_id: UUID | None,
        fields: NoteUpdate | dict[str, Any],
    ) -> NoteRead:
        """
        Partially update a note with an optimistic local write.

        The cached list shows the proposed values immediately; if the
        gateway call fails the cached list reverts to exactly what it was.
        """
        user_id = self._require_user()
        if not note_id:
            raise ValidationError("Note ID is required for updates")
        if isinstance(fields, dict):
            fields = _note_update(fields)
        changes = fields.model_dump(exclude_unset=True)

        self._cache.cancel(NOTES_KEY)
        previous = self._cache.snapshot(NOTES_KEY)
        current = self.cached_notes()
        if current is not None:
            self._cache.set_data(
                NOTES_KEY,
                [n.model_copy(update=changes) if n.id == note_id else n for n in current],
            )

        try:
            note = await self._gateway.update(user_id, note_id, fields)
        except Exception:
            self._cache.restore(NOTES_KEY, previous)
            logger.warning("Rolled back optimistic update of note %s", note_id)
            raise

        current = self.cached_notes()
        if current is not None:
            self._cache.set_data(
                NOTES_KEY, [note if n.id == note_id else n for n in current]
            )
        self._cache.invalidate(NOTES_KEY)
        return note

    async def delete(self, note_id: UUID | None) -> None:
        """Delete a note, removing it from the local list first."""
        user_id = self._require_user()
        if not note_id:
            raise ValidationError("Note ID is required for deletion")

        self.cancel_autosave(note_id)
        self._cache.cancel(NOTES_KEY)
        previous = self._cache.snapshot(NOTES_KEY)
        current = self.cached_notes()
        if current is not None:
            self._cache.set_data(NOTES_KEY, [n for n in current if n.id != note_id])

        try:
            await self._gateway.delete(user_id, note_id)
        except Exception:
            self._cache.restore(NOTES_KEY, previous)
            logger.warning("Rolled back optimistic delete of note %s", note_id)
            raise

        self._cache.invalidate(NOTES_KEY)

    # ------------------------------------------------------------------
    # Auto-save
    # ------------------------------------------------------------------

    def schedule_autosave(self, note_id: UUID | None, fields: NoteUpdate | dict[str, Any]) -> None:
        """
        Queue an editor change. Drafts for the same note merge (later
        fields win) and are written once the editor has been quiet for
        ``autosave_delay`` seconds.
        """
        self._require_user()
        if not note_id:
            raise ValidationError("Note ID is required for updates")
        if isinstance(fields, dict):
            fields = _note_update(fields)
        fields = fields.model_dump(exclude_unset=True)

        self._drafts[note_id] = {**self._drafts.get(note_id, {}), **fields}
        saver = self._savers.get(note_id)
        if saver is None:
            saver = Debouncer(
                self._autosave_delay,
                self._commit_draft,
                on_error=self._record_autosave_error,
            )
            self._savers[note_id] = saver
        saver.call(note_id)

    def has_pending_autosave(self, note_id: UUID) -> bool:
        saver = self._savers.get(note_id)
        return saver is not None and saver.pending

    async def flush_autosave(self, note_id: UUID) -> NoteRead | None:
        """Write the pending draft now (None when nothing is pending)."""
        saver = self._savers.get(note_id)
        if saver is None:
            return None
        return await saver.flush()

    def cancel_autosave(self, note_id: UUID) -> None:
        saver = self._savers.pop(note_id, None)
        if saver is not None:
            saver.cancel()
        self._drafts.pop(note_id, None)

    async def close(self) -> None:
        """Flush every pending draft (session teardown)."""
        for note_id in list(self._savers):
            try:
                await self.flush_autosave(note_id)
            except Exception as e:
                self._record_autosave_error(e)

    async def _commit_draft(self, note_id: UUID) -> NoteRead | None:
        draft = self._drafts.pop(note_id, None)
        if not draft:
            return None
        note = await self.update(note_id, NoteUpdate(**draft))
        self.last_autosave_error = None
        logger.debug("Auto-saved note %s", note_id)
        return note

    def _record_autosave_error(self, error: BaseException) -> None:
        self.last_autosave_error = "Failed to save changes. Please try again."
        logger.error("Auto-save failed: %s", error)

    def _require_user(self) -> str:
        if not self._user_id:
            raise NotAuthenticated("Sign in to manage notes")
        return self._user_id
