"""
Note Lifecycle Controller Unit Tests

Optimistic update/delete with rollback, cache invalidation and debounced
auto-save, against the in-memory notes gateway.
"""

import asyncio

import pytest

from resummarize.core.exceptions import NotAuthenticated, PersistenceError, ValidationError
from resummarize.schemas.notes import NoteUpdate
from resummarize.services.notes import NoteLifecycleController


@pytest.mark.asyncio
async def test_list_is_cached_until_invalidated(notes_gateway):
    controller = NoteLifecycleController(notes_gateway, "user-1")

    await controller.list()
    await controller.list()
    assert notes_gateway.calls.count("list") == 1

    await controller.create("New", "body")
    notes = await controller.list()

    assert notes_gateway.calls.count("list") == 2
    assert [n.title for n in notes] == ["New"]


@pytest.mark.asyncio
async def test_update_reflects_fields_and_newer_timestamp(notes_gateway):
    controller = NoteLifecycleController(notes_gateway, "user-1")
    note = await controller.create("Draft", "v1")
    await controller.list()

    updated = await controller.update(note.id, {"content": "v2"})
    listed = await controller.list()

    assert updated.content == "v2"
    assert updated.title == "Draft"
    assert listed[0].content == "v2"
    assert listed[0].updated_at > note.updated_at


@pytest.mark.asyncio
async def test_failed_update_restores_cached_note_exactly(notes_gateway):
    controller = NoteLifecycleController(notes_gateway, "user-1")
    note = await controller.create("Keep me", "original")
    before = await controller.list()

    notes_gateway.fail_next = True
    with pytest.raises(PersistenceError):
        await controller.update(note.id, NoteUpdate(title="Changed"))

    assert controller.cached_notes() == before


@pytest.mark.asyncio
async def test_null_field_is_rejected_before_any_write(notes_gateway):
    controller = NoteLifecycleController(notes_gateway, "user-1")
    note = await controller.create("Title", "body")
    before = await controller.list()

    with pytest.raises(ValidationError):
        await controller.update(note.id, {"title": None})
    with pytest.raises(ValidationError):
        controller.schedule_autosave(note.id, {"content": None})

    assert "update" not in notes_gateway.calls
    assert controller.cached_notes() == before
    assert not controller.has_pending_autosave(note.id)

@pytest.mark.asyncio
async def test_optimistic_update_is_visible_before_commit(notes_gateway):
    controller = NoteLifecycleController(notes_gateway, "user-1")
    note = await controller.create("Old", "")
    await controller.list()

    seen = []
    original_update = notes_gateway.update

    async def observing_update(user_id, note_id, fields):
        seen.append(controller.cached_notes()[0].title)
        return await original_update(user_id, note_id, fields)

    notes_gateway.update = observing_update
    await controller.update(note.id, {"title": "New"})

    assert seen == ["New"]


@pytest.mark.asyncio
async def test_delete_removes_note_and_rolls_back_on_failure(notes_gateway):
    controller = NoteLifecycleController(notes_gateway, "user-1")
    keep = await controller.create("keep", "")
    drop = await controller.create("drop", "")
    before = await controller.list()

    notes_gateway.fail_next = True
    with pytest.raises(PersistenceError):
        await controller.delete(drop.id)
    assert controller.cached_notes() == before

    await controller.delete(drop.id)
    assert [n.id for n in await controller.list()] == [keep.id]


@pytest.mark.asyncio
async def test_search_blank_query_lists_everything(notes_gateway):
    controller = NoteLifecycleController(notes_gateway, "user-1")
    await controller.create("Paris", "")
    await controller.create("Rome", "")

    assert len(await controller.search("")) == 2
    assert [n.title for n in await controller.search("par")] == ["Paris"]


@pytest.mark.asyncio
async def test_signed_out_controller_raises(notes_gateway):
    controller = NoteLifecycleController(notes_gateway, None)

    with pytest.raises(NotAuthenticated):
        await controller.list()
    assert notes_gateway.calls == []


@pytest.mark.asyncio
async def test_autosave_coalesces_edits(notes_gateway):
    controller = NoteLifecycleController(notes_gateway, "user-1", autosave_delay=0.05)
    note = await controller.create("t", "")

    controller.schedule_autosave(note.id, {"content": "h"})
    controller.schedule_autosave(note.id, {"content": "he"})
    controller.schedule_autosave(note.id, {"title": "Hello", "content": "hello"})
    assert controller.has_pending_autosave(note.id)

    await asyncio.sleep(0.2)

    assert notes_gateway.calls.count("update") == 1
    saved = notes_gateway.rows[note.id]
    assert saved.title == "Hello"
    assert saved.content == "hello"
    assert not controller.has_pending_autosave(note.id)


@pytest.mark.asyncio
async def test_flush_autosave_writes_immediately(notes_gateway):
    controller = NoteLifecycleController(notes_gateway, "user-1", autosave_delay=60)
    note = await controller.create("t", "")

    controller.schedule_autosave(note.id, {"content": "now"})
    saved = await controller.flush_autosave(note.id)

    assert saved.content == "now"
    assert await controller.flush_autosave(note.id) is None


@pytest.mark.asyncio
async def test_autosave_failure_is_recorded(notes_gateway):
    controller = NoteLifecycleController(notes_gateway, "user-1", autosave_delay=0.01)
    note = await controller.create("t", "")

    notes_gateway.fail_next = True
    controller.schedule_autosave(note.id, {"content": "lost"})
    await asyncio.sleep(0.1)

    assert controller.last_autosave_error == "Failed to save changes. Please try again."
    assert notes_gateway.rows[note.id].content == ""


@pytest.mark.asyncio
async def test_delete_cancels_pending_autosave(notes_gateway):
    controller = NoteLifecycleController(notes_gateway, "user-1", autosave_delay=0.05)
    note = await controller.create("t", "")

    controller.schedule_autosave(note.id, {"content": "edit"})
    await controller.delete(note.id)
    await asyncio.sleep(0.1)

    assert "update" not in notes_gateway.calls
