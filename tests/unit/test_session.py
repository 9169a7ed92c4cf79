"""
Session Registry Unit Tests
"""

import pytest

from resummarize.services.ai import AIGateway
from resummarize.services.session import SessionRegistry
from resummarize.services.storage import MemoryStore


@pytest.mark.asyncio
async def test_sessions_are_reused_per_user(notes_gateway):
    registry = SessionRegistry(notes_gateway, AIGateway(api_key="mock"), MemoryStore())

    first = await registry.get("user-1")
    again = await registry.get("user-1")
    other = await registry.get("user-2")

    assert first is again
    assert other is not first


@pytest.mark.asyncio
async def test_discard_flushes_pending_drafts(notes_gateway):
    registry = SessionRegistry(notes_gateway, AIGateway(api_key="mock"), MemoryStore())
    session = await registry.get("user-1")
    note = await session.notes.create("t", "")

    session.notes.schedule_autosave(note.id, {"content": "unsaved"})
    await registry.discard("user-1")

    assert notes_gateway.rows[note.id].content == "unsaved"
    assert await registry.get("user-1") is not session


@pytest.mark.asyncio
async def test_chat_history_is_restored_for_a_new_session(notes_gateway):
    store = MemoryStore()
    registry = SessionRegistry(notes_gateway, AIGateway(api_key="mock"), store)
    session = await registry.get("user-1")
    await session.chat.send_message("remember me")

    await registry.close()
    restored = await registry.get("user-1")

    assert [m.content for m in restored.chat.messages][0] == "remember me"


@pytest.mark.asyncio
async def test_session_opens_while_store_is_down(notes_gateway):
    class DownStore(MemoryStore):
        async def get(self, key):
            raise ConnectionError("redis down")

    registry = SessionRegistry(notes_gateway, AIGateway(api_key="mock"), DownStore())

    session = await registry.get("user-1")

    assert session.chat.messages == []


@pytest.mark.asyncio
async def test_least_recent_session_is_evicted_and_flushed(notes_gateway):
    registry = SessionRegistry(
        notes_gateway, AIGateway(api_key="mock"), MemoryStore(), max_sessions=1
    )
    session = await registry.get("user-1")
    note = await session.notes.create("t", "")
    session.notes.schedule_autosave(note.id, {"content": "unsaved"})

    await registry.get("user-2")
    assert len(registry) == 1

    await registry.close()
    assert notes_gateway.rows[note.id].content == "unsaved"


@pytest.mark.asyncio
async def test_idle_session_expires(notes_gateway):
    now = [0.0]
    registry = SessionRegistry(
        notes_gateway,
        AIGateway(api_key="mock"),
        MemoryStore(),
        idle_seconds=60,
        timer=lambda: now[0],
    )
    first = await registry.get("user-1")

    now[0] = 50
    assert await registry.get("user-1") is first
    now[0] = 100
    assert await registry.get("user-1") is first

    now[0] = 200
    assert await registry.get("user-1") is not first
    await registry.close()
