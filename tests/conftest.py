"""
Pytest Configuration and Fixtures

Environment defaults, an in-memory SQLite database for repository tests,
an in-memory notes gateway for controller/API tests, and the live-stack
fixtures used by the integration suite.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults. MUST be before any resummarize imports.
#
# 1. Load .env first so that Docker-matching credentials are available.
# 2. setdefault fills in anything still missing (CI runners, fresh clones
#    without a .env file) so that pydantic Settings validation doesn't crash.
# ---------------------------------------------------------------------------
load_dotenv()  # .env → os.environ (no-op if file is missing)

_test_env = {
    "POSTGRES_USER": "resummarize",
    "POSTGRES_PASSWORD": "resummarize_password",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "resummarize_db",
    "OPENAI_API_KEY": "mock",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
import time  # noqa: E402
import uuid  # noqa: E402
from collections.abc import AsyncGenerator, Generator  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from resummarize.core.exceptions import PersistenceError, ValidationError  # noqa: E402
from resummarize.models import DEFAULT_NOTE_TITLE, Base  # noqa: E402
from resummarize.schemas.notes import NoteCreate, NoteRead, NoteUpdate  # noqa: E402

BASE_URL = os.getenv("LIVE_BASE_URL", "http://localhost:8000")


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """
    Fresh in-memory SQLite database per test.

    StaticPool keeps the single connection alive, otherwise every new
    connection would see an empty database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


# ---------------------------------------------------------------------------
# In-memory notes gateway
# ---------------------------------------------------------------------------


class InMemoryNotesGateway:
    """
    Drop-in stand-in for ``NotesGateway`` backed by a dict.

    ``fail_next`` makes the next mutating call raise ``PersistenceError``;
    ``calls`` records every method invoked.
    """

    def __init__(self) -> None:
        self.rows: dict[uuid.UUID, NoteRead] = {}
        self.calls: list[str] = []
        self.fail_next = False
        self._clock = datetime(2026, 1, 1, tzinfo=UTC)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _maybe_fail(self) -> None:
        if self.fail_next:
            self.fail_next = False
            raise PersistenceError("Failed to update note")

    def _owned(self, user_id: str) -> list[NoteRead]:
        notes = [n for n in self.rows.values() if n.user_id == user_id]
        return sorted(notes, key=lambda n: n.updated_at, reverse=True)

    async def list(self, user_id: str) -> list[NoteRead]:
        self.calls.append("list")
        return self._owned(user_id)

    async def get(self, user_id: str, note_id: uuid.UUID | None) -> NoteRead | None:
        self.calls.append("get")
        if not note_id:
            raise ValidationError("Note ID is required")
        note = self.rows.get(note_id)
        return note if note is not None and note.user_id == user_id else None

    async def search(self, user_id: str, query: str) -> list[NoteRead]:
        self.calls.append("search")
        needle = query.strip().lower()
        return [
            n
            for n in self._owned(user_id)
            if needle in n.title.lower() or needle in n.content.lower()
        ]

    async def create(self, user_id: str, note_in: NoteCreate) -> NoteRead:
        self.calls.append("create")
        self._maybe_fail()
        now = self._tick()
        note = NoteRead(
            id=uuid.uuid4(),
            title=note_in.title.strip() or DEFAULT_NOTE_TITLE,
            content=note_in.content,
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )
        self.rows[note.id] = note
        return note

    async def update(
        self, user_id: str, note_id: uuid.UUID | None, fields: NoteUpdate
    ) -> NoteRead:
        self.calls.append("update")
        self._maybe_fail()
        note = self.rows.get(note_id) if note_id else None
        if note is None or note.user_id != user_id:
            raise PersistenceError(f"Note {note_id} not found")
        note = note.model_copy(
            update={**fields.model_dump(exclude_unset=True), "updated_at": self._tick()}
        )
        self.rows[note.id] = note
        return note

    async def delete(self, user_id: str, note_id: uuid.UUID | None) -> None:
        self.calls.append("delete")
        self._maybe_fail()
        note = self.rows.get(note_id) if note_id else None
        if note is not None and note.user_id == user_id:
            del self.rows[note_id]


@pytest.fixture
def notes_gateway() -> InMemoryNotesGateway:
    return InMemoryNotesGateway()


# ---------------------------------------------------------------------------
# Live stack (integration)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def wait_for_api():
    """
    Block until the API is ready or timeout expires.

    Polls /health endpoint with 1s intervals for up to 30s.
    Fails the test session if API is unreachable (Docker likely not running).
    """
    url = f"{BASE_URL}/health"
    timeout = 30
    start = time.time()

    print("\n[Test] Waiting for API...")
    while time.time() - start < timeout:
        try:
            res = httpx.get(url, timeout=1.0)
            if res.status_code == 200:
                print("API Ready")
                return
        except httpx.RequestError:
            time.sleep(1)

    pytest.fail("API unreachable. Docker is likely down.")


@pytest.fixture(scope="session")
def api_client(wait_for_api) -> Generator[httpx.Client, None, None]:
    """
    Authenticated HTTP client for integration tests.

    Requires LIVE_ACCESS_TOKEN (a valid identity provider access token).
    Base URL points to /api/v1 for cleaner test assertions.
    """
    token = os.getenv("LIVE_ACCESS_TOKEN")
    if not token:
        pytest.skip("LIVE_ACCESS_TOKEN not set")
    with httpx.Client(
        base_url=f"{BASE_URL}/api/v1",
        headers={"Authorization": f"Bearer {token}"},
        timeout=30.0,
    ) as client:
        yield client
