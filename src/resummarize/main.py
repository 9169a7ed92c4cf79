"""
Resummarize Backend Application

FastAPI application entrypoint with async lifespan management.
Handles startup checks (database, Redis), builds the shared gateways and
the per-user session registry, and maps application errors to HTTP.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from urllib.parse import quote, urlencode

import redis.asyncio as redis
from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy import text

from resummarize.api.deps import get_optional_user, get_registry
from resummarize.api.v1.ai import router as ai_router
from resummarize.api.v1.auth import router as auth_router
from resummarize.api.v1.chat import router as chat_router
from resummarize.api.v1.notes import router as notes_router
from resummarize.core.config import settings
from resummarize.core.database import dispose_engine, get_engine, get_session_factory
from resummarize.core.exceptions import (
    AIGenerationError,
    AIUnconfigured,
    NetworkError,
    NotAuthenticated,
    PersistenceError,
    ResummarizeError,
    ValidationError,
)
from resummarize.core.logging import setup_logging
from resummarize.repositories.notes import NotesGateway
from resummarize.schemas.auth import AuthUser
from resummarize.services.ai import AIGateway
from resummarize.services.auth import AuthGateway
from resummarize.services.session import SessionRegistry
from resummarize.services.storage import KeyValueStore, MemoryStore, RedisStore

# Initialize logging before any log statements
setup_logging()
logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[ResummarizeError], int] = {
    NotAuthenticated: status.HTTP_401_UNAUTHORIZED,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
    AIUnconfigured: status.HTTP_503_SERVICE_UNAVAILABLE,
    AIGenerationError: status.HTTP_502_BAD_GATEWAY,
    NetworkError: status.HTTP_502_BAD_GATEWAY,
}


async def wait_for_db(retries: int = 10, delay: int = 1) -> bool:
    """
    Wait for PostgreSQL to become available.

    Useful in containerized environments where the database may start
    after the application.

    Args:
        retries: Maximum connection attempts.
        delay: Seconds between attempts.

    Returns:
        True if connection established, False if all retries exhausted.
    """
    engine = get_engine()
    for i in range(retries):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
                logger.info("Postgres connection established")
                return True
        except Exception as e:
            logger.warning("Waiting for Postgres (%d/%d)... Error: %s", i + 1, retries, e)
            await asyncio.sleep(delay)
    return False


async def check_redis() -> bool:
    """Verify Redis connectivity. The app keeps running without it."""
    try:
        r = redis.from_url(settings.REDIS_URL, decode_responses=True)
        await r.ping()
        logger.info("Redis connection established (%s)", settings.REDIS_HOST)
        await r.aclose()
        return True
    except Exception as e:
        logger.error("Redis connection error: %s", e)
        return False


async def build_store() -> KeyValueStore:
    if await check_redis():
        return RedisStore(settings.REDIS_URL)
    logger.warning("Redis not reachable - continuing without cache")
    return MemoryStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Validates database connectivity (required, blocks startup on failure)
        - Picks the chat store: Redis, or in-memory when unreachable
        - Builds the gateways and the session registry

    Shutdown:
        - Flushes pending drafts, closes the store and the engine pool
    """
    logger.info("Starting Resummarize...")
    logger.info("Log Level: %s", settings.LOG_LEVEL)

    if not await wait_for_db():
        logger.critical("Could not connect to Postgres. Shutting down.")
        raise RuntimeError("Database connection failed")

    store = await build_store()
    ai = AIGateway()
    if not ai.is_configured:
        logger.warning("OPENAI_API_KEY not set - AI features disabled")

    app.state.auth = AuthGateway()
    app.state.sessions = SessionRegistry(NotesGateway(get_session_factory()), ai, store)

    yield  # Application runs here

    logger.info("Shutting down Resummarize...")
    await app.state.sessions.close()
    await store.close()
    await dispose_engine()


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.include_router(auth_router, prefix="/api/v1/auth", tags=["Auth"])
app.include_router(notes_router, prefix="/api/v1/notes", tags=["Notes"])
app.include_router(ai_router, prefix="/api/v1/ai", tags=["AI"])
app.include_router(chat_router, prefix="/api/v1/chat", tags=["Chat"])


@app.exception_handler(ResummarizeError)
async def resummarize_error_handler(request: Request, exc: ResummarizeError):
    code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(
        status_code=code,
        content={
            "detail": exc.message,
            "error": type(exc).__name__,
            "retryable": exc.retryable,
        },
    )


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers and orchestrators."""
    return {
        "status": "ok",
        "service": "resummarize",
        "environment": settings.ENVIRONMENT,
    }


@app.get("/")
async def home():
    return {
        "service": settings.PROJECT_NAME,
        "login": "/auth?mode=login",
        "signup": "/auth?mode=signup",
        "dashboard": "/dashboard",
    }


@app.get("/auth")
async def auth_page(mode: str = "login", next: str | None = None):
    """Describe the sign-in options for the requested mode."""
    query = urlencode({"next": next}) if next else ""
    return {
        "mode": "signup" if mode == "signup" else "login",
        "next": next,
        "password": "/api/v1/auth/signup" if mode == "signup" else "/api/v1/auth/signin",
        "google": f"/api/v1/auth/oauth/google?{query}" if query else "/api/v1/auth/oauth/google",
    }


@app.get("/auth/auth-code-error")
async def auth_code_error():
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": "Authentication failed. The sign-in link is invalid or has expired.",
            "login": "/auth?mode=login",
        },
    )


@app.get("/dashboard")
async def dashboard(
    request: Request,
    user: AuthUser | None = Depends(get_optional_user),
    registry: SessionRegistry = Depends(get_registry),
):
    """
    The signed-in user's workspace: notes plus chat state.

    Unauthenticated visitors are sent to the login page and brought back here.
    """
    if user is None:
        target = f"/auth?mode=login&next={quote(request.url.path)}"
        return RedirectResponse(target, status_code=status.HTTP_302_FOUND)

    session = await registry.get(user.id)
    notes = await session.notes.list()
    return {
        "user": user.model_dump(),
        "notes": [note.model_dump(mode="json") for note in notes],
        "chat": session.chat.state().model_dump(mode="json"),
    }
