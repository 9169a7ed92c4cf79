"""
Application Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Required env vars (no defaults):
        POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST, POSTGRES_DB

    Optional env vars:
        POSTGRES_PORT (5432), REDIS_HOST (redis), REDIS_PORT (6379),
        LOG_LEVEL (INFO), JSON_LOGS (False), OPENAI_API_KEY (unset),
        AUTH_URL / AUTH_ANON_KEY (identity provider), SITE_URL
    """

    PROJECT_NAME: str = "Resummarize"

    # Database
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str

    # Redis (chat transcript store)
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379

    # Logging
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = False

    # Site / identity provider
    ENVIRONMENT: str = "local"
    SITE_URL: str = "http://localhost:8000"
    AUTH_URL: str = "http://localhost:9999"
    AUTH_ANON_KEY: str = ""
    AUTH_TIMEOUT: float = 10.0

    # AI
    OPENAI_API_KEY: str | None = None
    AI_MODEL: str = "gpt-4o-mini"

    # Summaries
    SUMMARY_STALE_SECONDS: float = 600.0  # 10 minutes
    SUMMARY_MIN_NOTE_CHARS: int = 50
    SUMMARY_MIN_BULK_CHARS: int = 100

    # Chat
    CHAT_MAX_HISTORY: int = 100
    CHAT_PRESERVE_HISTORY_ON_MODE_SWITCH: bool = True
    CHAT_CONTEXT_NOTES: int = 3
    CHAT_CONTEXT_CHARS: int = 500

    # Editing
    AUTOSAVE_DELAY_SECONDS: float = 1.0

    # Client sessions (per signed-in user, in process)
    SESSION_MAX_USERS: int = 1000
    SESSION_IDLE_SECONDS: float = 3600.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )

    @property
    def DATABASE_URL(self) -> str:
        """Async PostgreSQL connection string using asyncpg driver."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def REDIS_URL(self) -> str:
        """Redis connection string."""
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"


settings = Settings()  # type: ignore[call-arg]
