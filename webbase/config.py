"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env
file as a fallback:

  1. Environment variables (highest priority)
  2. .env file values
  3. Defaults defined here (lowest priority)

Usage:
    from webbase.config import settings
    print(settings.DATABASE_URL)
"""

from datetime import timedelta

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for webbase.

    Nothing is strictly required: the defaults give a working local
    instance backed by a SQLite file under ./data.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "webbase"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Server ---
    HOST: str = "0.0.0.0"
    PORT: int = 3093

    # --- Database ---
    # SQLite by default; use postgresql+asyncpg://... in production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/webbase.db"
    SEED_DEFAULTS: bool = True

    # --- Sessions ---
    SESSION_COOKIE_NAME: str = "webbase_session"
    # Set to true when served over HTTPS
    SESSION_COOKIE_SECURE: bool = False
    SESSION_INACTIVITY_DAYS: int = 30

    # --- Credentials ---
    MIN_PASSWORD_LENGTH: int = 8
    # passlib refuses secrets over 4096 bytes; 1024 characters stays below that in UTF-8
    MAX_PASSWORD_LENGTH: int = 1024

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3093"]

    @property
    def session_inactivity(self) -> timedelta:
        return timedelta(days=self.SESSION_INACTIVITY_DAYS)


# Import this instance everywhere instead of creating new Settings()
settings = Settings()
