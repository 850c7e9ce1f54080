# ABOUTME: Configuration module for application settings.
# ABOUTME: Uses pydantic-settings for environment variable overrides and provides cached access.

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the
    ANON_CARRYOVER_ prefix (e.g., ANON_CARRYOVER_DB_PATH).
    """

    model_config = SettingsConfigDict(
        env_prefix="ANON_CARRYOVER_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    db_path: Annotated[Path, Field(description="Path to SQLite database file")] = (
        Path.home() / ".anonymous-carryover" / "carryover.db"
    )

    max_actions_per_session: Annotated[
        int, Field(description="Maximum buffered actions per anonymous session", ge=1)
    ] = 50

    session_expiration_ms: Annotated[
        int, Field(description="Sliding session lifetime in milliseconds", ge=1)
    ] = DAY_MS

    future_skew_ms: Annotated[
        int, Field(description="Tolerated forward clock skew for client timestamps", ge=0)
    ] = 60_000

    max_action_age_ms: Annotated[
        int, Field(description="Oldest accepted client action timestamp, in milliseconds", ge=0)
    ] = 7 * DAY_MS

    token_max_age_ms: Annotated[
        int, Field(description="Oldest accepted session token mint time, in milliseconds", ge=0)
    ] = 7 * DAY_MS

    rate_limit_max_requests: Annotated[
        int, Field(description="Requests allowed per key within the window", ge=1)
    ] = 10

    rate_limit_window_ms: Annotated[
        int, Field(description="Sliding rate limit window in milliseconds", ge=1)
    ] = 60_000

    rate_limit_sweep_probability: Annotated[
        float,
        Field(description="Chance per check of sweeping abandoned keys", ge=0.0, le=1.0),
    ] = 0.01

    merge_retry_attempts: Annotated[
        int, Field(description="Compare-and-swap attempts before a merge gives up", ge=1)
    ] = 5

    log_level: Annotated[str, Field(description="Root log level")] = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings.

    Returns a cached Settings instance. Use get_settings.cache_clear()
    to clear the cache if needed.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def ensure_data_dir() -> Path:
    """Ensure the data directory exists.

    Creates the directory containing the database file if it doesn't exist.

    Returns:
        Path to the data directory.
    """
    settings = get_settings()
    data_dir = settings.db_path.parent
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
