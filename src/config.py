# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Application configuration loaded from the environment."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings.

    Values come from environment variables or a local ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DATABASE_URL: str = "sqlite:///./archflow.db"
    LOG_LEVEL: str = "INFO"

    SESSION_EXPIRY_DAYS: int = 7
    SESSION_COOKIE_SECURE: bool = False

    # Upper bound for one profile/permission resolution round
    RESOLUTION_TIMEOUT_SECONDS: float = 10.0

    # Optional PostgREST-compatible datastore (e.g. a hosted Supabase project)
    POSTGREST_URL: str | None = None
    POSTGREST_API_KEY: str | None = None

    CORS_ORIGINS: list[str] = ["http://localhost:5173"]


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()


settings = get_settings()
