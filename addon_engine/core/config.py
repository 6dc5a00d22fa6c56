"""
Engine Settings
===============

Environment-driven configuration. Every field can be overridden through an
environment variable of the same name or a ``.env`` file.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide settings for the addon engine."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "addon-engine"
    ENVIRONMENT: str = "development"

    # Authentication
    SKIP_AUTH: bool = False  # Trusted/internal deployments only
    SIGNATURE_PUBLIC_KEY: str = ""
    SIGNATURE_ALGORITHMS: list[str] = Field(default_factory=lambda: ["RS256"])
    SIGNATURE_LEEWAY_S: int = 30

    # Cache
    CACHE_ENGINE: str = "memory"  # memory | redis
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL_S: int = 3600
    CACHE_ERROR_TTL_S: int = 300
    CACHE_LOCK_TIME_S: float = 30.0
    CACHE_LOCK_TIMEOUT_S: float = 30.0
    CACHE_LOCK_SLEEP_S: float = 0.05

    # Tasks
    TASK_TIMEOUT_S: float = 30.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool | None = None

    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
