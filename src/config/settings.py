"""Application settings using Pydantic Settings for environment-based configuration."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the docket agent process.

    All settings can be overridden via environment variables.
    Prefix is not used to allow standard env var names (e.g., REDIS_URL).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False

    # Durable store
    # "memory" does not outlive the process; one-shot CLI commands refuse it
    store_backend: Literal["memory", "file", "redis"] = "file"
    store_path: Path = Field(
        default=Path("~/.docket-agent"),
        description="Directory for the file backend, one JSON file per collection",
    )
    store_quota_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=1024,
        description="Byte budget for the memory and file backends",
    )
    redis_url: RedisDsn = Field(default="redis://localhost:6379/0")
    redis_key_prefix: str = "docket_agent:"

    # Notification endpoint for alert delivery
    alert_webhook_url: str | None = None
    alert_webhook_timeout: float = Field(default=10.0, ge=1.0, le=60.0)

    # Observability
    metrics_port: int = 8000

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def webhook_configured(self) -> bool:
        """Check if an alert notification endpoint is configured."""
        return self.alert_webhook_url is not None


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    Clear cache with get_settings.cache_clear() if needed.
    """
    return Settings()
