# SmartCal settings: environment-driven configuration.
# Created: 2026-10-02
#
# All values can be overridden with SMARTCAL_* environment variables or a
# local .env file (e.g. SMARTCAL_DEFAULT_REMINDER_MINUTES=10).

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def get_config_dir() -> Path:
    """Get the SmartCal config directory, creating it if needed."""
    config_dir = Path.home() / ".smartcal"
    config_dir.mkdir(exist_ok=True)
    return config_dir


class Settings(BaseSettings):
    """Runtime settings for the extractor, the scheduler and the API server."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTCAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Events
    default_reminder_minutes: int = Field(default=15, ge=0)
    default_event_duration_minutes: int = Field(default=60, ge=0)

    # Extraction
    rules_confidence: float = Field(default=0.75, ge=0.0, le=1.0)
    ai_confidence: float = Field(default=0.85, ge=0.0, le=1.0)
    ai_extraction_enabled: bool = False
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"
    ai_timeout: float = 60.0

    # Scheduler
    reminder_check_interval: float = Field(default=60.0, gt=0)
    expiring_soon_minutes: int = 30
    stale_event_grace_minutes: int = 60
    history_retention_days: int = 7
    reminder_history_limit: int = Field(default=100, ge=1)
    reminder_log_limit: int = Field(default=100, ge=1)

    # Storage / runtime
    storage_dir: Path | None = None
    log_level: str = "INFO"
    api_host: str = "127.0.0.1"
    api_port: int = 8890

    def resolve_storage_dir(self) -> Path:
        """Directory used by the file-backed key-value store."""
        if self.storage_dir is not None:
            return self.storage_dir
        return get_config_dir() / "store"


@lru_cache
def get_settings() -> Settings:
    """Get the cached settings instance."""
    settings = Settings()
    logger.debug("Settings loaded (storage_dir=%s)", settings.storage_dir)
    return settings
