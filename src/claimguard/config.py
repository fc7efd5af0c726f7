"""
ClaimGuard Configuration Module

Centralized configuration using Pydantic Settings.
Supports environment variables and .env files.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class ClaimGuardSettings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CLAIMGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Adjudication / extraction service
    gemini_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("CLAIMGUARD_GEMINI_API_KEY", "GOOGLE_API_KEY"),
    )
    model: str = "gemini-2.5-flash"
    temperature: float = Field(default=0.2, ge=0, le=2)
    request_timeout: float = Field(default=120.0, gt=0, description="Seconds")

    # Audit history
    ledger_path: Path = Path("./data/audit_history.json")

    log_level: str = "INFO"


@lru_cache()
def get_settings() -> ClaimGuardSettings:
    """Get cached settings instance."""
    return ClaimGuardSettings()


def configure_logging(level: str | int | None = None) -> None:
    """Install the root log handler for the application."""
    if level is None:
        level = get_settings().log_level
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
