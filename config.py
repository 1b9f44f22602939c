"""
Configuration settings for the lexicon review engine.

Uses Pydantic Settings for environment variable management with .env file support.
All variables are read with the LEXICON_ prefix (e.g. LEXICON_DATABASE_URL).
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEXICON_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///data/lexicon.db",
        description="SQLAlchemy connection string for the item store",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default="logs/lexicon.log",
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Session Sizing
    # ========================================
    daily_session_limit: int = Field(
        default=50,
        ge=1,
        description="Maximum due items pulled into a daily session",
    )
    training_session_limit: int = Field(
        default=20,
        ge=1,
        description="Default number of items in a training session",
    )
    training_session_max: int = Field(
        default=100,
        ge=1,
        description="Upper bound a caller may request for a training session",
    )

    # ========================================
    # Session Table
    # ========================================
    session_max_idle_hours: float = Field(
        default=12.0,
        gt=0,
        description="Idle sessions older than this are removed by sweep_stale()",
    )
    finished_session_ledger_size: int = Field(
        default=256,
        ge=0,
        description="How many finished sessions keep their final stats for late end/current calls",
    )

    # ========================================
    # CLI
    # ========================================
    default_learner_id: str = Field(
        default="local",
        description="Learner identity used by the terminal front end",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
