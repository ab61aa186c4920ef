"""Engine settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. All keys use the
``UNICOM_`` prefix (e.g. ``UNICOM_CHORD_WINDOW_MS=150``) and may also be
supplied through a ``.env`` file.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for the translation engine.

    Timing values are in milliseconds unless the field name says otherwise.
    """

    model_config = SettingsConfigDict(
        env_prefix="UNICOM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    # ── Tactile input ──────────────────────────────────────────────────
    chord_window_ms: int = Field(default=120, ge=1)
    morse_dot_threshold_ms: int = Field(default=200, ge=1)
    morse_commit_timeout_ms: int = Field(default=1000, ge=1)

    # ── Output ─────────────────────────────────────────────────────────
    speech_pause_ms: int = Field(default=500, ge=0)

    # ── Offline queue ──────────────────────────────────────────────────
    queue_db_path: str = "unicom.db"
    queue_max_attempts: int = Field(default=5, ge=1)
    queue_send_attempts: int = Field(default=3, ge=1)
    queue_backoff_min_s: float = Field(default=0.5, ge=0)
    queue_backoff_max_s: float = Field(default=4.0, ge=0)

    # ── Message transport ──────────────────────────────────────────────
    api_base_url: str = "http://localhost:8000/api/v1"
    api_timeout_s: float = 10.0

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION


# Module-level singleton: import ``settings`` everywhere.
settings = Settings()
