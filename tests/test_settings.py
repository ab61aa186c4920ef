"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from config.settings import Settings


class TestSettings:
    def test_defaults(self) -> None:
        config = Settings(_env_file=None)
        assert config.chord_window_ms == 120
        assert config.morse_dot_threshold_ms == 200
        assert config.morse_commit_timeout_ms == 1000
        assert config.speech_pause_ms == 500
        assert config.queue_max_attempts == 5
        assert not config.is_production

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("UNICOM_CHORD_WINDOW_MS", "150")
        monkeypatch.setenv("UNICOM_ENV", "production")
        config = Settings(_env_file=None)
        assert config.chord_window_ms == 150
        assert config.is_production

    def test_invalid_values_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("UNICOM_QUEUE_MAX_ATTEMPTS", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_log_format_restricted(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_format="xml")
