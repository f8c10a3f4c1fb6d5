"""Tests for safedecode.settings."""

from __future__ import annotations

import logging

import pytest

from safedecode.errors import SettingsError
from safedecode.settings import ObservabilitySettings, load_settings


class TestObservabilitySettings:
    """Environment-driven observability toggles."""

    def test_defaults(self) -> None:
        """JSON logs at INFO with coercion logging on and metrics off."""
        settings = load_settings()
        assert settings.log_level == "INFO"
        assert settings.level == logging.INFO
        assert settings.log_format == "json"
        assert settings.log_coercions is True
        assert settings.metrics_enabled is False

    def test_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """SAFEDECODE_* variables are read."""
        monkeypatch.setenv("SAFEDECODE_LOG_FORMAT", "text")
        monkeypatch.setenv("SAFEDECODE_METRICS_ENABLED", "true")
        monkeypatch.setenv("SAFEDECODE_LOG_LEVEL", "debug")
        settings = ObservabilitySettings()
        assert settings.log_format == "text"
        assert settings.metrics_enabled is True
        assert settings.log_level == "DEBUG"
        assert settings.level == logging.DEBUG

    def test_overrides_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Keyword overrides take precedence over the environment."""
        monkeypatch.setenv("SAFEDECODE_LOG_COERCIONS", "false")
        assert load_settings(log_coercions=True).log_coercions is True

    def test_unknown_level(self) -> None:
        """Unknown log levels raise SettingsError with the failing location."""
        with pytest.raises(SettingsError, match="1 error") as exc_info:
            load_settings(log_level="LOUD")
        errors = exc_info.value.context["errors"]
        assert isinstance(errors, list)
        assert errors[0]["loc"] == ["log_level"]

    def test_unknown_field(self) -> None:
        """Unexpected settings are rejected."""
        with pytest.raises(SettingsError):
            load_settings(colour=True)

    def test_invalid_format(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Only json and text formats are accepted."""
        monkeypatch.setenv("SAFEDECODE_LOG_FORMAT", "xml")
        with pytest.raises(SettingsError):
            ObservabilitySettings()
