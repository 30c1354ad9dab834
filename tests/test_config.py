"""
Tests for keystream settings.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from keystream.config import (
    TerminalSettings,
    configure_settings,
    get_settings,
    reset_settings,
)


class TestTerminalSettings:
    """Test settings defaults, validation and environment overrides."""

    def test_defaults(self, monkeypatch):
        """Defaults apply without environment overrides."""
        for name in ("ESCAPE_TIMEOUT", "QUERY_TIMEOUT", "SIZE_DETECTION", "LOG_LEVEL"):
            monkeypatch.delenv(f"KEYSTREAM_{name}", raising=False)

        settings = TerminalSettings()
        assert settings.escape_timeout == 0.03
        assert settings.query_timeout == 0.05
        assert settings.shutdown_timeout == 1.0
        assert (settings.fallback_rows, settings.fallback_columns) == (24, 80)
        assert settings.signal_queue_size == 64
        assert settings.log_level == "WARNING"
        assert not settings.size_detection

    def test_env_override(self, monkeypatch):
        """KEYSTREAM_ variables override defaults."""
        monkeypatch.setenv("KEYSTREAM_ESCAPE_TIMEOUT", "0.1")
        monkeypatch.setenv("KEYSTREAM_SIZE_DETECTION", "true")
        monkeypatch.setenv("KEYSTREAM_LOG_LEVEL", "DEBUG")

        settings = TerminalSettings()
        assert settings.escape_timeout == 0.1
        assert settings.size_detection is True
        assert settings.log_level == "DEBUG"

    def test_explicit_beats_env(self, monkeypatch):
        """Constructor arguments win over the environment."""
        monkeypatch.setenv("KEYSTREAM_FALLBACK_ROWS", "50")
        assert TerminalSettings(fallback_rows=30).fallback_rows == 30

    @pytest.mark.parametrize(
        "field,value",
        [
            ("escape_timeout", 0),
            ("escape_timeout", 5),
            ("query_timeout", -1),
            ("fallback_columns", 0),
            ("signal_queue_size", 1),
            ("log_level", "LOUD"),
        ],
    )
    def test_validation(self, field, value):
        """Out-of-range values are rejected."""
        with pytest.raises(ValidationError):
            TerminalSettings(**{field: value})

    def test_validate_assignment(self):
        """Assignments are validated too."""
        settings = TerminalSettings()
        with pytest.raises(ValidationError):
            settings.fallback_rows = 0


class TestSettingsSingleton:
    """Test process-wide settings helpers."""

    def test_get_settings_cached(self, reset_keystream_settings):
        """get_settings() returns one instance."""
        assert get_settings() is get_settings()

    def test_configure_replaces(self, reset_keystream_settings):
        """configure_settings() installs a new instance."""
        before = get_settings()
        configured = configure_settings(query_timeout=0.5)
        assert configured is get_settings()
        assert configured is not before
        assert get_settings().query_timeout == 0.5

    def test_reset_rereads_environment(self, reset_keystream_settings, monkeypatch):
        """reset_settings() picks up environment changes."""
        get_settings()
        monkeypatch.setenv("KEYSTREAM_FALLBACK_COLUMNS", "132")
        reset_settings()
        assert get_settings().fallback_columns == 132
