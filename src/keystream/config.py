"""
keystream configuration (pydantic-settings).

Every value can be overridden with a ``KEYSTREAM_`` environment variable:

    KEYSTREAM_ESCAPE_TIMEOUT=0.05
    KEYSTREAM_SIZE_DETECTION=true
    KEYSTREAM_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class TerminalSettings(BaseSettings):
    """Timing, fallback and feature defaults for terminal sessions."""

    model_config = SettingsConfigDict(
        env_prefix="KEYSTREAM_",
        extra="ignore",
        validate_assignment=True,
    )

    # Decoding
    escape_timeout: float = Field(
        default=0.03,
        ge=0.001,
        le=1.0,
        description="Seconds to wait after ESC before reporting a bare Escape key",
    )

    # Queries
    query_timeout: float = Field(
        default=0.05,
        ge=0.001,
        le=5.0,
        description="Seconds to wait for a size/colour report before falling back",
    )
    fallback_rows: int = Field(default=24, ge=1)
    fallback_columns: int = Field(default=80, ge=1)

    # Pipeline
    shutdown_timeout: float = Field(
        default=1.0,
        ge=0.01,
        le=30.0,
        description="Seconds to wait for each background task at teardown",
    )
    signal_queue_size: int = Field(default=64, ge=2, le=4096)
    read_chunk_size: int = Field(default=1024, ge=1, le=65536)

    # Features
    bracketed_paste: bool = False
    background_color_detection: bool = False
    focus_detection: bool = False
    size_detection: bool = False

    # Logging
    log_level: LogLevel = "WARNING"


_settings: TerminalSettings | None = None


def get_settings() -> TerminalSettings:
    """Return the process-wide settings, creating them from the environment."""
    global _settings
    if _settings is None:
        _settings = TerminalSettings()
    return _settings


def configure_settings(**overrides: Any) -> TerminalSettings:
    """
    Replace the process-wide settings.

    Args:
        **overrides: Field values taking precedence over the environment.

    Returns:
        The new settings instance.
    """
    global _settings
    _settings = TerminalSettings(**overrides)
    return _settings


def reset_settings() -> None:
    """Drop cached settings so the next ``get_settings()`` re-reads the environment."""
    global _settings
    _settings = None


__all__ = [
    "LogLevel",
    "TerminalSettings",
    "get_settings",
    "configure_settings",
    "reset_settings",
]
