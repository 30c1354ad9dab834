"""
Session feature toggles.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from keystream.config import TerminalSettings, get_settings


class TerminalOptions(BaseModel):
    """
    Optional terminal features enabled for a session.

    Attributes:
        bracketed_paste: Ask the terminal to wrap pastes in markers.
        background_color_detection: Query the background colour (theme).
        focus_detection: Report focus gain/loss.
        size_detection: Query dimensions on start and on every resize.
    """

    model_config = ConfigDict(frozen=True)

    bracketed_paste: bool = False
    background_color_detection: bool = False
    focus_detection: bool = False
    size_detection: bool = False

    @classmethod
    def from_settings(cls, settings: TerminalSettings | None = None) -> TerminalOptions:
        """Build options from the feature defaults in settings."""
        settings = settings or get_settings()
        return cls(
            bracketed_paste=settings.bracketed_paste,
            background_color_detection=settings.background_color_detection,
            focus_detection=settings.focus_detection,
            size_detection=settings.size_detection,
        )

    @classmethod
    def all(cls) -> TerminalOptions:
        """Every feature enabled."""
        return cls(
            bracketed_paste=True,
            background_color_detection=True,
            focus_detection=True,
            size_detection=True,
        )


__all__ = ["TerminalOptions"]
