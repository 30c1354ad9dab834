"""
Terminal device access: raw-mode acquisition and release.

Usage:
    >>> from keystream.tty import raw_mode
    >>> with raw_mode() as guard:
    ...     ...
"""

from keystream.tty.modes import (
    RawModeGuard,
    TerminalAttributes,
    TermiosAttributes,
    acquire,
    raw_mode,
    release,
)

__all__ = [
    "RawModeGuard",
    "TerminalAttributes",
    "TermiosAttributes",
    "acquire",
    "release",
    "raw_mode",
]
