"""
Raw-mode session management.

Acquiring raw mode snapshots the terminal attributes and switches off
canonical input, echo and signal-generating characters. The returned guard
restores the snapshot exactly once, however the session ends.

Attribute access goes through a ``TerminalAttributes`` capability so tests
(and non-stdin terminals) can supply their own.
"""

from __future__ import annotations

import os
import sys
import threading
from contextlib import contextmanager
from typing import Any, Generator, Protocol

from keystream.exceptions import (
    NotATtyError,
    SessionAlreadyCapturedError,
    SystemCallFailedError,
)
from keystream.logging import get_logger
from keystream.models.events import WindowSize

logger = get_logger(__name__)

# termios attribute list indices
IFLAG, OFLAG, CFLAG, LFLAG, ISPEED, OSPEED, CC = range(7)


class TerminalAttributes(Protocol):
    """Get/set access to one terminal's attributes."""

    @property
    def fd(self) -> int: ...

    def isatty(self) -> bool: ...

    def get(self) -> list[Any]: ...

    def set(self, attributes: list[Any]) -> None: ...

    def raw(self, attributes: list[Any]) -> list[Any]: ...

    def size(self) -> WindowSize | None: ...


class TermiosAttributes:
    """``TerminalAttributes`` backed by ``termios`` (Unix only)."""

    def __init__(self, fd: int | None = None) -> None:
        self._fd = sys.stdin.fileno() if fd is None else fd

    @property
    def fd(self) -> int:
        return self._fd

    def isatty(self) -> bool:
        try:
            return os.isatty(self._fd)
        except OSError:
            return False

    def get(self) -> list[Any]:
        import termios

        try:
            return termios.tcgetattr(self._fd)
        except (OSError, termios.error) as e:
            raise SystemCallFailedError("tcgetattr", e) from e

    def set(self, attributes: list[Any]) -> None:
        import termios

        try:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, attributes)
        except (OSError, termios.error) as e:
            raise SystemCallFailedError("tcsetattr", e) from e

    def raw(self, attributes: list[Any]) -> list[Any]:
        """Return a raw-mode copy of ``attributes``; other flags untouched."""
        import termios

        mode = list(attributes)
        mode[LFLAG] &= ~(termios.ICANON | termios.ECHO | termios.ISIG)
        cc = list(mode[CC])
        cc[termios.VMIN] = 1
        cc[termios.VTIME] = 0
        mode[CC] = cc
        return mode

    def size(self) -> WindowSize | None:
        """Window size the kernel records for the fd, if it knows one."""
        try:
            columns, lines = os.get_terminal_size(self._fd)
        except OSError:
            return None
        if not columns or not lines:
            return None
        return WindowSize(lines, columns)

    def __repr__(self) -> str:
        return f"<TermiosAttributes fd={self._fd}>"


# fds currently held in raw mode by a live guard
_captured: set[int] = set()
_captured_lock = threading.Lock()


class RawModeGuard:
    """
    Ownership of a terminal in raw mode.

    Holds the attribute snapshot taken before raw mode was entered. Created
    by ``acquire()``; ``release()`` restores the snapshot once and later
    calls do nothing.
    """

    def __init__(self, attributes: TerminalAttributes, original: list[Any]) -> None:
        self._attributes = attributes
        self._original = original
        self._released = False
        self._lock = threading.Lock()

    @property
    def fd(self) -> int:
        return self._attributes.fd

    @property
    def original_settings(self) -> list[Any]:
        """Attributes as they were before raw mode."""
        return self._original

    @property
    def is_released(self) -> bool:
        return self._released

    def window_size(self) -> WindowSize | None:
        """Kernel window size of the held terminal, or None if unavailable."""
        return self._attributes.size()

    def release(self) -> bool:
        """
        Restore the original attributes.

        Returns:
            True if this call restored them, False if already released.

        Raises:
            SystemCallFailedError: If writing the attributes failed. The guard
                still counts as released.
        """
        with self._lock:
            if self._released:
                return False
            self._released = True

        try:
            self._attributes.set(self._original)
        finally:
            with _captured_lock:
                _captured.discard(self._attributes.fd)
        logger.debug("Raw mode released on fd %d", self._attributes.fd)
        return True

    def __enter__(self) -> RawModeGuard:
        return self

    def __exit__(self, *_args: Any) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._released else "raw"
        return f"<RawModeGuard fd={self._attributes.fd} state={state}>"


def acquire(attributes: TerminalAttributes | None = None) -> RawModeGuard:
    """
    Put a terminal into raw mode.

    Args:
        attributes: Terminal to use; stdin via termios by default.

    Returns:
        Guard owning the original settings.

    Raises:
        NotATtyError: The fd is not a terminal. Nothing was changed.
        SessionAlreadyCapturedError: Another live guard holds this terminal.
        SystemCallFailedError: Reading or writing attributes failed.
    """
    attributes = attributes or TermiosAttributes()
    fd = attributes.fd

    if not attributes.isatty():
        raise NotATtyError(fd)

    with _captured_lock:
        if fd in _captured:
            raise SessionAlreadyCapturedError(fd)
        _captured.add(fd)

    try:
        original = attributes.get()
        attributes.set(attributes.raw(original))
    except BaseException:
        with _captured_lock:
            _captured.discard(fd)
        raise

    logger.debug("Raw mode acquired on fd %d", fd)
    return RawModeGuard(attributes, original)


def release(guard: RawModeGuard) -> bool:
    """Restore the terminal owned by ``guard``. See ``RawModeGuard.release``."""
    return guard.release()


def is_captured(fd: int) -> bool:
    """Check whether a live guard holds ``fd``."""
    with _captured_lock:
        return fd in _captured


@contextmanager
def raw_mode(attributes: TerminalAttributes | None = None) -> Generator[RawModeGuard, None, None]:
    """
    Context manager for raw terminal mode.

    Usage:
        >>> with raw_mode() as guard:
        ...     char = os.read(guard.fd, 1)
    """
    guard = acquire(attributes)
    try:
        yield guard
    finally:
        guard.release()


__all__ = [
    "TerminalAttributes",
    "TermiosAttributes",
    "RawModeGuard",
    "acquire",
    "release",
    "is_captured",
    "raw_mode",
]
