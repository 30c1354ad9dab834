"""
Pytest configuration and fixtures for keystream tests.
"""

from __future__ import annotations

import asyncio
import io
from typing import Any

import pytest

from keystream.config import TerminalSettings
from keystream.models.events import WindowSize
from keystream.streaming.sources import TerminalInput

# termios-style attribute list: iflag, oflag, cflag, lflag, ispeed, ospeed, cc
ORIGINAL_ATTRIBUTES = [0x500, 0x5, 0xBF, 0x8A3B, 38400, 38400, [b"\x03"] * 32]

# Bits the fake clears when asked for a raw copy (ICANON | ECHO | ISIG on Linux)
FAKE_RAW_CLEAR = 0x2 | 0x8 | 0x1


class FakeTerminalAttributes:
    """In-memory TerminalAttributes with call recording and failure injection."""

    def __init__(
        self,
        fd: int = 0,
        tty: bool = True,
        attributes: list[Any] | None = None,
        window: WindowSize | None = None,
    ) -> None:
        self._fd = fd
        self.tty = tty
        self.window = window
        self.current = _copy(attributes or ORIGINAL_ATTRIBUTES)
        self.set_calls: list[list[Any]] = []
        self.fail_get = False
        self.fail_set = False

    @property
    def fd(self) -> int:
        return self._fd

    def isatty(self) -> bool:
        return self.tty

    def get(self) -> list[Any]:
        if self.fail_get:
            from keystream.exceptions import SystemCallFailedError

            raise SystemCallFailedError("tcgetattr", OSError(5, "I/O error"))
        return _copy(self.current)

    def set(self, attributes: list[Any]) -> None:
        if self.fail_set:
            from keystream.exceptions import SystemCallFailedError

            raise SystemCallFailedError("tcsetattr", OSError(5, "I/O error"))
        self.set_calls.append(_copy(attributes))
        self.current = _copy(attributes)

    def raw(self, attributes: list[Any]) -> list[Any]:
        mode = _copy(attributes)
        mode[3] &= ~FAKE_RAW_CLEAR
        return mode

    def size(self) -> WindowSize | None:
        return self.window


def _copy(attributes: list[Any]) -> list[Any]:
    return [list(a) if isinstance(a, list) else a for a in attributes]


class FailingSource:
    """Character source whose read always fails."""

    def __init__(self) -> None:
        self.closed = False

    async def read(self, timeout: float | None = None) -> str:
        raise OSError(5, "Input/output error")

    def close(self) -> None:
        self.closed = True


class StuckSource:
    """Character source whose close() does not wake a pending read."""

    def __init__(self) -> None:
        self.closed = False
        self._never = asyncio.Event()

    async def read(self, timeout: float | None = None) -> str:
        await self._never.wait()
        return ""

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def release_captured_terminals():
    """Forget raw-mode captures leaked by a failing test."""
    from keystream.tty import modes

    modes._captured.clear()
    yield
    modes._captured.clear()


@pytest.fixture
def reset_keystream_settings():
    """Reset process settings before and after test."""
    from keystream.config import reset_settings

    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def fake_attributes() -> FakeTerminalAttributes:
    return FakeTerminalAttributes()


@pytest.fixture
def fed_input() -> TerminalInput:
    """Input source driven by feed() instead of a file descriptor."""
    return TerminalInput()


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def fast_settings() -> TerminalSettings:
    """Short timeouts so fallback paths resolve quickly."""
    return TerminalSettings(
        escape_timeout=0.01,
        query_timeout=0.02,
        shutdown_timeout=0.2,
    )
