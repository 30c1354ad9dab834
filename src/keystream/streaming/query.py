"""
Answers to terminal queries.

A query escape code is written to the terminal and the answer arrives later,
interleaved with key presses. ``PendingQuery`` is the single-assignment cell
the input pump fills when the answer is decoded.
"""

from __future__ import annotations

import asyncio
from typing import Generic, TypeVar

from keystream.models.events import BackgroundColor, Event, TerminalTheme, WindowSize

T = TypeVar("T")
D = TypeVar("D")


class PendingQuery(Generic[T]):
    """
    Single-assignment result cell with a bounded-wait read.

    The first ``offer()`` wins; later offers are ignored. Any number of
    readers may ``wait()``; a wait that expires returns its default instead
    of raising.
    """

    def __init__(self, name: str = "query") -> None:
        self.name = name
        self._value: T | None = None
        self._resolved = False
        self._event = asyncio.Event()

    def offer(self, value: T) -> bool:
        """Fulfil the query. Returns False if it was already fulfilled."""
        if self._resolved:
            return False
        self._value = value
        self._resolved = True
        self._event.set()
        return True

    def done(self) -> bool:
        return self._resolved

    def peek(self, default: D | None = None) -> T | D | None:
        """Value if fulfilled, else ``default``. Never waits."""
        return self._value if self._resolved else default

    async def wait(self, timeout: float, default: D) -> T | D:
        """
        Wait up to ``timeout`` seconds for the answer.

        Args:
            timeout: Maximum wait in seconds.
            default: Returned if no answer arrives in time.
        """
        if self._resolved:
            return self._value  # type: ignore[return-value]
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return default
        return self._value  # type: ignore[return-value]

    def __repr__(self) -> str:
        state = f"value={self._value!r}" if self._resolved else "pending"
        return f"<PendingQuery {self.name} {state}>"


class TerminalQueries:
    """
    Outstanding size/colour queries plus the last answers seen.

    The size query is renewed on every resize so waiters get the new answer
    rather than the one from startup.
    """

    def __init__(self) -> None:
        self.size: PendingQuery[WindowSize] = PendingQuery("window-size")
        self.background: PendingQuery[BackgroundColor] = PendingQuery("background-color")
        self.last_size: WindowSize | None = None
        self.last_background: BackgroundColor | None = None

    def record(self, event: Event) -> bool:
        """Store a size or colour answer. Returns True if ``event`` was one."""
        if isinstance(event, WindowSize):
            self.last_size = event
            self.size.offer(event)
            return True
        if isinstance(event, BackgroundColor):
            self.last_background = event
            self.background.offer(event)
            return True
        return False

    def renew_size(self) -> PendingQuery[WindowSize]:
        """Start a fresh size query (after a resize)."""
        self.size = PendingQuery("window-size")
        return self.size

    @property
    def theme(self) -> TerminalTheme | None:
        return self.last_background.theme if self.last_background else None


__all__ = ["PendingQuery", "TerminalQueries"]
