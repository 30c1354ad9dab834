"""
Event sources feeding the pumps.

``TerminalInput`` turns a terminal fd into an async character source for the
decoder. ``SignalSource`` is the bounded channel OS signal handlers push into;
the handler only enqueues, all real work happens in the listener task.

Both are closed edge-triggered: ``close()`` / ``stop()`` may be called any
number of times and wakes the blocked consumer.
"""

from __future__ import annotations

import asyncio
import codecs
import os
import signal
from collections import deque
from typing import AsyncIterator, Iterable

from keystream.logging import get_logger

logger = get_logger(__name__)

SIGWINCH: int | None = getattr(signal, "SIGWINCH", None)


class TerminalInput:
    """
    Async character source over a terminal fd.

    With ``fd=None`` nothing is read from the OS and characters are supplied
    with ``feed()``; this is how tests and embedders drive the decoder.

    ``read()`` returns one character, ``""`` once closed and drained, and
    raises ``asyncio.TimeoutError`` when a bounded read expires.
    """

    def __init__(
        self,
        fd: int | None = None,
        *,
        chunk_size: int = 1024,
        encoding: str = "utf-8",
    ) -> None:
        self._fd = fd
        self._chunk_size = chunk_size
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer: deque[str] = deque()
        self._ready = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closed = False

    @property
    def fd(self) -> int | None:
        return self._fd

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start watching the fd on the running loop."""
        if self._fd is None or self._loop is not None or self._closed:
            return
        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(self._fd, self._on_readable)

    def feed(self, data: str | bytes) -> None:
        """Append input; bytes are decoded incrementally."""
        if self._closed:
            return
        text = self._decoder.decode(data) if isinstance(data, bytes) else data
        if text:
            self._buffer.extend(text)
            self._ready.set()

    def close(self) -> None:
        """Stop reading. Buffered characters are still delivered."""
        if self._closed:
            return
        self._closed = True
        self._detach()
        tail = self._decoder.decode(b"", final=True)
        if tail:
            self._buffer.extend(tail)
        self._ready.set()

    async def read(self, timeout: float | None = None) -> str:
        while not self._buffer:
            if self._closed:
                return ""
            self._ready.clear()
            if timeout is None:
                await self._ready.wait()
            else:
                await asyncio.wait_for(self._ready.wait(), timeout)
        return self._buffer.popleft()

    def _on_readable(self) -> None:
        try:
            data = os.read(self._fd, self._chunk_size)  # type: ignore[arg-type]
        except (BlockingIOError, InterruptedError):
            return
        except OSError as e:
            logger.debug("Terminal read failed, closing input: %s", e)
            self.close()
            return

        if not data:
            self.close()
            return
        self.feed(data)

    def _detach(self) -> None:
        if self._loop is not None and self._fd is not None:
            try:
                self._loop.remove_reader(self._fd)
            except (RuntimeError, ValueError, OSError):
                pass  # loop already closed
        self._loop = None

    def __repr__(self) -> str:
        return f"<TerminalInput fd={self._fd} buffered={len(self._buffer)} closed={self._closed}>"


class SignalSource:
    """
    Bounded channel of delivered signal numbers.

    ``start()`` installs loop signal handlers that call ``deliver()``. One
    slot is kept free for the end marker, so ``stop()`` always wakes the
    consumer; signals arriving while the channel is full are dropped.
    """

    def __init__(
        self,
        signals: Iterable[int] | None = None,
        *,
        maxsize: int = 64,
    ) -> None:
        if signals is None:
            signals = [SIGWINCH] if SIGWINCH is not None else []
        self._signals = list(signals)
        self._queue: asyncio.Queue[int | None] = asyncio.Queue(maxsize=max(2, maxsize))
        self._installed: list[int] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stopped = False
        self._finished = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def signals(self) -> list[int]:
        return list(self._signals)

    def start(self) -> None:
        """Install handlers on the running loop."""
        if self._stopped or self._loop is not None:
            return
        self._loop = asyncio.get_running_loop()
        for signum in self._signals:
            try:
                self._loop.add_signal_handler(signum, self.deliver, signum)
            except (NotImplementedError, RuntimeError, ValueError) as e:
                logger.debug("Cannot watch signal %s: %s", signum, e)
                continue
            self._installed.append(signum)

    def deliver(self, signum: int) -> bool:
        """Enqueue a signal. Returns False if stopped or full."""
        if self._stopped:
            return False
        if self._queue.qsize() >= self._queue.maxsize - 1:
            logger.debug("Signal queue full, dropping signal %s", signum)
            return False
        self._queue.put_nowait(signum)
        return True

    def stop(self) -> None:
        """Remove handlers and end the channel after queued signals."""
        if self._stopped:
            return
        self._stopped = True
        if self._loop is not None:
            for signum in self._installed:
                try:
                    self._loop.remove_signal_handler(signum)
                except (RuntimeError, ValueError):
                    pass  # loop already closed
        self._installed.clear()
        self._loop = None
        self._queue.put_nowait(None)

    async def get(self) -> int | None:
        """Next signal number, or None once stopped and drained."""
        if self._finished:
            return None
        signum = await self._queue.get()
        if signum is None:
            self._finished = True
        return signum

    async def __aiter__(self) -> AsyncIterator[int]:
        while (signum := await self.get()) is not None:
            yield signum

    def __repr__(self) -> str:
        return f"<SignalSource signals={self._signals} stopped={self._stopped}>"


__all__ = ["SIGWINCH", "TerminalInput", "SignalSource"]
