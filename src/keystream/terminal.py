"""
Terminal session.

Composes raw mode, the input pump, the signal listener and the event bus
into one object handed to the rest of the program.

Usage:
    >>> async with terminal(size_detection=True) as term:
    ...     cols = await term.known_columns()
    ...     async for event in term.events():
    ...         ...
"""

from __future__ import annotations

import asyncio
import sys
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, TextIO

from keystream import escapes
from keystream.config import TerminalSettings, get_settings
from keystream.decoder import CharSource
from keystream.exceptions import SessionClosedError
from keystream.logging import get_logger
from keystream.models.config import TerminalOptions
from keystream.models.events import BackgroundColor, Event, TerminalTheme, WindowSize
from keystream.streaming.bus import EventBus
from keystream.streaming.pumps import InputPump, SignalListener
from keystream.streaming.query import TerminalQueries
from keystream.streaming.sources import SignalSource, TerminalInput
from keystream.tty.modes import RawModeGuard, TerminalAttributes, acquire

logger = get_logger(__name__)


class SessionState(str, Enum):
    """Terminal session lifecycle."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    CLOSING = "closing"
    CLOSED = "closed"


class Terminal:
    """
    Raw-mode terminal session.

    Startup: acquire raw mode, start the signal listener and input pump,
    then write the query/enable codes for the configured features.

    Shutdown (``close()``, idempotent): stop signals, close input, close the
    bus, wait for both tasks, write the disable codes, and release raw mode
    last. Raw mode is released even if any earlier step fails.
    """

    def __init__(
        self,
        options: TerminalOptions | None = None,
        *,
        settings: TerminalSettings | None = None,
        attributes: TerminalAttributes | None = None,
        input: CharSource | None = None,
        output: TextIO | None = None,
        signals: SignalSource | None = None,
    ) -> None:
        """
        Initialize a session (nothing is touched until ``start()``).

        Args:
            options: Features to enable; defaults from settings.
            settings: Timeouts and fallbacks; process settings by default.
            attributes: Terminal attribute capability; stdin via termios by default.
            input: Character source; reads the terminal fd by default.
            output: Stream escape codes are written to; stdout by default.
            signals: Signal channel; SIGWINCH by default.
        """
        self._settings = settings or get_settings()
        self._options = options or TerminalOptions.from_settings(self._settings)
        self._attributes = attributes
        self._input = input
        self._output = output or sys.stdout
        self._signals = signals

        self._state = SessionState.IDLE
        self._guard: RawModeGuard | None = None
        self._bus = EventBus()
        self._queries = TerminalQueries()

        self._input_pump: InputPump | None = None
        self._signal_listener: SignalListener | None = None
        self._input_task: asyncio.Task[None] | None = None
        self._signal_task: asyncio.Task[None] | None = None

        # disable codes for features switched on at startup, in write order
        self._disable_codes: list[str] = []
        # set once teardown has finished and raw mode is released
        self._closed = asyncio.Event()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == SessionState.RUNNING

    @property
    def options(self) -> TerminalOptions:
        return self._options

    @property
    def settings(self) -> TerminalSettings:
        return self._settings

    @property
    def guard(self) -> RawModeGuard | None:
        return self._guard

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def rows(self) -> int | None:
        """Last reported row count, if any."""
        size = self._queries.last_size
        return size.rows if size else None

    @property
    def columns(self) -> int | None:
        """Last reported column count, if any."""
        size = self._queries.last_size
        return size.columns if size else None

    @property
    def theme(self) -> TerminalTheme | None:
        """Dark/light classification of the reported background, if any."""
        return self._queries.theme

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> Terminal:
        """
        Enter raw mode and start the background tasks.

        Raises:
            NotATtyError: stdin is not a terminal.
            SystemCallFailedError: Terminal attributes could not be changed.
            SessionAlreadyCapturedError: Raw mode is already held.
            SessionClosedError: The session was already started.
        """
        if self._state != SessionState.IDLE:
            raise SessionClosedError("start")

        self._guard = acquire(self._attributes)
        self._state = SessionState.STARTING

        try:
            if self._input is None:
                self._input = TerminalInput(
                    self._guard.fd,
                    chunk_size=self._settings.read_chunk_size,
                )
            if self._signals is None:
                self._signals = SignalSource(maxsize=self._settings.signal_queue_size)

            self._signal_listener = SignalListener(
                self._signals,
                self._bus,
                on_resize=self._on_resize,
            )
            self._input_pump = InputPump(
                self._input,
                self._bus,
                self._queries,
                escape_timeout=self._settings.escape_timeout,
            )

            self._signals.start()
            _start_source(self._input)

            self._signal_task = asyncio.create_task(
                self._signal_listener.run(),
                name="keystream-signal-listener",
            )
            self._input_task = asyncio.create_task(
                self._input_pump.run(),
                name="keystream-input-pump",
            )

            self._send_startup_codes()
        except BaseException:
            await self.close()
            raise

        self._state = SessionState.RUNNING
        logger.debug("Terminal session started with %s", self._options)
        return self

    async def close(self) -> None:
        """
        Tear the session down. Safe to call repeatedly.

        A call made while another teardown is in progress waits for it, so
        every caller returns only after raw mode has been released.
        """
        if self._state == SessionState.IDLE:
            return
        if self._state in (SessionState.CLOSING, SessionState.CLOSED):
            await self._closed.wait()
            return

        self._state = SessionState.CLOSING
        try:
            if self._signals is not None:
                self._signals.stop()
            if self._input is not None:
                _close_source(self._input)
            self._bus.close()

            await self._join(self._signal_task, "signal listener")
            await self._join(self._input_task, "input pump")

            self._send_shutdown_codes()
        finally:
            self._state = SessionState.CLOSED
            try:
                if self._guard is not None:
                    self._guard.release()
            finally:
                self._closed.set()
            logger.debug("Terminal session closed")

    async def _join(self, task: asyncio.Task[None] | None, name: str) -> None:
        if task is None:
            return

        if not task.done():
            done, _ = await asyncio.wait({task}, timeout=self._settings.shutdown_timeout)
            if not done:
                logger.warning(
                    "%s did not stop within %.2fs, cancelling",
                    name,
                    self._settings.shutdown_timeout,
                )
                task.cancel()
                await asyncio.wait({task})

        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("%s failed: %r", name, error)

    def _send_startup_codes(self) -> None:
        options = self._options
        codes: list[str] = []

        if options.background_color_detection:
            codes.append(escapes.REPORT_BACKGROUND)
        if options.focus_detection:
            codes.append(escapes.ENABLE_FOCUS)
            self._disable_codes.append(escapes.DISABLE_FOCUS)
        if options.bracketed_paste:
            codes.append(escapes.ENABLE_PASTE)
            self._disable_codes.insert(0, escapes.DISABLE_PASTE)
        if options.size_detection:
            codes.append(escapes.REPORT_SIZE)

        if codes:
            self._emit("".join(codes))

    def _send_shutdown_codes(self) -> None:
        if not self._disable_codes:
            return
        codes, self._disable_codes = self._disable_codes, []
        try:
            self._emit("".join(codes))
        except (OSError, ValueError) as e:
            logger.warning("Could not write terminal disable codes: %s", e)

    def _on_resize(self) -> None:
        if not self._options.size_detection:
            return
        self._queries.renew_size()
        self._emit(escapes.REPORT_SIZE)

    def _emit(self, text: str) -> None:
        self._output.write(text)
        self._output.flush()

    # =========================================================================
    # Events
    # =========================================================================

    async def events(self) -> AsyncIterator[Event]:
        """Iterate events until the session closes."""
        async for event in self._bus:
            yield event

    async def get_event(self, timeout: float | None = None) -> Event | None:
        """
        Next event, or None at end of stream.

        Raises:
            asyncio.TimeoutError: If ``timeout`` expires first.
        """
        if timeout is None:
            return await self._bus.get()
        return await asyncio.wait_for(self._bus.get(), timeout=timeout)

    # =========================================================================
    # Output
    # =========================================================================

    def write(self, text: str) -> None:
        """
        Write raw text to the terminal.

        Raises:
            SessionClosedError: If the session is not running.
        """
        if not self.is_running:
            raise SessionClosedError("write")
        self._emit(text)

    # =========================================================================
    # Queries
    # =========================================================================

    async def known_rows(self) -> int:
        """Last reported rows, else a briefly awaited report, else the fallback."""
        size = await self._known_size() or self._fallback_size()
        return size.rows

    async def known_columns(self) -> int:
        """Last reported columns, else a briefly awaited report, else the fallback."""
        size = await self._known_size() or self._fallback_size()
        return size.columns

    async def _known_size(self) -> WindowSize | None:
        if self._queries.last_size is not None:
            return self._queries.last_size
        return await self._queries.size.wait(self._settings.query_timeout, None)

    def _fallback_size(self) -> WindowSize:
        # the kernel's idea of the window, else the configured size
        if self._guard is not None and not self._guard.is_released:
            size = self._guard.window_size()
            if size is not None:
                return size
        return WindowSize(self._settings.fallback_rows, self._settings.fallback_columns)

    async def window_size(self, timeout: float | None = None) -> WindowSize:
        """
        Answer to the most recent size query.

        After a resize this waits for the new report rather than returning
        the cached one. Never raises; falls back to the last known size, then
        to the kernel's window size, then to the configured fallback.
        """
        timeout = self._settings.query_timeout if timeout is None else timeout
        fallback = self._queries.last_size or self._fallback_size()
        return await self._queries.size.wait(timeout, fallback)

    async def background_color(self, timeout: float | None = None) -> BackgroundColor | None:
        """Reported background colour, or None if the terminal didn't answer."""
        timeout = self._settings.query_timeout if timeout is None else timeout
        return await self._queries.background.wait(timeout, self._queries.last_background)

    # =========================================================================
    # Context Manager
    # =========================================================================

    async def __aenter__(self) -> Terminal:
        return await self.start()

    async def __aexit__(self, *_args: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<Terminal state={self._state.value} options={self._options!r}>"


def _start_source(source: Any) -> None:
    start = getattr(source, "start", None)
    if callable(start):
        start()


def _close_source(source: Any) -> None:
    close = getattr(source, "close", None)
    if callable(close):
        close()


@asynccontextmanager
async def terminal(
    options: TerminalOptions | None = None,
    **kwargs: Any,
) -> AsyncIterator[Terminal]:
    """
    Run a block inside a raw-mode terminal session.

    Feature flags (``bracketed_paste``, ``background_color_detection``,
    ``focus_detection``, ``size_detection``) may be passed as keywords and
    override ``options``; other keywords go to ``Terminal``.
    """
    flags = {name: kwargs.pop(name) for name in list(kwargs) if name in TerminalOptions.model_fields}
    if flags:
        settings = kwargs.get("settings")
        base = options or TerminalOptions.from_settings(settings)
        options = base.model_copy(update=flags)

    session = Terminal(options, **kwargs)
    await session.start()
    try:
        yield session
    finally:
        await session.close()


__all__ = ["SessionState", "Terminal", "terminal"]
