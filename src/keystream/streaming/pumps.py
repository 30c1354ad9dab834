"""
Background tasks producing events.

``InputPump`` decodes terminal input; ``SignalListener`` republishes OS
signals. Both only ever touch the event bus and query cells, never the
terminal attributes.
"""

from __future__ import annotations

from typing import Callable

from keystream.decoder import DEFAULT_ESCAPE_TIMEOUT, CharSource, decode
from keystream.logging import get_logger
from keystream.models.events import SignalReceived
from keystream.streaming.bus import EventBus
from keystream.streaming.query import TerminalQueries
from keystream.streaming.sources import SIGWINCH, SignalSource

logger = get_logger(__name__)


class InputPump:
    """
    Decodes terminal input onto the bus.

    Size and background-colour reports also fulfil the pending queries.
    Runs until the source is closed or exhausted.
    """

    def __init__(
        self,
        source: CharSource,
        bus: EventBus,
        queries: TerminalQueries | None = None,
        *,
        escape_timeout: float = DEFAULT_ESCAPE_TIMEOUT,
    ) -> None:
        self.source = source
        self.bus = bus
        self.queries = queries or TerminalQueries()
        self.escape_timeout = escape_timeout
        self.events_forwarded = 0

    async def run(self) -> None:
        logger.debug("Input pump started")
        try:
            async for event in decode(self.source, self.escape_timeout):
                self.queries.record(event)
                self.bus.put(event)
                self.events_forwarded += 1
        finally:
            logger.debug("Input pump finished after %d events", self.events_forwarded)


class SignalListener:
    """
    Republishes delivered signals as ``SignalReceived`` events.

    On a window change ``on_resize`` runs first (the terminal session uses it
    to send a size query), then the signal is forwarded. A signal taken from
    the source is always forwarded; the loop only ends at the source's end
    marker.
    """

    def __init__(
        self,
        source: SignalSource,
        bus: EventBus,
        *,
        on_resize: Callable[[], None] | None = None,
    ) -> None:
        self.source = source
        self.bus = bus
        self.on_resize = on_resize
        self.signals_forwarded = 0

    async def run(self) -> None:
        logger.debug("Signal listener started")
        try:
            async for signum in self.source:
                if signum == SIGWINCH and self.on_resize is not None:
                    try:
                        self.on_resize()
                    except Exception:
                        logger.warning("Resize handler failed", exc_info=True)
                self.bus.put(SignalReceived(signum))
                self.signals_forwarded += 1
        finally:
            logger.debug("Signal listener finished after %d signals", self.signals_forwarded)


__all__ = ["InputPump", "SignalListener"]
