"""
Event bus merging input and signal events into one ordered stream.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

from keystream.logging import get_logger
from keystream.models.events import Event

logger = get_logger(__name__)

_END = object()


class EventBus:
    """
    Unbounded multi-producer, single-consumer event queue.

    Each producer's events keep their order. ``close()`` is idempotent:
    events already queued are still delivered, then every reader gets
    ``None``. Events put after close are dropped.

    Usage:
        >>> bus = EventBus()
        >>> bus.put(event)
        >>> async for event in bus:
        ...     handle(event)
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False
        self._finished = False
        self._delivered = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def delivered(self) -> int:
        """Number of events handed to the consumer."""
        return self._delivered

    def qsize(self) -> int:
        # after close exactly one end marker sits in the queue
        return self._queue.qsize() - (1 if self._closed else 0)

    def put(self, event: Event) -> bool:
        """Enqueue an event. Returns False if the bus is closed."""
        if self._closed:
            logger.debug("Event bus closed, dropping %r", event)
            return False
        self._queue.put_nowait(event)
        return True

    async def get(self) -> Event | None:
        """Next event, or None at end of stream."""
        if self._finished:
            return None
        item = await self._queue.get()
        if item is _END:
            self._finished = True
            # wake any other reader blocked on the queue
            self._queue.put_nowait(_END)
            return None
        self._delivered += 1
        return item  # type: ignore[return-value]

    def close(self) -> None:
        """End the stream after the events already queued."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_END)

    async def __aiter__(self) -> AsyncIterator[Event]:
        while (event := await self.get()) is not None:
            yield event

    def __repr__(self) -> str:
        return f"<EventBus queued={self.qsize()} closed={self._closed}>"


__all__ = ["EventBus"]
