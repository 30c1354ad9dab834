"""
Concurrent event pipeline: sources, pumps, the event bus and query cells.
"""

from keystream.streaming.bus import EventBus
from keystream.streaming.pumps import InputPump, SignalListener
from keystream.streaming.query import PendingQuery, TerminalQueries
from keystream.streaming.sources import SignalSource, TerminalInput

__all__ = [
    "EventBus",
    "InputPump",
    "SignalListener",
    "PendingQuery",
    "TerminalQueries",
    "SignalSource",
    "TerminalInput",
]
