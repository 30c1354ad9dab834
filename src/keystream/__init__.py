"""
keystream: raw-mode terminal input for asyncio.

Decodes terminal input into key and status events and merges them with
resize signals into one ordered stream.

Usage:
    >>> from keystream import terminal
    >>> async with terminal(size_detection=True) as term:
    ...     async for event in term.events():
    ...         print(event)
"""

from keystream.config import (
    TerminalSettings,
    configure_settings,
    get_settings,
    reset_settings,
)
from keystream.decoder import decode, decode_all
from keystream.editor import LineEditor
from keystream.exceptions import (
    DismissedError,
    KeystreamError,
    NotATtyError,
    SessionAlreadyCapturedError,
    SessionClosedError,
    SystemCallFailedError,
    TerminalError,
)
from keystream.models import (
    BackgroundColor,
    Event,
    FocusGained,
    FocusLost,
    Key,
    Keypress,
    Modifier,
    Paste,
    SignalReceived,
    TerminalOptions,
    TerminalTheme,
    UnrecognizedSequence,
    WindowSize,
)
from keystream.streaming import EventBus, PendingQuery
from keystream.terminal import SessionState, Terminal, terminal
from keystream.tty import RawModeGuard, acquire, raw_mode, release

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Session
    "Terminal",
    "SessionState",
    "terminal",
    # Raw mode
    "RawModeGuard",
    "acquire",
    "release",
    "raw_mode",
    # Pipeline
    "EventBus",
    "PendingQuery",
    "decode",
    "decode_all",
    # Events
    "Event",
    "Keypress",
    "Key",
    "Modifier",
    "UnrecognizedSequence",
    "WindowSize",
    "BackgroundColor",
    "TerminalTheme",
    "FocusGained",
    "FocusLost",
    "Paste",
    "SignalReceived",
    # Widgets
    "LineEditor",
    # Config
    "TerminalOptions",
    "TerminalSettings",
    "get_settings",
    "configure_settings",
    "reset_settings",
    # Exceptions
    "KeystreamError",
    "TerminalError",
    "NotATtyError",
    "SystemCallFailedError",
    "SessionAlreadyCapturedError",
    "SessionClosedError",
    "DismissedError",
]
