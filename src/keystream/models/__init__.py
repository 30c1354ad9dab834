"""
keystream data models.
"""

from keystream.models.config import TerminalOptions
from keystream.models.events import (
    BackgroundColor,
    Event,
    FocusGained,
    FocusLost,
    Key,
    Keypress,
    Modifier,
    Paste,
    SignalReceived,
    TerminalInfo,
    TerminalTheme,
    UnrecognizedSequence,
    WindowSize,
    char_key,
    control_key,
    function_key,
    named_key,
)

__all__ = [
    # Config
    "TerminalOptions",
    # Events
    "Event",
    "TerminalInfo",
    "Keypress",
    "Key",
    "Modifier",
    "TerminalTheme",
    "UnrecognizedSequence",
    "WindowSize",
    "BackgroundColor",
    "FocusGained",
    "FocusLost",
    "Paste",
    "SignalReceived",
    # Constructors
    "char_key",
    "control_key",
    "function_key",
    "named_key",
]
