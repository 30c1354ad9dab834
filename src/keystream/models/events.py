"""
Terminal event data model.

Every item on the event bus is one of the frozen dataclasses below. Keys are
flat: a base-key tag plus a modifier bitmask, so ``Ctrl+Shift+Left`` is
``Keypress(Key.LEFT, modifiers=Modifier.CTRL | Modifier.SHIFT)``.

Events produced by the decoder carry ``raw``, the exact characters they were
decoded from. ``raw`` is excluded from equality and repr.
"""

from __future__ import annotations

import signal as _signal
from dataclasses import dataclass, field, replace
from enum import Enum, IntFlag
from typing import Union


class Key(str, Enum):
    """Base key tag."""

    CHAR = "char"
    CONTROL = "control"
    ENTER = "enter"
    ESCAPE = "escape"
    TAB = "tab"
    BACKSPACE = "backspace"
    DELETE = "delete"
    HOME = "home"
    END = "end"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    INSERT = "insert"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    FUNCTION = "function"


class Modifier(IntFlag):
    """Modifier bitmask, matching the xterm ``modifier - 1`` encoding."""

    NONE = 0
    SHIFT = 1
    ALT = 2
    CTRL = 4
    META = 8


class TerminalTheme(str, Enum):
    """Light/dark classification of the reported background colour."""

    DARK = "dark"
    LIGHT = "light"


# Relative luminance threshold on 16-bit channels
LUMINANCE_THRESHOLD = 32768


@dataclass(frozen=True)
class Keypress:
    """
    A key press.

    Attributes:
        key: Base key.
        char: Character for ``CHAR`` keys, letter for ``CONTROL`` keys.
        number: Function key number for ``FUNCTION`` keys.
        modifiers: Modifier bitmask.
    """

    key: Key
    char: str | None = None
    number: int | None = None
    modifiers: Modifier = Modifier.NONE
    raw: str = field(default="", compare=False, repr=False)

    @property
    def shift(self) -> bool:
        return bool(self.modifiers & Modifier.SHIFT)

    @property
    def alt(self) -> bool:
        return bool(self.modifiers & Modifier.ALT)

    @property
    def ctrl(self) -> bool:
        return bool(self.modifiers & Modifier.CTRL)

    @property
    def meta(self) -> bool:
        return bool(self.modifiers & Modifier.META)

    def with_modifiers(self, modifiers: Modifier | int) -> Keypress:
        """Return a copy with ``modifiers`` added to the existing mask."""
        return replace(self, modifiers=self.modifiers | Modifier(modifiers))

    def __str__(self) -> str:
        if self.key is Key.CHAR:
            base = self.char or ""
        elif self.key is Key.CONTROL:
            base = f"^{self.char}"
        elif self.key is Key.FUNCTION:
            base = f"F{self.number}"
        else:
            base = "".join(part.title() for part in self.key.name.split("_"))
        names = [m.name.title() for m in (Modifier.META, Modifier.CTRL, Modifier.ALT, Modifier.SHIFT)
                 if self.modifiers & m]
        return "+".join([*names, base])


@dataclass(frozen=True)
class UnrecognizedSequence:
    """Escape sequence that matched no known pattern, preserved verbatim."""

    sequence: str
    raw: str = field(default="", compare=False, repr=False)


@dataclass(frozen=True)
class WindowSize:
    """Terminal dimensions reported by the terminal."""

    rows: int
    columns: int
    raw: str = field(default="", compare=False, repr=False)


@dataclass(frozen=True)
class BackgroundColor:
    """Reported background colour, each channel a 16-bit intensity."""

    red: int
    green: int
    blue: int
    raw: str = field(default="", compare=False, repr=False)

    @property
    def luminance(self) -> float:
        return 0.299 * self.red + 0.587 * self.green + 0.114 * self.blue

    @property
    def is_dark(self) -> bool:
        return self.luminance < LUMINANCE_THRESHOLD

    @property
    def theme(self) -> TerminalTheme:
        return TerminalTheme.DARK if self.is_dark else TerminalTheme.LIGHT


@dataclass(frozen=True)
class FocusGained:
    raw: str = field(default="", compare=False, repr=False)


@dataclass(frozen=True)
class FocusLost:
    raw: str = field(default="", compare=False, repr=False)


@dataclass(frozen=True)
class Paste:
    """Bracketed-paste payload."""

    text: str
    raw: str = field(default="", compare=False, repr=False)


@dataclass(frozen=True)
class SignalReceived:
    """OS signal delivered to the process."""

    signum: int

    @property
    def name(self) -> str:
        try:
            return _signal.Signals(self.signum).name
        except ValueError:
            return f"SIG{self.signum}"


TerminalInfo = Union[WindowSize, BackgroundColor, FocusGained, FocusLost, Paste]
Event = Union[Keypress, UnrecognizedSequence, TerminalInfo, SignalReceived]


# =============================================================================
# Constructors
# =============================================================================


def char_key(char: str, raw: str | None = None) -> Keypress:
    return Keypress(Key.CHAR, char=char, raw=char if raw is None else raw)


def control_key(letter: str, raw: str = "") -> Keypress:
    return Keypress(Key.CONTROL, char=letter, raw=raw)


def function_key(number: int, modifiers: Modifier | int = Modifier.NONE, raw: str = "") -> Keypress:
    return Keypress(Key.FUNCTION, number=number, modifiers=Modifier(modifiers), raw=raw)


def named_key(key: Key, modifiers: Modifier | int = Modifier.NONE, raw: str = "") -> Keypress:
    return Keypress(key, modifiers=Modifier(modifiers), raw=raw)


__all__ = [
    "Key",
    "Modifier",
    "TerminalTheme",
    "LUMINANCE_THRESHOLD",
    "Keypress",
    "UnrecognizedSequence",
    "WindowSize",
    "BackgroundColor",
    "FocusGained",
    "FocusLost",
    "Paste",
    "SignalReceived",
    "TerminalInfo",
    "Event",
    "char_key",
    "control_key",
    "function_key",
    "named_key",
]
