"""
Escape-sequence decoder.

Turns the character stream a terminal sends in raw mode into ``Event``
objects. The decoder pulls one character at a time from an async source and
never reads further than it needs to classify the current sequence, so a key
press is reported as soon as its last byte arrives.

A lone ESC is ambiguous: it is either the Escape key or the first byte of a
sequence. Terminals send sequences in one burst, so if nothing follows ESC
within ``escape_timeout`` it is reported as the Escape key.

Decoding never raises. Unknown sequences become ``UnrecognizedSequence``;
only a malformed OSC 11 colour report is absorbed without an event.
"""

from __future__ import annotations

import asyncio
import re
from collections import deque
from typing import AsyncIterator, Protocol

from keystream.escapes import BEL, CSI, ESC, OSC, PASTE_END, PASTE_START, ST
from keystream.logging import get_logger
from keystream.models.events import (
    BackgroundColor,
    Event,
    FocusGained,
    FocusLost,
    Key,
    Keypress,
    Modifier,
    Paste,
    UnrecognizedSequence,
    WindowSize,
    char_key,
    control_key,
    function_key,
    named_key,
)

logger = get_logger(__name__)

DEFAULT_ESCAPE_TIMEOUT = 0.03

# Answer used when a CSI ... R size report can't be parsed
DEFAULT_WINDOW_ROWS = 24
DEFAULT_WINDOW_COLUMNS = 80

MAX_CSI_LENGTH = 64
MAX_OSC_LENGTH = 512

DEL = "\x7f"

NAVIGATION_KEYS = {
    "A": Key.UP,
    "B": Key.DOWN,
    "C": Key.RIGHT,
    "D": Key.LEFT,
    "F": Key.END,
    "H": Key.HOME,
}

VT_KEYS = {
    "1": Key.HOME,
    "2": Key.INSERT,
    "3": Key.DELETE,
    "4": Key.END,
    "5": Key.PAGE_UP,
    "6": Key.PAGE_DOWN,
    "7": Key.HOME,
    "8": Key.END,
}

# xterm CSI n ~ function keys
VT_FUNCTION_KEYS = {
    "11": 1, "12": 2, "13": 3, "14": 4, "15": 5,
    "17": 6, "18": 7, "19": 8, "20": 9, "21": 10,
    "23": 11, "24": 12,
}

# CSI 1;m P/Q/S carry modifiers for F1, F2, F4. F3 (R) collides with the
# cursor position report and is always read as a size report.
CSI_FUNCTION_KEYS = {"P": 1, "Q": 2, "S": 4}

_SIZE_REPORT = re.compile(r"(\d+);(\d+)", re.ASCII)
_NUMBER = re.compile(r"\d+", re.ASCII)
_HEX_CHANNEL = re.compile(r"[0-9a-fA-F]{1,4}")
_RGB_PREFIX = "11;rgb:"


class CharSource(Protocol):
    """
    Async character source consumed by the decoder.

    ``read`` returns one character, or ``""`` once the stream has ended (and
    on every call after that). With a ``timeout`` it raises
    ``asyncio.TimeoutError`` if nothing arrives in time.
    """

    async def read(self, timeout: float | None = None) -> str: ...


class _Lookahead:
    """Source wrapper with a push-back buffer."""

    def __init__(self, source: CharSource) -> None:
        self._source = source
        self._pending: deque[str] = deque()

    async def read(self, timeout: float | None = None) -> str:
        if self._pending:
            return self._pending.popleft()
        return await self._source.read(timeout)

    def unread(self, char: str) -> None:
        self._pending.appendleft(char)


async def decode(
    source: CharSource,
    escape_timeout: float = DEFAULT_ESCAPE_TIMEOUT,
) -> AsyncIterator[Event]:
    """
    Decode terminal input into events.

    Args:
        source: Character source (see ``CharSource``).
        escape_timeout: Seconds to wait for a byte after ESC.

    Yields:
        Events in input order. The iterator ends with the source.
    """
    reader = _Lookahead(source)

    while True:
        char = await reader.read()
        if not char:
            return

        if char == ESC:
            for event in await _decode_escape(reader, escape_timeout):
                yield event
        else:
            yield decode_char(char)


def decode_char(char: str) -> Keypress:
    """Classify a single character outside an escape sequence."""
    if char in ("\b", DEL):
        return named_key(Key.BACKSPACE, raw=char)
    if char == "\t":
        return named_key(Key.TAB, raw=char)
    if char in ("\n", "\r"):
        return named_key(Key.ENTER, raw=char)
    if char == ESC:
        return named_key(Key.ESCAPE, raw=char)
    if ord(char) < 0x20:
        return control_key(chr(ord(char) + 0x40), raw=char)
    return char_key(char)


async def decode_all(text: str) -> list[Event]:
    """
    Decode a complete, already-received string.

    Trailing ESC is reported as the Escape key since no more input follows.
    """
    return [event async for event in decode(TextSource(text))]


async def passthrough(source: CharSource) -> AsyncIterator[str]:
    """Yield input characters undecoded, escape sequences included."""
    while char := await source.read():
        yield char


async def code_points(source: CharSource) -> AsyncIterator[int]:
    """Yield the code point of every input character."""
    async for char in passthrough(source):
        yield ord(char)


# =============================================================================
# Escape sequences
# =============================================================================


async def _decode_escape(reader: _Lookahead, escape_timeout: float) -> list[Event]:
    try:
        follow = await reader.read(escape_timeout)
    except asyncio.TimeoutError:
        return [named_key(Key.ESCAPE, raw=ESC)]

    if follow == "O":
        return await _decode_ss3(reader)
    if follow == "[":
        return await _decode_csi(reader)
    if follow == "]":
        return await _decode_osc(reader, escape_timeout)

    # ESC at end of input, or ESC followed by something that doesn't start
    # a sequence: the follow-up is decoded on its own.
    if follow:
        reader.unread(follow)
    return [named_key(Key.ESCAPE, raw=ESC)]


async def _decode_ss3(reader: _Lookahead) -> list[Event]:
    prefix = ESC + "O"
    char = await reader.read()
    if not char:
        return [UnrecognizedSequence(prefix, raw=prefix)]
    if not "\x40" <= char <= "\x7e":
        reader.unread(char)
        return [UnrecognizedSequence(prefix, raw=prefix)]

    raw = prefix + char
    if char in NAVIGATION_KEYS:
        return [named_key(NAVIGATION_KEYS[char], raw=raw)]
    return [function_key(ord(char) - ord("O"), raw=raw)]


def _is_csi_final(char: str) -> bool:
    return char in ("~", "@") or "A" <= char <= "Z"


async def _decode_csi(reader: _Lookahead) -> list[Event]:
    body: list[str] = []
    while True:
        char = await reader.read()
        if not char:
            sequence = CSI + "".join(body)
            return [UnrecognizedSequence(sequence, raw=sequence)]
        if _is_csi_final(char):
            break
        if ord(char) < 0x20 or char == DEL or len(body) >= MAX_CSI_LENGTH:
            reader.unread(char)
            sequence = CSI + "".join(body)
            return [UnrecognizedSequence(sequence, raw=sequence)]
        body.append(char)

    params = "".join(body)
    raw = CSI + params + char

    if char == "~":
        if params == "200":
            return [await _decode_paste(reader)]
        return [_vt_key(params, raw)]

    if char == "R":
        return [_window_size(params, raw)]
    if char == "I":
        return [FocusGained(raw=raw)]
    if char == "O":
        return [FocusLost(raw=raw)]

    if char in NAVIGATION_KEYS:
        if not params:
            return [named_key(NAVIGATION_KEYS[char], raw=raw)]
        number, _, mods = params.partition(";")
        if number == "1" and _NUMBER.fullmatch(mods):
            return [named_key(NAVIGATION_KEYS[char], modifiers(mods), raw=raw)]

    if char in CSI_FUNCTION_KEYS:
        number, _, mods = params.partition(";")
        if number == "1" and _NUMBER.fullmatch(mods):
            return [function_key(CSI_FUNCTION_KEYS[char], modifiers(mods), raw=raw)]

    return [UnrecognizedSequence(raw, raw=raw)]


def modifiers(code: str) -> Modifier:
    """
    Decode an xterm modifier parameter.

    The parameter is ``1 + mask`` where bit 0 is Shift, bit 1 Alt, bit 2
    Ctrl and bit 3 Meta. Anything but ASCII digits means no modifiers.
    """
    if not _NUMBER.fullmatch(code):
        return Modifier.NONE
    mask = int(code) - 1
    if mask <= 0:
        return Modifier.NONE
    return Modifier(mask & 0xF)


def _vt_key(params: str, raw: str) -> Event:
    number, sep, mods = params.partition(";")
    if sep and not _NUMBER.fullmatch(mods):
        return UnrecognizedSequence(raw, raw=raw)

    mask = modifiers(mods) if sep else Modifier.NONE
    if number in VT_KEYS:
        return named_key(VT_KEYS[number], mask, raw=raw)
    if number in VT_FUNCTION_KEYS:
        return function_key(VT_FUNCTION_KEYS[number], mask, raw=raw)
    return UnrecognizedSequence(raw, raw=raw)


def _window_size(params: str, raw: str) -> WindowSize:
    match = _SIZE_REPORT.fullmatch(params)
    if match is None:
        logger.debug("Malformed size report %r, using default", raw)
        return WindowSize(DEFAULT_WINDOW_ROWS, DEFAULT_WINDOW_COLUMNS, raw=raw)
    return WindowSize(int(match.group(1)), int(match.group(2)), raw=raw)


async def _decode_paste(reader: _Lookahead) -> Paste:
    chars: list[str] = []
    while True:
        char = await reader.read()
        if not char:
            text = "".join(chars)
            return Paste(text, raw=PASTE_START + text)
        chars.append(char)
        if char == "~" and "".join(chars[-len(PASTE_END):]) == PASTE_END:
            text = "".join(chars[: -len(PASTE_END)])
            return Paste(text, raw=PASTE_START + text + PASTE_END)


async def _decode_osc(reader: _Lookahead, escape_timeout: float) -> list[Event]:
    body: list[str] = []
    while True:
        char = await reader.read()
        if not char:
            sequence = OSC + "".join(body)
            return [UnrecognizedSequence(sequence, raw=sequence)]
        if char == BEL:
            terminator = BEL
            break
        if char == ESC:
            # a bare ESC also ends the report; don't wait for the next key
            try:
                after = await reader.read(escape_timeout)
            except asyncio.TimeoutError:
                after = ""
            if after == "\\":
                terminator = ST
            else:
                if after:
                    reader.unread(after)
                terminator = ESC
            break
        if len(body) >= MAX_OSC_LENGTH:
            reader.unread(char)
            sequence = OSC + "".join(body)
            return [UnrecognizedSequence(sequence, raw=sequence)]
        body.append(char)

    payload = "".join(body)
    raw = OSC + payload + terminator

    if payload.startswith(_RGB_PREFIX):
        color = _background_color(payload[len(_RGB_PREFIX):], raw)
        if color is None:
            logger.debug("Dropping malformed background colour report %r", raw)
            return []
        return [color]

    return [UnrecognizedSequence(raw, raw=raw)]


def _background_color(rgb: str, raw: str) -> BackgroundColor | None:
    channels = rgb.split("/")
    if len(channels) != 3 or not all(_HEX_CHANNEL.fullmatch(c) for c in channels):
        return None
    red, green, blue = (_scale_channel(c) for c in channels)
    return BackgroundColor(red, green, blue, raw=raw)


def _scale_channel(digits: str) -> int:
    # rgb:f/f/f, rgb:ff/ff/ff and rgb:ffff/ffff/ffff all mean full intensity
    return int(digits, 16) * 0xFFFF // (16 ** len(digits) - 1)


class TextSource:
    """Already-complete input: never times out, ends after the last char."""

    def __init__(self, text: str) -> None:
        self._chars = deque(text)

    async def read(self, timeout: float | None = None) -> str:
        return self._chars.popleft() if self._chars else ""


__all__ = [
    "CharSource",
    "TextSource",
    "DEFAULT_ESCAPE_TIMEOUT",
    "DEFAULT_WINDOW_ROWS",
    "DEFAULT_WINDOW_COLUMNS",
    "decode",
    "decode_all",
    "decode_char",
    "passthrough",
    "code_points",
    "modifiers",
]
