"""
Single-line text editor driven by terminal events.

``LineEditor`` is immutable: ``apply()`` folds one event into a new editor.
``ask()`` runs the fold over an event stream until Enter.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import AsyncIterable, Callable

from keystream.exceptions import DismissedError
from keystream.models.events import Event, Key, Keypress, Modifier, Paste


@dataclass(frozen=True)
class LineEditor:
    """
    Text value plus cursor position.

    Attributes:
        value: Current text.
        position: Cursor index in ``0..len(value)``; None means end of text.
    """

    value: str = ""
    position: int | None = None

    def __post_init__(self) -> None:
        if self.position is None:
            object.__setattr__(self, "position", len(self.value))
        else:
            object.__setattr__(self, "position", max(0, min(self.position, len(self.value))))

    @property
    def cursor(self) -> int:
        return self.position  # type: ignore[return-value]

    def apply(self, event: Event) -> LineEditor:
        """Return the editor after ``event``; unknown events leave it unchanged."""
        if isinstance(event, Paste):
            return self._insert(event.text)
        if not isinstance(event, Keypress):
            return self

        value, pos = self.value, self.cursor
        key, mods = event.key, event.modifiers

        if key is Key.CHAR and event.char and not mods:
            return self._insert(event.char)

        if key is Key.CONTROL:
            if event.char == "U":
                return LineEditor(value[pos:], 0)
            if event.char == "W":
                prefix = value[: max(0, pos - 1)]
                prefix = prefix[: prefix.rfind(" ") + 1]
                return LineEditor(prefix + value[pos:], len(prefix))
            return self

        if mods == Modifier.CTRL and key is Key.LEFT:
            return replace(self, position=_previous_word(value, pos))
        if mods == Modifier.CTRL and key is Key.RIGHT:
            return replace(self, position=_next_word(value, pos))
        if mods:
            return self

        if key is Key.DELETE:
            return LineEditor(value[:pos] + value[pos + 1:], pos)
        if key is Key.BACKSPACE:
            if pos == 0:
                return self
            return LineEditor(value[: pos - 1] + value[pos:], pos - 1)
        if key is Key.HOME:
            return replace(self, position=0)
        if key is Key.END:
            return replace(self, position=len(value))
        if key is Key.LEFT:
            return replace(self, position=max(0, pos - 1))
        if key is Key.RIGHT:
            return replace(self, position=min(len(value), pos + 1))
        return self

    def _insert(self, text: str) -> LineEditor:
        pos = self.cursor
        return LineEditor(self.value[:pos] + text + self.value[pos:], pos + len(text))

    async def ask(
        self,
        events: AsyncIterable[Event],
        on_change: Callable[[LineEditor], None] | None = None,
    ) -> str:
        """
        Edit until Enter and return the text.

        Args:
            events: Event stream, e.g. ``Terminal.events()``.
            on_change: Called with each new editor state (for re-rendering).

        Raises:
            DismissedError: Escape, Ctrl+C or Ctrl+D pressed, or the stream ended.
        """
        editor = self
        async for event in events:
            if isinstance(event, Keypress):
                if event.key is Key.ENTER:
                    return editor.value
                if event.key is Key.ESCAPE:
                    raise DismissedError("cancelled")
                if event.key is Key.CONTROL and event.char in ("C", "D"):
                    raise DismissedError("interrupted")

            updated = editor.apply(event)
            if updated != editor:
                editor = updated
                if on_change is not None:
                    on_change(editor)

        raise DismissedError("ended")


def _previous_word(value: str, pos: int) -> int:
    index = value.rfind(" ", 0, max(0, pos - 1))
    return index + 1


def _next_word(value: str, pos: int) -> int:
    start = min(pos + 1, max(0, len(value) - 1))
    index = value.find(" ", start)
    return len(value) if index == -1 else min(index + 1, len(value))


__all__ = ["LineEditor"]
