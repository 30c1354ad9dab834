"""
Tests for LineEditor.
"""

from __future__ import annotations

import pytest

from keystream.editor import LineEditor
from keystream.exceptions import DismissedError
from keystream.models.events import (
    FocusGained,
    Key,
    Modifier,
    Paste,
    char_key,
    control_key,
    named_key,
)


async def stream(*events):
    for event in events:
        yield event


class TestLineEditorApply:
    """Test single-event editing."""

    def test_cursor_defaults_to_end(self):
        """The cursor starts after the text."""
        assert LineEditor("abc").cursor == 3

    def test_cursor_clamped(self):
        """Out-of-range cursors are clamped."""
        assert LineEditor("abc", 10).cursor == 3
        assert LineEditor("abc", -2).cursor == 0

    def test_insert_at_cursor(self):
        """Characters are inserted at the cursor."""
        editor = LineEditor("ac", 1).apply(char_key("b"))
        assert editor == LineEditor("abc", 2)

    def test_paste_inserts_text(self):
        """A paste inserts its whole text."""
        editor = LineEditor("ad", 1).apply(Paste("bc"))
        assert editor == LineEditor("abcd", 3)

    def test_backspace(self):
        """Backspace removes the character before the cursor."""
        assert LineEditor("abc").apply(named_key(Key.BACKSPACE)) == LineEditor("ab", 2)
        assert LineEditor("abc", 0).apply(named_key(Key.BACKSPACE)) == LineEditor("abc", 0)

    def test_delete(self):
        """Delete removes the character under the cursor."""
        assert LineEditor("abc", 0).apply(named_key(Key.DELETE)) == LineEditor("bc", 0)
        assert LineEditor("abc").apply(named_key(Key.DELETE)) == LineEditor("abc")

    @pytest.mark.parametrize(
        "key,expected",
        [
            (Key.HOME, 0),
            (Key.END, 5),
            (Key.LEFT, 1),
            (Key.RIGHT, 3),
        ],
    )
    def test_cursor_movement(self, key, expected):
        """Home, End, Left and Right move the cursor."""
        assert LineEditor("hello", 2).apply(named_key(key)).cursor == expected

    def test_left_right_stop_at_bounds(self):
        """The cursor stays inside the text."""
        assert LineEditor("ab", 0).apply(named_key(Key.LEFT)).cursor == 0
        assert LineEditor("ab").apply(named_key(Key.RIGHT)).cursor == 2

    def test_ctrl_u_deletes_to_start(self):
        """Ctrl+U deletes back to the start."""
        assert LineEditor("hello world", 6).apply(control_key("U")) == LineEditor("world", 0)

    def test_ctrl_w_deletes_word(self):
        """Ctrl+W deletes the previous word."""
        editor = LineEditor("hello world").apply(control_key("W"))
        assert editor == LineEditor("hello ", 6)

    def test_word_jumps(self):
        """Ctrl+Left/Right jump between words."""
        editor = LineEditor("hello world")
        left = named_key(Key.LEFT, Modifier.CTRL)
        right = named_key(Key.RIGHT, Modifier.CTRL)

        editor = editor.apply(left)
        assert editor.cursor == 6
        editor = editor.apply(left)
        assert editor.cursor == 0
        editor = editor.apply(right)
        assert editor.cursor == 6
        editor = editor.apply(right)
        assert editor.cursor == 11

    def test_ignores_modified_and_other_events(self):
        """Unhandled events return the same editor."""
        editor = LineEditor("x")
        assert editor.apply(char_key("a").with_modifiers(Modifier.ALT)) is editor
        assert editor.apply(named_key(Key.HOME, Modifier.SHIFT)) is editor
        assert editor.apply(FocusGained()) is editor
        assert editor.apply(control_key("L")) is editor


class TestLineEditorAsk:
    """Test the interactive loop."""

    async def test_returns_on_enter(self):
        """Enter returns the text."""
        events = stream(char_key("h"), char_key("i"), named_key(Key.ENTER))
        assert await LineEditor().ask(events) == "hi"

    async def test_starts_from_initial_value(self):
        """Editing starts from the initial value."""
        events = stream(named_key(Key.BACKSPACE), char_key("p"), named_key(Key.ENTER))
        assert await LineEditor("yes").ask(events) == "yep"

    async def test_on_change_only_for_changes(self):
        """on_change fires only when the state changes."""
        changes = []
        events = stream(char_key("a"), named_key(Key.LEFT), named_key(Key.LEFT), named_key(Key.ENTER))
        await LineEditor().ask(events, on_change=changes.append)
        assert changes == [LineEditor("a", 1), LineEditor("a", 0)]

    async def test_escape_cancels(self):
        """Escape dismisses the prompt."""
        with pytest.raises(DismissedError) as exc_info:
            await LineEditor().ask(stream(char_key("a"), named_key(Key.ESCAPE)))
        assert exc_info.value.reason == "cancelled"

    @pytest.mark.parametrize("letter", ["C", "D"])
    async def test_interrupt(self, letter):
        """Ctrl+C and Ctrl+D interrupt the prompt."""
        with pytest.raises(DismissedError) as exc_info:
            await LineEditor().ask(stream(control_key(letter)))
        assert exc_info.value.reason == "interrupted"

    async def test_end_of_stream(self):
        """End of input dismisses the prompt."""
        with pytest.raises(DismissedError) as exc_info:
            await LineEditor().ask(stream(char_key("a")))
        assert exc_info.value.reason == "ended"
