"""
Tests for raw-mode acquisition and release.
"""

from __future__ import annotations

import os
import sys
from unittest.mock import patch

import pytest

from conftest import FAKE_RAW_CLEAR, ORIGINAL_ATTRIBUTES, FakeTerminalAttributes
from keystream.exceptions import (
    NotATtyError,
    SessionAlreadyCapturedError,
    SystemCallFailedError,
)
from keystream.models.events import WindowSize
from keystream.tty.modes import (
    RawModeGuard,
    TermiosAttributes,
    acquire,
    is_captured,
    raw_mode,
    release,
)


class TestAcquire:
    """Test acquire()."""

    def test_not_a_tty(self):
        """acquire fails before touching attributes when not a TTY."""
        attributes = FakeTerminalAttributes(tty=False)
        with pytest.raises(NotATtyError):
            acquire(attributes)
        assert attributes.set_calls == []
        assert not is_captured(attributes.fd)

    def test_enters_raw_mode(self, fake_attributes):
        """Only the line discipline flags change."""
        guard = acquire(fake_attributes)
        assert isinstance(guard, RawModeGuard)
        assert fake_attributes.current[3] == ORIGINAL_ATTRIBUTES[3] & ~FAKE_RAW_CLEAR
        # other flags untouched
        assert fake_attributes.current[:3] == ORIGINAL_ATTRIBUTES[:3]
        assert guard.original_settings == ORIGINAL_ATTRIBUTES
        guard.release()

    def test_twice_raises(self, fake_attributes):
        """A held terminal cannot be acquired again."""
        guard = acquire(fake_attributes)
        with pytest.raises(SessionAlreadyCapturedError) as exc_info:
            acquire(fake_attributes)
        assert exc_info.value.fd == fake_attributes.fd
        guard.release()

    def test_reacquire_after_release(self, fake_attributes):
        """A released terminal can be acquired again."""
        acquire(fake_attributes).release()
        guard = acquire(fake_attributes)
        assert not guard.is_released
        guard.release()

    def test_get_failure(self, fake_attributes):
        """A failed read leaves the fd free."""
        fake_attributes.fail_get = True
        with pytest.raises(SystemCallFailedError):
            acquire(fake_attributes)
        assert not is_captured(fake_attributes.fd)

    def test_set_failure_not_captured(self, fake_attributes):
        """A failed write leaves the fd free."""
        fake_attributes.fail_set = True
        with pytest.raises(SystemCallFailedError):
            acquire(fake_attributes)
        assert not is_captured(fake_attributes.fd)


class TestRelease:
    """Test RawModeGuard.release()."""

    def test_round_trip(self, fake_attributes):
        """Attributes after release equal attributes before acquire."""
        before = fake_attributes.get()
        guard = acquire(fake_attributes)
        assert fake_attributes.get() != before
        assert release(guard) is True
        assert fake_attributes.get() == before

    def test_release_once(self, fake_attributes):
        """A second release writes nothing and returns False."""
        guard = acquire(fake_attributes)
        assert guard.release() is True
        calls = len(fake_attributes.set_calls)
        assert guard.release() is False
        assert len(fake_attributes.set_calls) == calls
        assert guard.is_released

    def test_failed_release_still_frees_fd(self, fake_attributes):
        """A failed restore still counts as released."""
        guard = acquire(fake_attributes)
        fake_attributes.fail_set = True
        with pytest.raises(SystemCallFailedError):
            guard.release()
        assert guard.is_released
        assert not is_captured(fake_attributes.fd)

    def test_context_manager(self, fake_attributes):
        """The guard releases on exit."""
        with acquire(fake_attributes) as guard:
            assert not guard.is_released
        assert guard.is_released
        assert fake_attributes.current == ORIGINAL_ATTRIBUTES


class TestWindowSize:
    """Test RawModeGuard.window_size()."""

    def test_reports_attribute_size(self):
        """The guard asks its terminal for the kernel size."""
        attributes = FakeTerminalAttributes(fd=5, window=WindowSize(50, 200))
        with raw_mode(attributes) as guard:
            assert guard.window_size() == WindowSize(50, 200)

    def test_unknown_size(self, fake_attributes):
        """None when the terminal does not know its size."""
        with raw_mode(fake_attributes) as guard:
            assert guard.window_size() is None


class TestRawModeContextManager:
    """Test raw_mode() context manager."""

    def test_restores_on_exit(self, fake_attributes):
        """Leaving the block restores the original attributes."""
        with raw_mode(fake_attributes) as guard:
            assert fake_attributes.current != ORIGINAL_ATTRIBUTES
        assert guard.is_released
        assert fake_attributes.current == ORIGINAL_ATTRIBUTES

    def test_restores_on_exception(self, fake_attributes):
        """An exception in the block still restores the attributes."""
        with pytest.raises(ValueError):
            with raw_mode(fake_attributes):
                raise ValueError("test error")
        assert fake_attributes.current == ORIGINAL_ATTRIBUTES
        assert not is_captured(fake_attributes.fd)


@pytest.mark.skipif(sys.platform == "win32", reason="Unix only")
class TestTermiosAttributes:
    """Test the termios-backed capability (termios mocked)."""

    def test_raw_clears_only_line_discipline_flags(self):
        """ICANON, ECHO and ISIG are cleared; VMIN=1, VTIME=0."""
        import termios

        attributes = TermiosAttributes(fd=0)
        cc = [b"\x00"] * 32
        lflag = termios.ICANON | termios.ECHO | termios.ISIG | termios.IEXTEN
        original = [1, 2, 3, lflag, 38400, 38400, cc]

        mode = attributes.raw(original)

        assert mode[3] == termios.IEXTEN
        assert mode[:3] == [1, 2, 3]
        assert mode[6][termios.VMIN] == 1
        assert mode[6][termios.VTIME] == 0
        # original untouched
        assert original[3] == lflag
        assert original[6] is cc

    def test_get_wraps_errors(self):
        """termios errors surface as SystemCallFailedError."""
        import termios

        with patch("termios.tcgetattr", side_effect=termios.error(25, "Inappropriate ioctl")):
            with pytest.raises(SystemCallFailedError) as exc_info:
                TermiosAttributes(fd=0).get()
        assert exc_info.value.operation == "tcgetattr"

    def test_set_uses_tcsadrain(self):
        """Attributes are written after pending output drains."""
        import termios

        with patch("termios.tcsetattr") as mock_set:
            TermiosAttributes(fd=7).set([0, 0, 0, 0, 0, 0, []])
        mock_set.assert_called_once_with(7, termios.TCSADRAIN, [0, 0, 0, 0, 0, 0, []])

    def test_isatty_false_for_bad_fd(self):
        """A bad fd is not a TTY."""
        with patch("os.isatty", side_effect=OSError):
            assert TermiosAttributes(fd=99).isatty() is False

    def test_default_fd_is_stdin(self):
        """Without an fd, stdin is used."""
        with patch.object(sys, "stdin") as mock_stdin:
            mock_stdin.fileno.return_value = 0
            assert TermiosAttributes().fd == 0

    def test_size_from_kernel(self):
        """size() converts the kernel's columns/lines to a WindowSize."""
        with patch("os.get_terminal_size", return_value=os.terminal_size((132, 43))) as mock_size:
            assert TermiosAttributes(fd=4).size() == WindowSize(43, 132)
        mock_size.assert_called_once_with(4)

    def test_size_unknown_on_error(self):
        """size() is None when the fd has no window."""
        with patch("os.get_terminal_size", side_effect=OSError):
            assert TermiosAttributes(fd=4).size() is None

    def test_size_unknown_when_zero(self):
        """A zero-sized window counts as unknown."""
        with patch("os.get_terminal_size", return_value=os.terminal_size((0, 0))):
            assert TermiosAttributes(fd=4).size() is None
