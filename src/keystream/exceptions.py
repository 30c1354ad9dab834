"""
keystream exception hierarchy.

Setup failures (raw-mode acquisition) raise; decoding never does, and query
timeouts resolve to fallback values instead of errors.
"""

from __future__ import annotations


class KeystreamError(Exception):
    """
    Base exception for all keystream errors.

    The original cause is stored on the instance but chained with
    ``from None`` semantics so tracebacks stay readable.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self._original_cause = cause
        self.__suppress_context__ = True

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Terminal / raw-mode errors
# =============================================================================


class TerminalError(KeystreamError):
    """Raw-mode session could not be established or restored."""


class NotATtyError(TerminalError):
    """Standard input is not attached to a terminal device."""

    def __init__(self, fd: int | None = None) -> None:
        self.fd = fd
        target = "stdin" if fd in (None, 0) else f"fd {fd}"
        super().__init__(f"{target} is not attached to a TTY")


class SystemCallFailedError(TerminalError):
    """Reading or writing terminal attributes failed."""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Terminal system call {operation} failed{detail}", cause=cause)


class SessionAlreadyCapturedError(TerminalError):
    """Raw mode is already held for this terminal."""

    def __init__(self, fd: int) -> None:
        self.fd = fd
        super().__init__(f"Raw mode already captured for fd {fd}")


# =============================================================================
# Session errors
# =============================================================================


class SessionClosedError(KeystreamError):
    """Operation attempted on a terminal session that has been closed."""

    def __init__(self, operation: str = "operation") -> None:
        self.operation = operation
        super().__init__(f"Cannot perform {operation}: terminal session is closed")


class DismissedError(KeystreamError):
    """Interactive prompt dismissed before completion (Escape, Ctrl+C, end of input)."""

    def __init__(self, reason: str = "dismissed") -> None:
        self.reason = reason
        super().__init__(f"Prompt {reason}")


__all__ = [
    "KeystreamError",
    "TerminalError",
    "NotATtyError",
    "SystemCallFailedError",
    "SessionAlreadyCapturedError",
    "SessionClosedError",
    "DismissedError",
]
