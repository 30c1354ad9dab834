"""
Logging helpers.

Library modules log through ``get_logger(__name__)``; nothing is emitted until
an application calls ``setup_logging()`` (the CLI does).
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "keystream"

logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the ``keystream`` namespace."""
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def setup_logging(level: str | int | None = None) -> logging.Logger:
    """
    Attach a rich handler writing to stderr.

    Raw mode disables output post-processing, so records are rendered without
    wrapping and each line is terminated by the handler's console.

    Args:
        level: Log level; defaults to ``TerminalSettings.log_level``.

    Returns:
        The package root logger.
    """
    if level is None:
        from keystream.config import get_settings

        level = get_settings().log_level

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)

    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True, soft_wrap=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    root.addHandler(handler)
    return root


__all__ = ["get_logger", "setup_logging", "ROOT_LOGGER"]
