"""
keystream CLI.

Usage:
    keystream watch
    keystream watch --all --count 20
    keystream decode '\\x1b[1;5D'
    keystream decode --raw 'caf\\xe9'
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

import click
from rich.console import Console
from rich.table import Table

from keystream.config import get_settings
from keystream.decoder import TextSource, code_points, decode_all
from keystream.exceptions import TerminalError
from keystream.logging import setup_logging
from keystream.models.config import TerminalOptions
from keystream.models.events import Event, Key, Keypress

console = Console()
err_console = Console(stderr=True)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level (default from KEYSTREAM_LOG_LEVEL)",
)
@click.version_option(package_name="keystream")
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """keystream terminal input inspector."""
    ctx.ensure_object(dict)
    setup_logging(log_level.upper() if log_level else None)


# =============================================================================
# Watch Command
# =============================================================================


@main.command()
@click.option("--paste", is_flag=True, help="Enable bracketed paste")
@click.option("--focus", is_flag=True, help="Report focus gain/loss")
@click.option("--size", is_flag=True, help="Query window size on start and resize")
@click.option("--background", is_flag=True, help="Query background colour")
@click.option("--all", "all_features", is_flag=True, help="Enable every feature")
@click.option("--count", "-n", type=int, default=None, help="Stop after N events")
def watch(
    paste: bool,
    focus: bool,
    size: bool,
    background: bool,
    all_features: bool,
    count: int | None,
) -> None:
    """Print decoded terminal events.

    Press Ctrl+D or Ctrl+C to stop.
    """
    if all_features:
        options = TerminalOptions.all()
    else:
        options = TerminalOptions(
            bracketed_paste=paste,
            focus_detection=focus,
            size_detection=size,
            background_color_detection=background,
        )

    try:
        asyncio.run(_watch_async(options, count))
    except TerminalError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)


async def _watch_async(options: TerminalOptions, count: int | None) -> None:
    from keystream.terminal import Terminal

    async with Terminal(options) as term:
        columns = await term.known_columns()
        rows = await term.known_rows()
        # raw mode: no output post-processing, so lines end with \r\n
        term.write(f"{columns}x{rows}, Ctrl+D to quit\r\n")

        seen = 0
        async for event in term.events():
            term.write(f"{describe(event)}\r\n")
            seen += 1
            if is_quit(event) or (count is not None and seen >= count):
                break


def is_quit(event: Event) -> bool:
    return isinstance(event, Keypress) and event.key is Key.CONTROL and event.char in ("C", "D")


def describe(event: Event) -> str:
    """One-line description of an event."""
    if isinstance(event, Keypress):
        return f"{type(event).__name__} {event}  {event!r}"
    return repr(event)


# =============================================================================
# Decode Command
# =============================================================================


@main.command()
@click.argument("text")
@click.option("--raw", is_flag=True, help="Show code points instead of decoded events")
def decode(text: str, raw: bool) -> None:
    """Decode an input string (Python escapes allowed, e.g. '\\x1b[A')."""
    data = _unescape(text)

    if raw:
        points = asyncio.run(_collect(code_points(TextSource(data))))
        table = Table(title=f"{len(points)} characters")
        table.add_column("Char", style="cyan")
        table.add_column("Code point", justify="right")
        for point in points:
            table.add_row(repr(chr(point)), f"U+{point:04X}")
        console.print(table)
        return

    events = asyncio.run(decode_all(data))

    table = Table(title=f"{len(events)} events")
    table.add_column("Event", style="cyan")
    table.add_column("Raw", style="dim")
    for event in events:
        table.add_row(describe(event), repr(getattr(event, "raw", "")))
    console.print(table)


def _unescape(text: str) -> str:
    # non-Latin-1 characters become \uXXXX escapes so they survive unchanged
    try:
        return text.encode("latin-1", "backslashreplace").decode("unicode_escape")
    except UnicodeDecodeError as e:
        raise click.BadParameter(f"invalid escape: {e.reason}", param_hint="TEXT") from e


async def _collect(items: AsyncIterator[int]) -> list[int]:
    return [item async for item in items]


# =============================================================================
# Config Command
# =============================================================================


@main.command()
def config() -> None:
    """Show effective settings."""
    table = Table(title="keystream settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for name, value in get_settings().model_dump().items():
        table.add_row(name, str(value))
    console.print(table)


if __name__ == "__main__":
    main()
