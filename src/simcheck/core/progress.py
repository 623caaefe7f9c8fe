"""Human-facing terminal output for the CLI.

Everything goes to one Rich console on stderr, which keeps stdout free
for ``--json`` output. While a spinner is animating, console log
handlers are muted so log lines do not tear it.
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from rich.console import Console

_console = Console(stderr=True)

# style -> (color, mark)
_MARKS: dict[str, tuple[str, str]] = {
    "success": ("green", "✓"),
    "warning": ("yellow", "!"),
    "error": ("red", "✗"),
}

_local = threading.local()


def is_console_suppressed() -> bool:
    return getattr(_local, "depth", 0) > 0


@contextmanager
def suppress_console_logs() -> Iterator[None]:
    """Mute console log handlers on this thread. Nests; file handlers are unaffected."""
    _local.depth = getattr(_local, "depth", 0) + 1
    try:
        yield
    finally:
        _local.depth -= 1


def get_console() -> Console:
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print one status line, prefixed with the style's mark."""
    mark = _MARKS.get(style)
    prefix = f"[{mark[0]}]{mark[1]}[/{mark[0]}] " if mark else "  "
    _console.print(" " * indent + prefix + message, highlight=False)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """``pluralize(1, "file")`` -> "1 file", ``pluralize(3, "file")`` -> "3 files"."""
    word = singular if count == 1 else (plural or f"{singular}s")
    return f"{count} {word}"


@contextmanager
def spinner(message: str, *, indent: int = 0) -> Iterator[None]:
    """Animate ``message`` on a terminal; elsewhere print it once."""
    text = " " * indent + message
    if not sys.stderr.isatty():
        _console.print(f"{text}...", highlight=False)
        yield
        return
    with suppress_console_logs(), _console.status(f"[cyan]{text}[/cyan]", spinner="dots"):
        yield
