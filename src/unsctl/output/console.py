"""Rich Console factory and theme for unsctl output.

Consoles render into a StringIO buffer so formatters keep returning
``str``. In non-TTY environments (tests, pipes) Rich drops color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

UNS_THEME = Theme(
    {
        "uns.ok": "bold green",
        "uns.error": "bold red",
        "uns.warning": "bold yellow",
        "uns.op": "bold cyan",
        "uns.key": "dim",
        "uns.address": "bold blue",
        "uns.block": "magenta",
        "uns.tag": "yellow",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=UNS_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
