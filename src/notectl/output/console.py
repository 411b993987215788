"""Rich Console factory and theme for notectl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

NOTECTL_THEME = Theme(
    {
        "nc.ok": "bold green",
        "nc.error": "bold red",
        "nc.warning": "bold yellow",
        "nc.op": "bold cyan",
        "nc.key": "dim",
        "nc.id": "bold blue",
        "nc.title": "bold",
        "nc.field": "magenta",
        "nc.node.default": "white",
        "nc.node.host": "green",
        "nc.node.methodology": "yellow",
        "nc.node.issuelib": "red",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=NOTECTL_THEME,
        no_color=no_color,
        highlight=False,
        # Field markers look like markup tags.
        markup=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_node(node_type: str) -> str:
    """Return the Rich style name for a node type (``host``, ``issuelib``...)."""
    return f"nc.node.{node_type}" if node_type else ""
