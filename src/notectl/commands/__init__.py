"""Subcommand modules for notectl.

Provides register_commands() which uses deferred imports to keep
``notectl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the command groups and standalone commands on the root group."""
    # --- Groups ---
    from notectl.commands.history import history
    from notectl.commands.issue import issue
    from notectl.commands.node import node
    from notectl.commands.note import note

    cli.add_command(node)
    cli.add_command(note)
    cli.add_command(issue)
    cli.add_command(history)

    # --- Standalone commands ---
    from notectl.commands.init_cmd import init_cmd

    cli.add_command(init_cmd)
