"""Command group: versions, activity feed, and revert."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from notectl.commands._base import NotectlGroup
from notectl.services.history import ITEM_TYPES, HistoryService

if TYPE_CHECKING:
    from notectl.commands._context import AppContext

_HISTORY_EXAMPLES = """\
  notectl history versions Note 7
  notectl history activity --limit 20
  notectl history revert Note 7 31"""

item_type_argument = click.argument("item_type", type=click.Choice(ITEM_TYPES))


@click.group(cls=NotectlGroup, examples=_HISTORY_EXAMPLES)
@click.pass_obj
def history(app: AppContext) -> None:
    """Inspect and undo changes."""


@history.command(examples="  notectl history versions Issue 12")
@item_type_argument
@click.argument("item_id", type=int)
@click.pass_obj
def versions(app: AppContext, item_type: str, item_id: int) -> None:
    """List the recorded versions of one item."""
    app.emit(HistoryService(app.repository).versions(item_type, item_id))


@history.command(
    examples="""\
  notectl history activity
  notectl history activity --type Note --id 7"""
)
@click.option("--type", "item_type", type=click.Choice(ITEM_TYPES), default=None)
@click.option("--id", "item_id", type=int, default=None)
@click.option("--limit", type=int, default=50, show_default=True, help="Max entries.")
@click.pass_obj
def activity(app: AppContext, item_type: str | None, item_id: int | None, limit: int) -> None:
    """Show who changed what, newest first."""
    app.emit(HistoryService(app.repository).activities(item_type, item_id, limit=limit))


@history.command(examples="  notectl history revert Note 7 31")
@item_type_argument
@click.argument("item_id", type=int)
@click.argument("version_id", type=int)
@click.pass_obj
def revert(app: AppContext, item_type: str, item_id: int, version_id: int) -> None:
    """Restore the text an item had before VERSION_ID."""
    app.emit(HistoryService(app.repository).revert(item_type, item_id, version_id))
