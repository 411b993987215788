"""Command: project initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from notectl.commands._base import NotectlCommand
from notectl.services.init import InitService

if TYPE_CHECKING:
    from notectl.commands._context import AppContext

_INIT_EXAMPLES = """\
  notectl init
  notectl init /path/to/engagement --name acme-webapp"""


@click.command("init", cls=NotectlCommand, examples=_INIT_EXAMPLES)
@click.argument("path", required=False, default=".")
@click.option("--name", default=None, help="Project name (defaults to the directory name).")
@click.pass_obj
def init_cmd(app: AppContext, path: str, name: str | None) -> None:
    """Initialize a new notectl project."""
    app.emit(InitService.init_project(Path(path).resolve(), name=name))
