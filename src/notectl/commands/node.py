"""Command group: the project node tree."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from notectl.commands._base import NotectlGroup
from notectl.domain.content import NodeType
from notectl.services.nodes import NodeService

if TYPE_CHECKING:
    from notectl.commands._context import AppContext

_NODE_EXAMPLES = """\
  notectl node add "10.0.0.5" --type host
  notectl node add "Port 443" --parent 1
  notectl node list
  notectl node show 2
  notectl node edit 2 --label "https" --parent 3
  notectl node rm 2"""

# ISSUELIB is managed by the issue commands.
_NODE_TYPES = [t.name.lower() for t in NodeType if t is not NodeType.ISSUELIB]


@click.group(cls=NotectlGroup, examples=_NODE_EXAMPLES)
@click.pass_obj
def node(app: AppContext) -> None:
    """Create, inspect, and reorganize nodes."""


@node.command(
    examples="""\
  notectl node add "Web server"
  notectl node add "10.0.0.5" --type host --parent 1 --position 2"""
)
@click.argument("label")
@click.option("--parent", "parent_id", type=int, default=None, help="Parent node ID.")
@click.option(
    "--type",
    "node_type",
    type=click.Choice(_NODE_TYPES),
    default="default",
    help="Node type.",
)
@click.option("--position", type=int, default=0, help="Sort position among siblings.")
@click.pass_obj
def add(
    app: AppContext,
    label: str,
    parent_id: int | None,
    node_type: str,
    position: int,
) -> None:
    """Create a node."""
    app.emit(
        NodeService(app.repository).create_node(
            label,
            parent_id=parent_id,
            type_id=NodeType[node_type.upper()],
            position=position,
        )
    )


@node.command(
    "list",
    examples="""\
  notectl node list
  notectl node list --parent 1""",
)
@click.option("--parent", "parent_id", type=int, default=None, help="List children of a node.")
@click.pass_obj
def list_cmd(app: AppContext, parent_id: int | None) -> None:
    """List top-level nodes, or the children of one node."""
    app.emit(NodeService(app.repository).list_nodes(parent_id))


@node.command(examples="  notectl node show 2")
@click.argument("node_id", type=int)
@click.pass_obj
def show(app: AppContext, node_id: int) -> None:
    """Show a node with its children, notes, and evidence."""
    app.emit(NodeService(app.repository).get(node_id))


@node.command(
    examples="""\
  notectl node edit 2 --label "https"
  notectl node edit 2 --parent 5
  notectl node edit 2 --root"""
)
@click.argument("node_id", type=int)
@click.option("--label", default=None, help="New label.")
@click.option("--parent", "parent_id", type=int, default=None, help="Move under this node.")
@click.option("--root", "to_root", is_flag=True, help="Move to the top level.")
@click.option("--position", type=int, default=None, help="New sort position.")
@click.pass_obj
def edit(
    app: AppContext,
    node_id: int,
    label: str | None,
    parent_id: int | None,
    to_root: bool,
    position: int | None,
) -> None:
    """Rename, reorder, or move a node."""
    if label is None and parent_id is None and not to_root and position is None:
        click.echo("No changes specified. Use --help for options.", err=True)
        raise SystemExit(1)
    if to_root and parent_id is not None:
        raise click.UsageError("--root and --parent are mutually exclusive")
    app.emit(
        NodeService(app.repository).update_node(
            node_id,
            label=label,
            parent_id=parent_id,
            to_root=to_root,
            position=position,
        )
    )


@node.command(examples="  notectl node rm 2")
@click.argument("node_id", type=int)
@click.pass_obj
def rm(app: AppContext, node_id: int) -> None:
    """Delete a node that has no children, with its notes and evidence."""
    app.emit(NodeService(app.repository).delete_node(node_id))


@node.command(examples="  notectl node library")
@click.pass_obj
def library(app: AppContext) -> None:
    """Show the issue library node."""
    app.emit(NodeService(app.repository).issue_library())
