"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from notectl.output.console import create_console, get_output, style_for_node

if TYPE_CHECKING:
    from collections.abc import Callable

    from rich.console import Console

    from notectl.services.result import ServiceResult

    Renderer = Callable[..., None]


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    # Lists print one id per line
    items = result.data.get("items")
    if isinstance(items, list):
        return "\n".join(str(item["id"]) for item in items if isinstance(item, dict))

    if "id" in result.data:
        return str(result.data["id"])
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line."""
    label = Text("OK", style="nc.ok")
    op = Text(f"  {result.op}", style="nc.op")
    console.print(label, op)


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="nc.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="nc.id")
    elif key in ("title", "label"):
        v = Text(str(value), style="nc.title")
    elif isinstance(value, (dict, list)):
        v = Text(json.dumps(value, separators=(",", ":")))
    else:
        v = Text(str(value))
    console.print(k, v)


def _fields_block(fields: dict[str, str]) -> Text:
    """Decoded fields as marker headings followed by their values."""
    text = Text()
    for i, (name, value) in enumerate(fields.items()):
        if i:
            text.append("\n\n")
        text.append(f"#[{name}]#", style="nc.field")
        text.append("\n")
        text.append(value.rstrip("\n"))
    return text


def _item_table(
    items: list[dict[str, Any]],
    *,
    title_key: str = "title",
    extra_columns: list[str] | None = None,
    verbose: bool = False,
) -> Table:
    """Build a Rich Table for a list of notes, issues or nodes."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="nc.id", no_wrap=True)
    table.add_column(title_key.title(), style="nc.title")
    for col in extra_columns or []:
        table.add_column(col.replace("_", " ").title())
    if verbose:
        table.add_column("Updated", style="dim")

    for item in items:
        row = [str(item.get("id", "")), str(item.get(title_key, ""))]
        for col in extra_columns or []:
            row.append(str(item.get(col, "")))
        if verbose:
            row.append(str(item.get("updated_at", "")))
        table.add_row(*row)
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="nc.error")
    op = Text(f"  {result.op}:", style="nc.op")
    console.print(label, op, msg)

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Mutation renderers ────────────────────────────────────────────────


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render create/update/delete results."""
    _status_line(console, result)
    mutation_keys = (
        "id",
        "node_id",
        "issue_id",
        "label",
        "type",
        "title",
        "notes",
        "evidence",
        "fields_changed",
        "reverted_to",
    )
    for key in mutation_keys:
        if key in result.data and not isinstance(result.data[key], dict):
            _field(console, key, result.data[key])
    if verbose and "updated_at" in result.data:
        _field(console, "updated_at", result.data["updated_at"])


# ── Query renderers ───────────────────────────────────────────────────


def _render_content(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a note, issue or evidence as a panel of its fields."""
    d = result.data
    heading = d.get("title") or result.op.removeprefix("get_")
    body = _fields_block(d.get("fields") or {})

    meta: list[str] = []
    for key in ("node_id", "issue_id", "author"):
        if d.get(key) is not None:
            meta.append(f"{key}: {d[key]}")
    if verbose:
        meta.extend(f"{key}: {d[key]}" for key in ("created_at", "updated_at") if key in d)
    if meta:
        body = Text("\n".join(meta), style="dim") + Text("\n\n") + body

    console.print(Panel(body, title=Text(f"{d.get('id', '?')}: {heading}"), expand=False))

    affected = d.get("affected") or []
    if affected:
        console.print(Text("  affected:", style="nc.key"))
        for node in affected:
            console.print(f"    {node['id']}  {node['label']}")
    evidence = d.get("evidence") or []
    if evidence and verbose:
        console.print(Text("  evidence:", style="nc.key"))
        for item in evidence:
            console.print(f"    {item['id']}  node {item['node_id']}")


def _render_node(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render get_node: the node, its children, notes and evidence."""
    d = result.data
    style = style_for_node(str(d.get("type", "")))
    lines = [f"type: {d.get('type')}", f"parent_id: {d.get('parent_id')}"]
    if verbose:
        lines.append(f"updated_at: {d.get('updated_at')}")
    console.print(
        Panel(
            "\n".join(lines),
            title=Text(f"{d.get('id', '?')}: {d.get('label', '')}"),
            border_style=style or "dim",
            expand=False,
        )
    )

    if d.get("children"):
        console.print(Text("children", style="nc.key"))
        console.print(
            _item_table(d["children"], title_key="label", extra_columns=["type"], verbose=verbose)
        )
    if d.get("notes"):
        console.print(Text("notes", style="nc.key"))
        console.print(_item_table(d["notes"], verbose=verbose))
    if d.get("evidence"):
        console.print(Text("evidence", style="nc.key"))
        console.print(
            _item_table(
                d["evidence"],
                title_key="issue_title",
                extra_columns=["issue_id"],
                verbose=verbose,
            )
        )


def _render_item_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render list and search results as a table."""
    items = result.data.get("items", [])
    if items and "label" in items[0]:
        extra = ["type", "children"] if "children" in items[0] else ["type"]
        table = _item_table(items, title_key="label", extra_columns=extra, verbose=verbose)
    else:
        extra = ["node_id"] if items and "node_id" in items[0] else []
        table = _item_table(items, extra_columns=extra, verbose=verbose)
    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} items")


def _render_versions(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    table = Table(
        show_header=True,
        pad_edge=False,
        expand=False,
        title=f"{d.get('item_type')} {d.get('item_id')}",
    )
    table.add_column("Version", style="nc.id", no_wrap=True)
    table.add_column("Event")
    table.add_column("Who")
    table.add_column("When", style="dim")
    for item in d.get("items", []):
        table.add_row(
            str(item["id"]),
            str(item["event"]),
            str(item["whodunnit"] or ""),
            str(item["created_at"]),
        )
    console.print(table)


def _render_activities(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("When", style="dim")
    table.add_column("Who")
    table.add_column("Action")
    table.add_column("Item", style="nc.id")
    for item in result.data.get("items", []):
        table.add_row(
            str(item["created_at"]),
            str(item["user"] or ""),
            str(item["action"]),
            f"{item['item_type']} {item['item_id']}",
        )
    console.print(table)


def _render_init(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render init_project results with the project details."""
    _status_line(console, result)
    d = result.data
    for key in ("root", "name", "config_path", "database"):
        if key in d:
            _field(console, key, d[key])
    templates = d.get("templates", [])
    if templates:
        _field(console, "templates", ", ".join(templates))


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Renderer] = {
    # Nodes
    "create_node": _render_mutation,
    "update_node": _render_mutation,
    "delete_node": _render_mutation,
    "get_node": _render_node,
    "list_nodes": _render_item_table,
    "issue_library": _render_mutation,
    # Notes
    "create_note": _render_mutation,
    "update_note": _render_mutation,
    "set_note_field": _render_mutation,
    "delete_note": _render_mutation,
    "get_note": _render_content,
    "list_notes": _render_item_table,
    "search_notes": _render_item_table,
    "recent_notes": _render_item_table,
    # Issues and evidence
    "create_issue": _render_mutation,
    "update_issue": _render_mutation,
    "set_issue_field": _render_mutation,
    "delete_issue": _render_mutation,
    "get_issue": _render_content,
    "list_issues": _render_item_table,
    "search_issues": _render_item_table,
    "affected_nodes": _render_item_table,
    "add_evidence": _render_mutation,
    "update_evidence": _render_mutation,
    "delete_evidence": _render_mutation,
    "get_evidence": _render_content,
    # History
    "versions": _render_versions,
    "activities": _render_activities,
    "revert": _render_mutation,
    # Init
    "init_project": _render_init,
    "list_templates": _render_item_table,
}
