"""Command group: notes attached to nodes."""

from __future__ import annotations

from typing import IO, TYPE_CHECKING

import click

from notectl.commands._base import NotectlGroup
from notectl.infrastructure.templates import list_note_templates
from notectl.services.notes import NoteService
from notectl.services.result import ServiceResult

if TYPE_CHECKING:
    from notectl.commands._context import AppContext

_NOTE_EXAMPLES = """\
  notectl note add 3 --template basic_fields -V title="Open ports"
  notectl note add 3 --text $'#[Title]#\\nnmap output'
  notectl note add 3 --file scan.txt --category Recon
  notectl note show 7
  notectl note set 7 Description "Only 22 and 443 are open."
  notectl note search "443"
  notectl note recent --days 7"""


def read_text(text: str | None, text_file: IO[str] | None) -> str | None:
    """Text from ``--text``, or the contents of ``--file`` (``-`` is stdin)."""
    if text is not None and text_file is not None:
        raise click.UsageError("--text and --file are mutually exclusive")
    if text_file is not None:
        return str(text_file.read())
    return text


def parse_vars(pairs: tuple[str, ...]) -> dict[str, str]:
    """``KEY=VALUE`` pairs from repeated ``-V`` options."""
    context: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="-V")
        context[key] = value
    return context


text_option = click.option("--text", default=None, help="Note text (field markup allowed).")
file_option = click.option(
    "--file",
    "text_file",
    type=click.File("r", encoding="utf-8"),
    default=None,
    help="Read the text from a file ('-' for stdin).",
)


@click.group(cls=NotectlGroup, examples=_NOTE_EXAMPLES)
@click.pass_obj
def note(app: AppContext) -> None:
    """Create, edit, and search notes."""


@note.command(
    examples="""\
  notectl note add 3 --text "Banner grabbed on port 22"
  notectl note add 3 --template basic_fields -V title=SSH -V description="OpenSSH 9.6"
  cat output.txt | notectl note add 3 --file -"""
)
@click.argument("node_id", type=int)
@text_option
@file_option
@click.option("--category", default=None, help="Category name (created on first use).")
@click.option("--template", default=None, help="Note template used when no text is given.")
@click.option("-V", "--var", "variables", multiple=True, help="Template variable KEY=VALUE.")
@click.pass_obj
def add(
    app: AppContext,
    node_id: int,
    text: str | None,
    text_file: IO[str] | None,
    category: str | None,
    template: str | None,
    variables: tuple[str, ...],
) -> None:
    """Add a note to a node."""
    body = read_text(text, text_file) or ""
    app.emit(
        NoteService(app.repository).create_note(
            node_id,
            body,
            category=category,
            template=template,
            template_context=parse_vars(variables),
        )
    )


@note.command(examples="  notectl note show 7")
@click.argument("note_id", type=int)
@click.pass_obj
def show(app: AppContext, note_id: int) -> None:
    """Show a note with its decoded fields."""
    app.emit(NoteService(app.repository).get(note_id))


@note.command("list", examples="  notectl note list 3")
@click.argument("node_id", type=int)
@click.pass_obj
def list_cmd(app: AppContext, node_id: int) -> None:
    """List the notes of a node."""
    app.emit(NoteService(app.repository).list_notes(node_id))


@note.command(
    examples="""\
  notectl note edit 7 --text "#[Title]#\\nRewritten"
  notectl note edit 7 --node 4
  notectl note edit 7 --category Recon"""
)
@click.argument("note_id", type=int)
@text_option
@file_option
@click.option("--category", default=None, help="Move to this category.")
@click.option("--node", "node_id", type=int, default=None, help="Move to this node.")
@click.pass_obj
def edit(
    app: AppContext,
    note_id: int,
    text: str | None,
    text_file: IO[str] | None,
    category: str | None,
    node_id: int | None,
) -> None:
    """Replace a note's text, or move it."""
    body = read_text(text, text_file)
    if body is None and category is None and node_id is None:
        click.echo("No changes specified. Use --help for options.", err=True)
        raise SystemExit(1)
    app.emit(
        NoteService(app.repository).update_note(
            note_id, text=body, category=category, node_id=node_id
        )
    )


@note.command(
    "set",
    examples="""\
  notectl note set 7 Title "Open ports"
  notectl note set 7 Output --file nmap.txt""",
)
@click.argument("note_id", type=int)
@click.argument("name")
@click.argument("value", required=False)
@file_option
@click.pass_obj
def set_cmd(
    app: AppContext,
    note_id: int,
    name: str,
    value: str | None,
    text_file: IO[str] | None,
) -> None:
    """Set one #[NAME]# field of a note, leaving the others untouched."""
    field_value = read_text(value, text_file)
    if field_value is None:
        raise click.UsageError("Give a VALUE or --file")
    app.emit(NoteService(app.repository).set_field(note_id, name, field_value))


@note.command(examples="  notectl note rm 7")
@click.argument("note_id", type=int)
@click.pass_obj
def rm(app: AppContext, note_id: int) -> None:
    """Delete a note."""
    app.emit(NoteService(app.repository).delete_note(note_id))


@note.command(
    examples="""\
  notectl note search "443"
  notectl --json note search "%" --limit 5"""
)
@click.argument("term")
@click.option("--limit", type=int, default=None, help="Max results.")
@click.pass_obj
def search(app: AppContext, term: str, limit: int | None) -> None:
    """Case-insensitive substring search, most recently updated first."""
    app.emit(NoteService(app.repository).search(term, limit=limit))


@note.command(
    examples="""\
  notectl note recent
  notectl note recent --created --days 7"""
)
@click.option("--created", is_flag=True, help="By creation time instead of last update.")
@click.option("--days", type=int, default=None, help="How far back to look.")
@click.pass_obj
def recent(app: AppContext, created: bool, days: int | None) -> None:
    """Notes changed (or created) recently."""
    app.emit(NoteService(app.repository).recent(created=created, days=days))


@note.command(examples="  notectl note templates")
@click.pass_obj
def templates(app: AppContext) -> None:
    """List the available note templates."""
    names = list_note_templates(root=app.settings.root)
    items = [{"id": name, "title": name} for name in names]
    app.emit(
        ServiceResult(
            ok=True,
            op="list_templates",
            data={"items": items, "count": len(items)},
        )
    )
