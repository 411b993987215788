"""Command group: issues, evidence, and affected nodes."""

from __future__ import annotations

from typing import IO, TYPE_CHECKING

import click

from notectl.commands._base import NotectlGroup
from notectl.commands.note import file_option, parse_vars, read_text, text_option
from notectl.services.issues import IssueService

if TYPE_CHECKING:
    from notectl.commands._context import AppContext

_ISSUE_EXAMPLES = """\
  notectl issue add --template issue -V title="Directory listings"
  notectl issue list
  notectl issue show 12
  notectl issue set 12 Rating High
  notectl issue evidence add 12 3 --file proof.txt
  notectl issue affected 12"""


@click.group(cls=NotectlGroup, examples=_ISSUE_EXAMPLES)
@click.pass_obj
def issue(app: AppContext) -> None:
    """Manage the issue library and its evidence."""


@issue.command(
    examples="""\
  notectl issue add --text $'#[Title]#\\nWeak TLS ciphers'
  notectl issue add --template issue -V title="Weak TLS ciphers" -V rating=Medium"""
)
@text_option
@file_option
@click.option("--template", default=None, help="Note template used when no text is given.")
@click.option("-V", "--var", "variables", multiple=True, help="Template variable KEY=VALUE.")
@click.pass_obj
def add(
    app: AppContext,
    text: str | None,
    text_file: IO[str] | None,
    template: str | None,
    variables: tuple[str, ...],
) -> None:
    """Add an issue to the issue library."""
    body = read_text(text, text_file) or ""
    app.emit(
        IssueService(app.repository).create_issue(
            body,
            template=template,
            template_context=parse_vars(variables),
        )
    )


@issue.command("list", examples="  notectl issue list")
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List every issue, by title."""
    app.emit(IssueService(app.repository).list_issues())


@issue.command(examples="  notectl issue show 12")
@click.argument("issue_id", type=int)
@click.pass_obj
def show(app: AppContext, issue_id: int) -> None:
    """Show an issue with its evidence and affected nodes."""
    app.emit(IssueService(app.repository).get(issue_id))


@issue.command(examples="  notectl issue edit 12 --file issue.txt")
@click.argument("issue_id", type=int)
@text_option
@file_option
@click.pass_obj
def edit(
    app: AppContext,
    issue_id: int,
    text: str | None,
    text_file: IO[str] | None,
) -> None:
    """Replace the whole text of an issue."""
    body = read_text(text, text_file)
    if body is None:
        click.echo("No changes specified. Use --help for options.", err=True)
        raise SystemExit(1)
    app.emit(IssueService(app.repository).update_issue(issue_id, text=body))


@issue.command("set", examples='  notectl issue set 12 Rating "High"')
@click.argument("issue_id", type=int)
@click.argument("name")
@click.argument("value", required=False)
@file_option
@click.pass_obj
def set_cmd(
    app: AppContext,
    issue_id: int,
    name: str,
    value: str | None,
    text_file: IO[str] | None,
) -> None:
    """Set one #[NAME]# field of an issue."""
    field_value = read_text(value, text_file)
    if field_value is None:
        raise click.UsageError("Give a VALUE or --file")
    app.emit(IssueService(app.repository).set_field(issue_id, name, field_value))


@issue.command(examples="  notectl issue rm 12")
@click.argument("issue_id", type=int)
@click.pass_obj
def rm(app: AppContext, issue_id: int) -> None:
    """Delete an issue and all of its evidence."""
    app.emit(IssueService(app.repository).delete_issue(issue_id))


@issue.command(examples='  notectl issue search "tls"')
@click.argument("term")
@click.option("--limit", type=int, default=None, help="Max results.")
@click.pass_obj
def search(app: AppContext, term: str, limit: int | None) -> None:
    """Case-insensitive substring search over issues."""
    app.emit(IssueService(app.repository).search(term, limit=limit))


@issue.command(examples="  notectl issue affected 12")
@click.argument("issue_id", type=int)
@click.pass_obj
def affected(app: AppContext, issue_id: int) -> None:
    """List the nodes that hold evidence for an issue."""
    app.emit(IssueService(app.repository).affected(issue_id))


# --- evidence subgroup ---


@issue.group(cls=NotectlGroup)
@click.pass_obj
def evidence(app: AppContext) -> None:
    """Attach proof of an issue to affected nodes."""


@evidence.command(
    "add",
    examples="""\
  notectl issue evidence add 12 3
  notectl issue evidence add 12 3 --text $'#[Location]#\\n/admin\\n#[Output]#\\n200 OK'""",
)
@click.argument("issue_id", type=int)
@click.argument("node_id", type=int)
@click.option("--text", "content", default=None, help="Evidence content (field markup allowed).")
@file_option
@click.pass_obj
def evidence_add(
    app: AppContext,
    issue_id: int,
    node_id: int,
    content: str | None,
    text_file: IO[str] | None,
) -> None:
    """Add evidence of ISSUE_ID on NODE_ID."""
    body = read_text(content, text_file) or ""
    app.emit(IssueService(app.repository).add_evidence(issue_id, node_id, body))


@evidence.command("show", examples="  notectl issue evidence show 4")
@click.argument("evidence_id", type=int)
@click.pass_obj
def evidence_show(app: AppContext, evidence_id: int) -> None:
    """Show one piece of evidence."""
    app.emit(IssueService(app.repository).get_evidence(evidence_id))


@evidence.command(
    "set",
    examples="""\
  notectl issue evidence set 4 Output --file response.txt""",
)
@click.argument("evidence_id", type=int)
@click.argument("name")
@click.argument("value", required=False)
@file_option
@click.pass_obj
def evidence_set(
    app: AppContext,
    evidence_id: int,
    name: str,
    value: str | None,
    text_file: IO[str] | None,
) -> None:
    """Set one #[NAME]# field of a piece of evidence."""
    field_value = read_text(value, text_file)
    if field_value is None:
        raise click.UsageError("Give a VALUE or --file")
    app.emit(
        IssueService(app.repository).update_evidence(evidence_id, field=(name, field_value))
    )


@evidence.command("rm", examples="  notectl issue evidence rm 4")
@click.argument("evidence_id", type=int)
@click.pass_obj
def evidence_rm(app: AppContext, evidence_id: int) -> None:
    """Delete one piece of evidence."""
    app.emit(IssueService(app.repository).delete_evidence(evidence_id))
