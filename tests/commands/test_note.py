"""Tests for the note command group."""

from __future__ import annotations

import json
from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from notectl.cli import cli
from notectl.commands.note import parse_vars


def _json(cli_runner: CliRunner, *args: str, input: str | None = None) -> dict:
    result = cli_runner.invoke(cli, ["--json", *args], input=input)
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


@pytest.fixture
def node_id(cli_runner: CliRunner, _isolated_project: None) -> str:
    return str(_json(cli_runner, "node", "add", "web01", "--type", "host")["data"]["id"])


class TestParseVars:
    def test_pairs(self) -> None:
        assert parse_vars(("title=Open ports", "x=a=b")) == {"title": "Open ports", "x": "a=b"}

    def test_missing_equals(self) -> None:
        with pytest.raises(click.BadParameter):
            parse_vars(("title",))


class TestNoteCommands:
    def test_add_text(self, cli_runner: CliRunner, node_id: str) -> None:
        data = _json(cli_runner, "note", "add", node_id, "--text", "#[Title]#\nnmap")
        assert data["data"]["title"] == "nmap"

    def test_add_warns_without_title(self, cli_runner: CliRunner, node_id: str) -> None:
        result = cli_runner.invoke(cli, ["note", "add", node_id, "--text", "untitled"])
        assert result.exit_code == 0
        assert "WARNING: Note has no #[Title]# field" in result.output

    def test_add_from_stdin(self, cli_runner: CliRunner, node_id: str) -> None:
        data = _json(cli_runner, "note", "add", node_id, "--file", "-", input="#[Title]#\npiped")
        assert data["data"]["fields"]["Title"] == "piped"

    def test_add_from_file(self, cli_runner: CliRunner, node_id: str, project_root: Path) -> None:
        scan = project_root / "scan.txt"
        scan.write_text("#[Title]#\nscan\n#[Ports]#\n22", encoding="utf-8")
        data = _json(cli_runner, "note", "add", node_id, "--file", str(scan))
        assert data["data"]["fields"] == {"Title": "scan", "Ports": "22"}

    def test_text_and_file_exclusive(self, cli_runner: CliRunner, node_id: str) -> None:
        result = cli_runner.invoke(
            cli, ["note", "add", node_id, "--text", "a", "--file", "-"], input="b"
        )
        assert result.exit_code == 2

    def test_add_from_template(self, cli_runner: CliRunner, node_id: str) -> None:
        data = _json(
            cli_runner, "note", "add", node_id, "--template", "basic_fields", "-V", "title=SSH"
        )
        assert data["data"]["title"].strip() == "SSH"

    def test_add_unknown_node(self, cli_runner: CliRunner, node_id: str) -> None:
        result = cli_runner.invoke(cli, ["note", "add", "999", "--text", "x"])
        assert result.exit_code == 1
        assert "No node found with ID: 999" in result.output

    def test_show_renders_fields(self, cli_runner: CliRunner, node_id: str) -> None:
        note = _json(cli_runner, "note", "add", node_id, "--text", "#[Title]#\nBanner\n#[Port]#\n22")
        result = cli_runner.invoke(cli, ["note", "show", str(note["data"]["id"])])
        assert result.exit_code == 0
        assert "#[Port]#" in result.output
        assert "Banner" in result.output

    def test_set_field(self, cli_runner: CliRunner, node_id: str) -> None:
        note = _json(cli_runner, "note", "add", node_id, "--text", "#[Title]#\nSomething")
        data = _json(cli_runner, "note", "set", str(note["data"]["id"]), "Title", "New title")
        assert data["data"]["text"] == "#[Title]#\nNew title"

    def test_set_requires_value(self, cli_runner: CliRunner, node_id: str) -> None:
        note = _json(cli_runner, "note", "add", node_id, "--text", "x")
        result = cli_runner.invoke(cli, ["note", "set", str(note["data"]["id"]), "Title"])
        assert result.exit_code == 2

    def test_edit_and_list(self, cli_runner: CliRunner, node_id: str) -> None:
        note = _json(cli_runner, "note", "add", node_id, "--text", "old")
        _json(cli_runner, "note", "edit", str(note["data"]["id"]), "--text", "#[Title]#\nnew")
        items = _json(cli_runner, "note", "list", node_id)["data"]["items"]
        assert [item["title"] for item in items] == ["new"]

    def test_search_order(self, cli_runner: CliRunner, node_id: str) -> None:
        first = _json(cli_runner, "note", "add", node_id, "--text", "First issue")["data"]
        second = _json(cli_runner, "note", "add", node_id, "--text", "Second issue")["data"]
        _json(cli_runner, "note", "edit", str(first["id"]), "--text", "First issue!")
        _json(cli_runner, "note", "edit", str(second["id"]), "--text", "Second issue!")

        data = _json(cli_runner, "note", "search", "issue")
        assert [item["id"] for item in data["data"]["items"]] == [second["id"], first["id"]]

    def test_rm(self, cli_runner: CliRunner, node_id: str) -> None:
        note = _json(cli_runner, "note", "add", node_id, "--text", "x")["data"]
        _json(cli_runner, "note", "rm", str(note["id"]))
        result = cli_runner.invoke(cli, ["note", "show", str(note["id"])])
        assert result.exit_code == 1

    def test_recent(self, cli_runner: CliRunner, node_id: str) -> None:
        _json(cli_runner, "note", "add", node_id, "--text", "fresh")
        assert _json(cli_runner, "note", "recent", "--days", "2")["data"]["count"] == 1

    def test_templates(self, cli_runner: CliRunner, node_id: str) -> None:
        result = cli_runner.invoke(cli, ["-q", "note", "templates"])
        assert result.exit_code == 0
        assert result.output.split() == ["basic_fields", "evidence", "issue"]
