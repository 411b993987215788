"""Tests for note template loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from jinja2 import TemplateNotFound

from notectl.domain.fields import decode_fields
from notectl.infrastructure.templates import list_note_templates, render_note_template


class TestListTemplates:
    def test_packaged_templates(self) -> None:
        assert list_note_templates() == ["basic_fields", "evidence", "issue"]

    def test_project_templates_included(self, tmp_path: Path) -> None:
        override_dir = tmp_path / ".notectl" / "templates" / "notes"
        override_dir.mkdir(parents=True)
        (override_dir / "webapp.txt.j2").write_text("#[Title]#\n", encoding="utf-8")
        (override_dir / "README.md").write_text("ignored", encoding="utf-8")

        assert "webapp" in list_note_templates(root=tmp_path)
        assert "README" not in list_note_templates(root=tmp_path)


class TestRenderTemplate:
    def test_issue_template_fields(self) -> None:
        text = render_note_template("issue", title="Open redirect")
        fields = decode_fields(text)
        assert fields["Title"].strip() == "Open redirect"
        assert fields["Rating"].strip() == "Medium"
        assert list(fields) == ["Title", "Rating", "Description", "Mitigation", "References"]

    def test_project_override_wins(self, tmp_path: Path) -> None:
        override_dir = tmp_path / ".notectl" / "templates" / "notes"
        override_dir.mkdir(parents=True)
        (override_dir / "issue.txt.j2").write_text("#[Title]#\n{{ title }}", encoding="utf-8")

        assert render_note_template("issue", root=tmp_path, title="X") == "#[Title]#\nX"

    def test_unknown_template(self) -> None:
        with pytest.raises(TemplateNotFound):
            render_note_template("missing")
