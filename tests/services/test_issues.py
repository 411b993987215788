"""Tests for IssueService: the issue library, evidence, affected nodes."""

from __future__ import annotations

from tests.conftest import create_issue, create_node, create_note

from notectl.domain.content import NodeType
from notectl.infrastructure.repository import Repository
from notectl.services.issues import IssueService
from notectl.services.nodes import NodeService
from notectl.services.notes import NoteService
from notectl.services.result import INVALID_FIELD, NOT_FOUND


class TestCreateIssue:
    def test_lands_in_issue_library(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nSQL injection\n#[Rating]#\nHigh")
        library = NodeService(repository).issue_library().data
        assert issue["node_id"] == library["id"]
        assert library["type_id"] == NodeType.ISSUELIB
        assert issue["fields"]["Rating"] == "High"

    def test_library_created_once(self, repository: Repository) -> None:
        a = create_issue(repository, "#[Title]#\nA")
        b = create_issue(repository, "#[Title]#\nB")
        assert a["node_id"] == b["node_id"]

    def test_placeholder_title(self, repository: Repository) -> None:
        result = IssueService(repository).create_issue("no title here")
        assert result.data["title"] == "This issue doesn't provide a #[Title]# field"
        assert "Issue has no #[Title]# field" in result.warnings

    def test_from_template(self, repository: Repository) -> None:
        result = IssueService(repository).create_issue(
            template="issue", template_context={"title": "Weak TLS", "rating": "Low"}
        )
        assert result.ok
        assert result.data["fields"]["Rating"].strip() == "Low"
        assert list(result.data["fields"]) == [
            "Title",
            "Rating",
            "Description",
            "Mitigation",
            "References",
        ]


class TestReadIssues:
    def test_list_sorted_by_title(self, repository: Repository) -> None:
        create_issue(repository, "#[Title]#\nbeta")
        create_issue(repository, "#[Title]#\nAlpha")
        items = IssueService(repository).list_issues().data["items"]
        assert [item["title"] for item in items] == ["Alpha", "beta"]

    def test_list_empty_before_first_issue(self, repository: Repository) -> None:
        assert IssueService(repository).list_issues().data["count"] == 0

    def test_notes_are_not_issues(self, repository: Repository) -> None:
        node = create_node(repository, "host")
        note = create_note(repository, node["id"], "#[Title]#\nnote")
        create_issue(repository, "#[Title]#\nissue")
        svc = IssueService(repository)
        assert svc.get(note["id"]).error.code == NOT_FOUND  # type: ignore[union-attr]
        assert svc.list_issues().data["count"] == 1

    def test_search_scoped_to_issues(self, repository: Repository) -> None:
        node = create_node(repository, "host")
        create_note(repository, node["id"], "Directory listing on /backup")
        issue = create_issue(repository, "#[Title]#\nDirectory listing")
        result = IssueService(repository).search("directory")
        assert result.op == "search_issues"
        assert [item["id"] for item in result.data["items"]] == [issue["id"]]


class TestUpdateIssue:
    def test_update_text(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nOld")
        result = IssueService(repository).update_issue(issue["id"], text="#[Title]#\nNew")
        assert result.ok
        assert result.data["title"] == "New"

    def test_set_field(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nXSS\n#[Rating]#\nLow")
        result = IssueService(repository).set_field(issue["id"], "Rating", "High")
        assert result.op == "set_issue_field"
        assert result.data["text"] == "#[Title]#\nXSS\n#[Rating]#\nHigh"

    def test_note_service_cannot_edit_issue(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nXSS")
        assert not NoteService(repository).update_note(issue["id"], text="hijack").ok


class TestEvidence:
    def test_add_from_template(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nXSS")
        node = create_node(repository, "web01")
        result = IssueService(repository).add_evidence(issue["id"], node["id"])
        assert result.ok
        assert list(result.data["fields"]) == ["Location", "Output"]

    def test_add_with_content(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nXSS")
        node = create_node(repository, "web01")
        result = IssueService(repository).add_evidence(
            issue["id"], node["id"], "#[Location]#\n/search?q=\n#[Output]#\n<script>"
        )
        assert result.data["fields"]["Output"] == "<script>"

    def test_issue_library_rejected(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nXSS")
        result = IssueService(repository).add_evidence(issue["id"], issue["node_id"], "x")
        assert not result.ok

    def test_unknown_issue_and_node(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nXSS")
        node = create_node(repository, "web01")
        svc = IssueService(repository)
        assert svc.add_evidence(999, node["id"], "x").error.code == NOT_FOUND  # type: ignore[union-attr]
        assert svc.add_evidence(issue["id"], 999, "x").error.code == NOT_FOUND  # type: ignore[union-attr]

    def test_get_issue_includes_evidence_and_affected(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nXSS")
        web = create_node(repository, "web01", type_id=NodeType.HOST)
        svc = IssueService(repository)
        svc.add_evidence(issue["id"], web["id"], "#[Output]#\nfirst")
        svc.add_evidence(issue["id"], web["id"], "#[Output]#\nsecond")

        data = svc.get(issue["id"]).data
        assert [ev["fields"]["Output"] for ev in data["evidence"]] == ["first", "second"]
        assert data["affected"] == [
            {"id": web["id"], "label": "web01", "type": "host", "type_id": 1}
        ]

    def test_affected(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nXSS")
        svc = IssueService(repository)
        for label in ("web02", "web01"):
            node = create_node(repository, label)
            svc.add_evidence(issue["id"], node["id"], "x")
        result = svc.affected(issue["id"])
        assert result.op == "affected_nodes"
        assert [item["label"] for item in result.data["items"]] == ["web01", "web02"]

    def test_update_evidence_field(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nXSS")
        node = create_node(repository, "web01")
        svc = IssueService(repository)
        ev = svc.add_evidence(issue["id"], node["id"], "#[Location]#\n/a\n#[Output]#\nold").data
        result = svc.update_evidence(ev["id"], field=("Output", "new"))
        assert result.ok
        assert result.data["content"] == "#[Location]#\n/a\n#[Output]#\nnew"

    def test_update_evidence_bad_field(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nXSS")
        node = create_node(repository, "web01")
        svc = IssueService(repository)
        ev = svc.add_evidence(issue["id"], node["id"], "x").data
        result = svc.update_evidence(ev["id"], field=("", "v"))
        assert result.error is not None
        assert result.error.code == INVALID_FIELD

    def test_update_evidence_no_changes(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nXSS")
        node = create_node(repository, "web01")
        svc = IssueService(repository)
        ev = svc.add_evidence(issue["id"], node["id"], "same").data
        assert svc.update_evidence(ev["id"], content="same").warnings == ["No changes"]

    def test_delete_evidence(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nXSS")
        node = create_node(repository, "web01")
        svc = IssueService(repository)
        ev = svc.add_evidence(issue["id"], node["id"], "x").data
        assert svc.delete_evidence(ev["id"]).ok
        assert not svc.get_evidence(ev["id"]).ok
        assert svc.affected(issue["id"]).data["count"] == 0


class TestDeleteIssue:
    def test_removes_evidence(self, repository: Repository) -> None:
        issue = create_issue(repository, "#[Title]#\nXSS")
        node = create_node(repository, "web01")
        svc = IssueService(repository)
        ev = svc.add_evidence(issue["id"], node["id"], "x").data

        result = svc.delete_issue(issue["id"])
        assert result.ok
        assert not svc.get(issue["id"]).ok
        assert not svc.get_evidence(ev["id"]).ok
        assert NodeService(repository).get(node["id"]).data["evidence"] == []
