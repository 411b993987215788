"""Tests for NodeService: the project tree."""

from __future__ import annotations

from tests.conftest import create_issue, create_node, create_note

from notectl.domain.content import NodeType
from notectl.infrastructure.repository import Repository
from notectl.services.history import HistoryService
from notectl.services.issues import IssueService
from notectl.services.nodes import NodeService
from notectl.services.result import HAS_CHILDREN, NOT_FOUND, VALIDATION_FAILED


class TestCreateNode:
    def test_root_node(self, repository: Repository) -> None:
        node = create_node(repository, "Internal network")
        assert node["parent_id"] is None
        assert node["type"] == "default"

    def test_child_node(self, repository: Repository) -> None:
        parent = create_node(repository, "net")
        child = create_node(repository, "10.0.0.5", parent_id=parent["id"], type_id=NodeType.HOST)
        assert child["parent_id"] == parent["id"]
        assert child["type"] == "host"

    def test_blank_label(self, repository: Repository) -> None:
        result = NodeService(repository).create_node("   ")
        assert result.error is not None
        assert result.error.code == VALIDATION_FAILED

    def test_unknown_parent(self, repository: Repository) -> None:
        result = NodeService(repository).create_node("x", parent_id=77)
        assert result.error is not None
        assert result.error.code == NOT_FOUND

    def test_issue_library_type_rejected(self, repository: Repository) -> None:
        assert not NodeService(repository).create_node("lib", type_id=NodeType.ISSUELIB).ok


class TestUpdateNode:
    def test_rename(self, repository: Repository) -> None:
        node = create_node(repository, "old")
        result = NodeService(repository).update_node(node["id"], label="new")
        assert result.data["label"] == "new"
        assert result.data["fields_changed"] == ["label"]

    def test_move_and_back_to_root(self, repository: Repository) -> None:
        a = create_node(repository, "a")
        b = create_node(repository, "b")
        svc = NodeService(repository)
        assert svc.update_node(b["id"], parent_id=a["id"]).data["parent_id"] == a["id"]
        assert svc.update_node(b["id"], to_root=True).data["parent_id"] is None

    def test_cannot_move_below_itself(self, repository: Repository) -> None:
        a = create_node(repository, "a")
        b = create_node(repository, "b", parent_id=a["id"])
        svc = NodeService(repository)
        assert not svc.update_node(a["id"], parent_id=b["id"]).ok
        assert not svc.update_node(a["id"], parent_id=a["id"]).ok

    def test_issue_library_cannot_move(self, repository: Repository) -> None:
        parent = create_node(repository, "a")
        library = NodeService(repository).issue_library().data
        assert not NodeService(repository).update_node(library["id"], parent_id=parent["id"]).ok

    def test_no_changes(self, repository: Repository) -> None:
        node = create_node(repository, "same")
        result = NodeService(repository).update_node(node["id"], label="same")
        assert result.warnings == ["No changes"]


class TestReadNodes:
    def test_get_includes_children_notes_evidence(self, repository: Repository) -> None:
        host = create_node(repository, "web01", type_id=NodeType.HOST)
        create_node(repository, "port 443", parent_id=host["id"])
        create_note(repository, host["id"], "#[Title]#\nBanner")
        issue = create_issue(repository, "#[Title]#\nOutdated server")
        IssueService(repository).add_evidence(issue["id"], host["id"], "#[Output]#\nApache/2.2")

        data = NodeService(repository).get(host["id"]).data
        assert [child["label"] for child in data["children"]] == ["port 443"]
        assert [note["title"] for note in data["notes"]] == ["Banner"]
        assert data["evidence"][0]["issue_title"] == "Outdated server"

    def test_list_roots_with_child_counts(self, repository: Repository) -> None:
        parent = create_node(repository, "b-net")
        create_node(repository, "a-net")
        create_node(repository, "host", parent_id=parent["id"])
        items = NodeService(repository).list_nodes().data["items"]
        assert [(item["label"], item["children"]) for item in items] == [
            ("a-net", 0),
            ("b-net", 1),
        ]

    def test_position_orders_siblings(self, repository: Repository) -> None:
        create_node(repository, "z", position=0)
        create_node(repository, "a", position=1)
        items = NodeService(repository).list_nodes().data["items"]
        assert [item["label"] for item in items] == ["z", "a"]

    def test_get_missing(self, repository: Repository) -> None:
        assert NodeService(repository).get(1234).error.code == NOT_FOUND  # type: ignore[union-attr]


class TestDeleteNode:
    def test_removes_notes_and_evidence(self, repository: Repository) -> None:
        host = create_node(repository, "web01")
        note = create_note(repository, host["id"], "x")
        issue = create_issue(repository, "#[Title]#\nXSS")
        IssueService(repository).add_evidence(issue["id"], host["id"], "x")

        result = NodeService(repository).delete_node(host["id"])
        assert result.ok
        assert result.data == {"id": host["id"], "notes": 1, "evidence": 1}
        assert IssueService(repository).affected(issue["id"]).data["count"] == 0
        events = [v["event"] for v in HistoryService(repository).versions("Note", note["id"]).data["items"]]
        assert events == ["create", "destroy"]

    def test_refuses_with_children(self, repository: Repository) -> None:
        parent = create_node(repository, "net")
        create_node(repository, "host", parent_id=parent["id"])
        result = NodeService(repository).delete_node(parent["id"])
        assert result.error is not None
        assert result.error.code == HAS_CHILDREN

    def test_refuses_issue_library(self, repository: Repository) -> None:
        library = NodeService(repository).issue_library().data
        assert not NodeService(repository).delete_node(library["id"]).ok
