"""Tests for infrastructure query repository read models."""

from __future__ import annotations

from tests.conftest import create_issue, create_node, create_note

from notectl.infrastructure.repositories.query import QueryRepository, like_pattern
from notectl.infrastructure.repository import Repository
from notectl.services.notes import NoteService


class TestLikePattern:
    def test_plain_term(self) -> None:
        assert like_pattern("admin") == "%admin%"

    def test_wildcards_escaped(self) -> None:
        assert like_pattern("100%_x") == "%100\\%\\_x%"
        assert like_pattern("a\\b") == "%a\\\\b%"


class TestQueryRepository:
    def test_search_is_case_insensitive_substring(self, repository: Repository) -> None:
        node = create_node(repository, "host")
        hit = create_note(repository, node["id"], "#[Title]#\nSQL Injection")
        create_note(repository, node["id"], "#[Title]#\nXSS")

        rows = QueryRepository(repository.engine).search_notes("injection")
        assert [row["id"] for row in rows] == [hit["id"]]

    def test_search_folds_non_ascii_case(self, repository: Repository) -> None:
        node = create_node(repository, "host")
        hit = create_note(repository, node["id"], "#[Title]#\nÉCHEC DE CONNEXION")
        create_note(repository, node["id"], "#[Title]#\nechec")

        rows = QueryRepository(repository.engine).search_notes("échec")
        assert [row["id"] for row in rows] == [hit["id"]]

    def test_percent_matches_literally(self, repository: Repository) -> None:
        node = create_node(repository, "host")
        literal = create_note(repository, node["id"], "load at 100% capacity")
        create_note(repository, node["id"], "load at 1000 capacity")

        rows = QueryRepository(repository.engine).search_notes("100%")
        assert [row["id"] for row in rows] == [literal["id"]]

    def test_search_orders_by_last_update(self, repository: Repository) -> None:
        node = create_node(repository, "host")
        older = create_note(repository, node["id"], "match one")
        newer = create_note(repository, node["id"], "match two")
        NoteService(repository).set_field(older["id"], "Extra", "x")

        rows = QueryRepository(repository.engine).search_notes("match")
        assert [row["id"] for row in rows] == [older["id"], newer["id"]]

    def test_search_limit(self, repository: Repository) -> None:
        node = create_node(repository, "host")
        for i in range(3):
            create_note(repository, node["id"], f"term {i}")
        assert len(QueryRepository(repository.engine).search_notes("term", limit=2)) == 2

    def test_affected_nodes_are_distinct(self, repository: Repository) -> None:
        from notectl.services.issues import IssueService

        issue = create_issue(repository, "#[Title]#\nWeak TLS")
        a = create_node(repository, "beta")
        b = create_node(repository, "alpha")
        svc = IssueService(repository)
        for node_id in (a["id"], a["id"], b["id"]):
            assert svc.add_evidence(issue["id"], node_id).ok

        rows = QueryRepository(repository.engine).affected_nodes(issue["id"])
        assert [row["label"] for row in rows] == ["alpha", "beta"]

    def test_roots_only(self, repository: Repository) -> None:
        root = create_node(repository, "root")
        create_node(repository, "child", parent_id=root["id"])

        repo = QueryRepository(repository.engine)
        assert [row["label"] for row in repo.list_nodes(roots_only=True)] == ["root"]
        assert repo.count_children(root["id"]) == 1
