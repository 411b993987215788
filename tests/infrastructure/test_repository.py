"""Tests for Repository transactions and audit helpers."""

from __future__ import annotations

import json

import pytest
from sqlalchemy import select

from notectl.domain.content import NodeType
from notectl.infrastructure.database.schema import activities, categories, nodes, versions
from notectl.infrastructure.repository import Repository

STAMP = "2026-01-01T00:00:00.000000+00:00"
LATER = "2026-01-02T00:00:00.000000+00:00"


class TestLookups:
    def test_category_created_once(self, repository: Repository) -> None:
        with repository.transaction() as txn:
            first = txn.category_id("Recon", STAMP)
            second = txn.category_id("Recon", LATER)
        assert first == second
        with repository.engine.connect() as conn:
            names = conn.execute(select(categories.c.name)).scalars().all()
        assert names == ["Recon"]

    def test_issue_library_created_on_demand(self, repository: Repository) -> None:
        with repository.transaction() as txn:
            lib_id = txn.issue_library_id(STAMP)
            assert txn.issue_library_id(LATER) == lib_id
            row = txn.fetch_row(nodes, lib_id)
        assert row is not None
        assert row["type_id"] == NodeType.ISSUELIB
        assert row["label"] == "All issues"

    def test_fetch_missing_row(self, repository: Repository) -> None:
        with repository.transaction() as txn:
            assert txn.fetch_row(nodes, 404) is None


class TestHistoryHelpers:
    def test_record_version_serializes_previous_row(self, repository: Repository) -> None:
        with repository.transaction(author="alice") as txn:
            vid = txn.record_version("Note", 7, "update", STAMP, previous={"text": "old", "id": 7})
            row = txn.fetch_row(versions, vid)
        assert row is not None
        assert row["whodunnit"] == "alice"
        assert json.loads(row["object"]) == {"id": 7, "text": "old"}

    def test_create_version_has_no_object(self, repository: Repository) -> None:
        with repository.transaction() as txn:
            row = txn.fetch_row(versions, txn.record_version("Note", 1, "create", STAMP))
        assert row is not None
        assert row["object"] is None

    def test_author_defaults_to_settings(self, repository: Repository) -> None:
        with repository.transaction() as txn:
            aid = txn.track_activity("Issue", 3, "update", STAMP)
            row = txn.fetch_row(activities, aid)
        assert row is not None
        assert row["user"] == "tester"
        assert row["action"] == "update"

    def test_touch_node(self, repository: Repository) -> None:
        with repository.transaction() as txn:
            node_id = txn.insert_row(nodes, {"label": "h", "created_at": STAMP, "updated_at": STAMP})
            txn.touch_node(node_id, LATER)
            row = txn.fetch_row(nodes, node_id)
        assert row is not None
        assert row["updated_at"] == LATER


class TestTransaction:
    def test_rollback_discards_audit_rows(self, repository: Repository) -> None:
        with pytest.raises(RuntimeError), repository.transaction() as txn:
            txn.category_id("Doomed", STAMP)
            txn.track_activity("Note", 1, "create", STAMP)
            raise RuntimeError("boom")

        with repository.engine.connect() as conn:
            assert conn.execute(select(categories)).first() is None
            assert conn.execute(select(activities)).first() is None
