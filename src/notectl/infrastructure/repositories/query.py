"""Read-oriented repository for listing, search, and history queries."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.engine import Engine

from notectl.infrastructure.database.schema import (
    activities,
    categories,
    evidence,
    nodes,
    notes,
    versions,
)

_LIKE_ESCAPE = "\\"


def like_pattern(term: str) -> str:
    """Substring LIKE pattern for *term* with ``%`` and ``_`` escaped."""
    escaped = (
        term.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", f"{_LIKE_ESCAPE}%")
        .replace("_", f"{_LIKE_ESCAPE}_")
    )
    return f"%{escaped}%"


class QueryRepository:
    """Encapsulates SQL for read-side operations."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _rows(self, stmt: Select[Any]) -> list[dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [dict(row) for row in rows]

    def _one(self, stmt: Select[Any]) -> dict[str, Any] | None:
        with self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return dict(row) if row is not None else None

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def category_id(self, name: str) -> int | None:
        """Id of the category called *name*, if it exists yet."""
        row = self._one(select(categories.c.id).where(categories.c.name == name))
        return int(row["id"]) if row is not None else None

    def get_node(self, node_id: int) -> dict[str, Any] | None:
        return self._one(select(nodes).where(nodes.c.id == node_id))

    def get_note(self, note_id: int) -> dict[str, Any] | None:
        return self._one(select(notes).where(notes.c.id == note_id))

    def get_evidence(self, evidence_id: int) -> dict[str, Any] | None:
        return self._one(select(evidence).where(evidence.c.id == evidence_id))

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_nodes(
        self,
        *,
        parent_id: int | None = None,
        roots_only: bool = False,
    ) -> list[dict[str, Any]]:
        """Children of *parent_id*, top-level nodes, or every node."""
        stmt = select(nodes)
        if parent_id is not None:
            stmt = stmt.where(nodes.c.parent_id == parent_id)
        elif roots_only:
            stmt = stmt.where(nodes.c.parent_id.is_(None))
        return self._rows(stmt.order_by(nodes.c.position, nodes.c.label, nodes.c.id))

    def count_children(self, node_id: int) -> int:
        return len(self._rows(select(nodes.c.id).where(nodes.c.parent_id == node_id)))

    def list_notes(
        self,
        *,
        node_id: int | None = None,
        category_id: int | None = None,
        exclude_category_id: int | None = None,
    ) -> list[dict[str, Any]]:
        """Notes filtered by node and category, oldest first."""
        stmt = select(notes)
        if node_id is not None:
            stmt = stmt.where(notes.c.node_id == node_id)
        if category_id is not None:
            stmt = stmt.where(notes.c.category_id == category_id)
        if exclude_category_id is not None:
            stmt = stmt.where(notes.c.category_id != exclude_category_id)
        return self._rows(stmt.order_by(notes.c.created_at, notes.c.id))

    def list_evidence(
        self,
        *,
        issue_id: int | None = None,
        node_id: int | None = None,
    ) -> list[dict[str, Any]]:
        stmt = select(evidence)
        if issue_id is not None:
            stmt = stmt.where(evidence.c.issue_id == issue_id)
        if node_id is not None:
            stmt = stmt.where(evidence.c.node_id == node_id)
        return self._rows(stmt.order_by(evidence.c.created_at, evidence.c.id))

    def affected_nodes(self, issue_id: int) -> list[dict[str, Any]]:
        """Distinct nodes holding evidence for *issue_id*, by label."""
        holders = select(evidence.c.node_id).where(evidence.c.issue_id == issue_id)
        stmt = select(nodes).where(nodes.c.id.in_(holders)).order_by(nodes.c.label, nodes.c.id)
        return self._rows(stmt)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search_notes(
        self,
        term: str,
        *,
        category_id: int | None = None,
        exclude_category_id: int | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Case-insensitive substring search over note text.

        Folding relies on the Unicode ``lower()`` the engine registers.

        Results are ordered by ``updated_at`` descending; equal timestamps
        fall back to the newest id first.
        """
        stmt = select(
            notes.c.id,
            notes.c.text,
            notes.c.node_id,
            notes.c.category_id,
            notes.c.updated_at,
        ).where(notes.c.text.ilike(like_pattern(term), escape=_LIKE_ESCAPE))
        if category_id is not None:
            stmt = stmt.where(notes.c.category_id == category_id)
        if exclude_category_id is not None:
            stmt = stmt.where(notes.c.category_id != exclude_category_id)
        stmt = stmt.order_by(notes.c.updated_at.desc(), notes.c.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return self._rows(stmt)

    def recent_notes(
        self,
        since: str,
        *,
        column: str = "updated_at",
        exclude_category_id: int | None = None,
    ) -> list[dict[str, Any]]:
        """Notes created or updated after *since* (``column`` picks which)."""
        col = notes.c[column]
        stmt = select(notes).where(col > since)
        if exclude_category_id is not None:
            stmt = stmt.where(notes.c.category_id != exclude_category_id)
        return self._rows(stmt.order_by(col.desc(), notes.c.id.desc()))

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def list_versions(self, item_type: str, item_id: int) -> list[dict[str, Any]]:
        stmt = (
            select(versions)
            .where(versions.c.item_type == item_type, versions.c.item_id == item_id)
            .order_by(versions.c.id)
        )
        return self._rows(stmt)

    def get_version(self, version_id: int) -> dict[str, Any] | None:
        return self._one(select(versions).where(versions.c.id == version_id))

    def list_activities(
        self,
        item_type: str | None = None,
        item_id: int | None = None,
        *,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Activities, newest first."""
        stmt = select(activities)
        if item_type is not None:
            stmt = stmt.where(activities.c.trackable_type == item_type)
        if item_id is not None:
            stmt = stmt.where(activities.c.trackable_id == item_id)
        stmt = stmt.order_by(activities.c.created_at.desc(), activities.c.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return self._rows(stmt)
