"""SQLAlchemy Core table definitions for the notectl store.

Timestamps are ISO 8601 UTC strings with microseconds, so lexical order
is chronological order.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
)

metadata = MetaData()

categories = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False, unique=True),
    Column("created_at", Text, nullable=False),
)

nodes = Table(
    "nodes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("label", Text, nullable=False),
    Column("type_id", Integer, nullable=False, default=0, server_default="0"),
    Column("parent_id", Integer, ForeignKey("nodes.id")),
    Column("position", Integer, nullable=False, default=0, server_default="0"),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

# Issues are notes in the issue category, held by the issue library node.
notes = Table(
    "notes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("text", Text, nullable=False, default="", server_default=""),
    Column("author", Text),
    Column("category_id", Integer, ForeignKey("categories.id"), nullable=False),
    Column("node_id", Integer, ForeignKey("nodes.id"), nullable=False),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

evidence = Table(
    "evidence",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("issue_id", Integer, ForeignKey("notes.id"), nullable=False),
    Column("node_id", Integer, ForeignKey("nodes.id"), nullable=False),
    Column("author", Text),
    Column("content", Text, nullable=False, default="", server_default=""),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

# Paper trail: one row per create/update/destroy. ``object`` holds the
# JSON snapshot of the row *before* the change (NULL for create).
versions = Table(
    "versions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("item_type", Text, nullable=False),
    Column("item_id", Integer, nullable=False),
    Column("event", Text, nullable=False),
    Column("whodunnit", Text),
    Column("object", Text),
    Column("created_at", Text, nullable=False),
)

# No foreign key on trackable_id: activities outlive their trackable.
activities = Table(
    "activities",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("trackable_type", Text, nullable=False),
    Column("trackable_id", Integer, nullable=False),
    Column("action", Text, nullable=False),
    Column("user", Text),
    Column("created_at", Text, nullable=False),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_nodes_parent", nodes.c.parent_id)
Index("ix_nodes_type", nodes.c.type_id)
Index("ix_notes_node", notes.c.node_id)
Index("ix_notes_category", notes.c.category_id)
Index("ix_notes_updated", notes.c.updated_at)
Index("ix_evidence_issue", evidence.c.issue_id)
Index("ix_evidence_node", evidence.c.node_id)
Index("ix_versions_item", versions.c.item_type, versions.c.item_id)
Index("ix_activities_trackable", activities.c.trackable_type, activities.c.trackable_id)
