"""Repository: transaction coordination, history and activity recording.

The Repository is the single dependency injected into every service. It
owns the database engine and the resolved settings. The
:meth:`Repository.transaction` context manager yields a
:class:`RepositoryTransaction` whose helpers keep the side tables in step
with every write:

- **Versions**: a paper-trail row per create/update/destroy holding the
  row as it was before the change.
- **Activities**: who did what to which item; kept after the item is gone.
- **Touch**: writing a note or evidence bumps its node's ``updated_at``.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import insert, select, update

from notectl.domain.content import NodeType
from notectl.infrastructure.database.engine import init_database
from notectl.infrastructure.database.schema import (
    activities,
    categories,
    nodes,
    versions,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy import Connection, Table
    from sqlalchemy.engine import Engine

    from notectl.config.settings import NotectlSettings

log = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# RepositoryTransaction: yielded to callers within transaction()
# ---------------------------------------------------------------------------


@dataclass
class RepositoryTransaction:
    """Active transaction context with a DB connection and audit helpers."""

    conn: Connection
    _repository: Repository
    author: str | None = None

    # ------------------------------------------------------------------
    # Row access
    # ------------------------------------------------------------------

    def fetch_row(self, table: Table, row_id: int) -> dict[str, Any] | None:
        """Return one row of *table* as a dict, or None."""
        row = self.conn.execute(select(table).where(table.c.id == row_id)).mappings().first()
        return dict(row) if row is not None else None

    def insert_row(self, table: Table, values: dict[str, Any]) -> int:
        """Insert *values* into *table* and return the new primary key."""
        result = self.conn.execute(insert(table).values(**values))
        return int(result.inserted_primary_key[0])

    # ------------------------------------------------------------------
    # Lookups created on first use
    # ------------------------------------------------------------------

    def category_id(self, name: str, now: str) -> int:
        """Return the id of category *name*, creating the row if needed."""
        row = self.conn.execute(select(categories.c.id).where(categories.c.name == name)).first()
        if row is not None:
            return int(row.id)
        log.debug("category.created", name=name)
        return self.insert_row(categories, {"name": name, "created_at": now})

    def issue_library_id(self, now: str) -> int:
        """Return the id of the issue library node, creating it if needed."""
        row = self.conn.execute(
            select(nodes.c.id).where(nodes.c.type_id == NodeType.ISSUELIB).order_by(nodes.c.id)
        ).first()
        if row is not None:
            return int(row.id)
        label = self._repository.settings.repository.issue_library_label
        log.debug("issue_library.created", label=label)
        return self.insert_row(
            nodes,
            {
                "label": label,
                "type_id": int(NodeType.ISSUELIB),
                "created_at": now,
                "updated_at": now,
            },
        )

    # ------------------------------------------------------------------
    # History helpers
    # ------------------------------------------------------------------

    def record_version(
        self,
        item_type: str,
        item_id: int,
        event: str,
        now: str,
        *,
        previous: dict[str, Any] | None = None,
    ) -> int:
        """Append a paper-trail row; *previous* is the pre-change row."""
        return self.insert_row(
            versions,
            {
                "item_type": item_type,
                "item_id": item_id,
                "event": event,
                "whodunnit": self.author,
                "object": json.dumps(previous, sort_keys=True) if previous is not None else None,
                "created_at": now,
            },
        )

    def track_activity(self, item_type: str, item_id: int, action: str, now: str) -> int:
        """Record that the current author performed *action* on an item."""
        return self.insert_row(
            activities,
            {
                "trackable_type": item_type,
                "trackable_id": item_id,
                "action": action,
                "user": self.author,
                "created_at": now,
            },
        )

    def touch_node(self, node_id: int, now: str) -> None:
        """Bump a node's ``updated_at`` after one of its children changed."""
        self.conn.execute(update(nodes).where(nodes.c.id == node_id).values(updated_at=now))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class Repository:
    """Encapsulates the database and settings of one project.

    Constructed once at CLI startup from :class:`NotectlSettings`.
    Services receive the Repository via their :class:`BaseService`
    constructor.
    """

    def __init__(self, settings: NotectlSettings) -> None:
        self._settings = settings
        self._engine: Engine = init_database(self.root)

    @property
    def root(self) -> Path:
        """The project root directory."""
        return self._settings.root

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def settings(self) -> NotectlSettings:
        """The resolved settings for this project."""
        return self._settings

    def close(self) -> None:
        """Release pooled connections."""
        self._engine.dispose()

    @contextmanager
    def transaction(self, *, author: str | None = None) -> Iterator[RepositoryTransaction]:
        """One atomic unit of work.

        Commits when the block exits normally and rolls back on any
        exception, including the version and activity rows written
        through the transaction helpers.

        Usage::

            with repository.transaction(author="alice") as txn:
                note_id = txn.insert_row(notes, {...})
                txn.record_version("Note", note_id, "create", now)
        """
        with self._engine.begin() as conn:
            yield RepositoryTransaction(
                conn=conn,
                _repository=self,
                author=author or self._settings.author,
            )
