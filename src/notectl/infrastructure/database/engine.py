"""Database engine setup for SQLite.

SQLite with foreign keys enabled holds every node, note, issue and the
change history. The DB is stored at ``{root}/.notectl/notectl.db``.

SQLite's built-in ``lower()`` only folds ASCII letters. Every connection
replaces it with Python's :meth:`str.lower` so that case-insensitive
search (``ILIKE`` compiles to ``lower(x) LIKE lower(y)``) also matches
accented and non-Latin text.

SQLAlchemy Core (not ORM) is used because notectl is a short-lived CLI
process: no benefit from session management or identity maps.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from notectl.infrastructure.database.schema import metadata

STORE_DIRNAME = ".notectl"
DB_FILENAME = "notectl.db"


def _unicode_lower(value: str | None) -> str | None:
    return value.lower() if isinstance(value, str) else value


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with WAL mode and foreign keys enabled."""
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        dbapi_conn.create_function("lower", 1, _unicode_lower, deterministic=True)

    return engine


def init_database(root: Path) -> Engine:
    """Initialize the store at ``{root}/.notectl/notectl.db``.

    Creates the ``.notectl/`` directory (with a ``templates/notes``
    override folder) and all tables from :data:`schema.metadata`.

    Idempotent: safe to call on an existing project.
    """
    store_dir = root / STORE_DIRNAME
    store_dir.mkdir(parents=True, exist_ok=True)
    (store_dir / "templates" / "notes").mkdir(parents=True, exist_ok=True)

    engine = create_db_engine(store_dir / DB_FILENAME)
    metadata.create_all(engine)
    return engine
