"""SQLite database engine and schema via SQLAlchemy Core."""

from notectl.infrastructure.database.engine import create_db_engine, init_database
from notectl.infrastructure.database.schema import (
    activities,
    categories,
    evidence,
    metadata,
    nodes,
    notes,
    versions,
)

__all__ = [
    "activities",
    "categories",
    "create_db_engine",
    "evidence",
    "init_database",
    "metadata",
    "nodes",
    "notes",
    "versions",
]
