"""Tests for database engine setup and initialization."""

from pathlib import Path

from sqlalchemy import inspect, text

from notectl.infrastructure.database.engine import create_db_engine, init_database


class TestCreateDbEngine:
    def test_wal_mode_enabled(self, tmp_path: Path) -> None:
        engine = create_db_engine(tmp_path / "test.db")
        with engine.connect() as conn:
            assert conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"
        engine.dispose()

    def test_foreign_keys_enabled(self, tmp_path: Path) -> None:
        engine = create_db_engine(tmp_path / "test.db")
        with engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
        engine.dispose()

    def test_lower_folds_non_ascii(self, tmp_path: Path) -> None:
        engine = create_db_engine(tmp_path / "test.db")
        with engine.connect() as conn:
            assert conn.execute(text("SELECT lower('ÉCHEC Ωmega')")).scalar() == "échec ωmega"
            assert conn.execute(text("SELECT lower(NULL)")).scalar() is None
        engine.dispose()


class TestInitDatabase:
    def test_creates_store_directory(self, tmp_path: Path) -> None:
        init_database(tmp_path).dispose()
        assert (tmp_path / ".notectl").is_dir()
        assert (tmp_path / ".notectl" / "templates" / "notes").is_dir()
        assert (tmp_path / ".notectl" / "notectl.db").exists()

    def test_creates_all_tables(self, tmp_path: Path) -> None:
        engine = init_database(tmp_path)
        table_names = set(inspect(engine).get_table_names())
        assert {"categories", "nodes", "notes", "evidence", "versions", "activities"} <= table_names
        engine.dispose()

    def test_idempotent(self, tmp_path: Path) -> None:
        init_database(tmp_path).dispose()
        engine = init_database(tmp_path)
        assert "notes" in inspect(engine).get_table_names()
        engine.dispose()
