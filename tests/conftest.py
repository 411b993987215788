"""Shared pytest fixtures and test helpers for notectl tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from notectl.config.settings import NotectlSettings
from notectl.infrastructure.database.engine import init_database
from notectl.infrastructure.repository import Repository


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def project_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary project directory, isolated from any ambient config."""
    for var in ("NOTECTL_CONFIG", "NOTECTL_AUTHOR", "NOTECTL_ROOT"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture
def repository(project_root: Path) -> Iterator[Repository]:
    """Fully initialized repository on a temp directory."""
    settings = NotectlSettings.from_cli(root=project_root, author="tester")
    repo = Repository(settings)
    try:
        yield repo
    finally:
        repo.close()


@pytest.fixture
def _isolated_project(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp project root so the CLI creates an isolated store.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command
    test classes.
    """
    monkeypatch.chdir(project_root)


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------


def create_node(repository: Repository, label: str, **kwargs: Any) -> dict[str, Any]:
    """Create a node via NodeService, asserting success."""
    from notectl.services.nodes import NodeService

    result = NodeService(repository).create_node(label, **kwargs)
    assert result.ok, result.error
    return result.data


def create_note(
    repository: Repository, node_id: int, text: str = "", **kwargs: Any
) -> dict[str, Any]:
    """Create a note via NoteService, asserting success."""
    from notectl.services.notes import NoteService

    result = NoteService(repository).create_note(node_id, text, **kwargs)
    assert result.ok, result.error
    return result.data


def create_issue(repository: Repository, text: str = "", **kwargs: Any) -> dict[str, Any]:
    """Create an issue via IssueService, asserting success."""
    from notectl.services.issues import IssueService

    result = IssueService(repository).create_issue(text, **kwargs)
    assert result.ok, result.error
    return result.data
