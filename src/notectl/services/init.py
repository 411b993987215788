"""InitService: create a project directory with config and store."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from notectl.config.discovery import CONFIG_FILENAME
from notectl.config.models import NotectlConfig, RepositoryConfig
from notectl.infrastructure.database.engine import DB_FILENAME, STORE_DIRNAME, init_database
from notectl.infrastructure.templates import build_template_environment, list_note_templates
from notectl.services.result import ALREADY_INITIALIZED, ServiceError, ServiceResult

if TYPE_CHECKING:
    from pathlib import Path

log = structlog.get_logger(__name__)


class InitService:
    """Project scaffolding. Needs no Repository: it creates one."""

    @staticmethod
    def init_project(root: Path, *, name: str | None = None) -> ServiceResult:
        """Write ``notectl.toml`` and create the database under *root*."""
        op = "init_project"
        config_path = root / CONFIG_FILENAME
        if config_path.exists():
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code=ALREADY_INITIALIZED,
                    message=f"{config_path} already exists",
                    detail={"path": str(config_path)},
                ),
            )

        defaults = NotectlConfig()
        config = defaults.model_copy(
            update={"repository": RepositoryConfig(name=name or root.name)}
        )
        env = build_template_environment("project")
        text = env.get_template(f"{CONFIG_FILENAME}.j2").render(
            name=config.repository.name,
            issue_library_label=config.repository.issue_library_label,
            default_category=config.categories.default,
            issue_category=config.categories.issue,
            preview_length=config.fields.preview_length,
            search_limit=config.search.limit,
            recent_days=config.search.recent_days,
        )

        root.mkdir(parents=True, exist_ok=True)
        config_path.write_text(text, encoding="utf-8")
        init_database(root).dispose()
        log.info("project.initialized", root=str(root), name=config.repository.name)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "root": str(root),
                "name": config.repository.name,
                "config_path": str(config_path),
                "database": str(root / STORE_DIRNAME / DB_FILENAME),
                "templates": list_note_templates(root=root),
            },
        )
