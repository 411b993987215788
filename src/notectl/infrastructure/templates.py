"""Note templates: Jinja2 loading with per-project override support."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from jinja2 import (
    BaseLoader,
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
)

if TYPE_CHECKING:
    from pathlib import Path

TEMPLATE_SUFFIX = ".txt.j2"


def build_template_environment(group: str, *, root: Path | None = None) -> Environment:
    """Build a Jinja2 environment with project overrides before packaged defaults.

    Project overrides are loaded from ``.notectl/templates/<group>/``.
    """
    loaders: list[BaseLoader] = []
    if root is not None:
        loaders.append(FileSystemLoader(str(root / ".notectl" / "templates" / group)))

    loaders.append(PackageLoader("notectl", f"templates/{group}"))
    return Environment(
        loader=ChoiceLoader(loaders),
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


def list_note_templates(*, root: Path | None = None) -> list[str]:
    """Names of every available note template, overrides included."""
    env = build_template_environment("notes", root=root)
    names = {
        name.removesuffix(TEMPLATE_SUFFIX)
        for name in env.list_templates()
        if name.endswith(TEMPLATE_SUFFIX)
    }
    return sorted(names)


def render_note_template(name: str, *, root: Path | None = None, **context: Any) -> str:
    """Render note template *name* into field-encoded text.

    Raises:
        jinja2.TemplateNotFound: If no template called *name* exists.
    """
    env = build_template_environment("notes", root=root)
    return env.get_template(f"{name}{TEMPLATE_SUFFIX}").render(**context)
