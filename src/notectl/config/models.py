"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, notectl.toml only contains
overrides. A fresh repository needs no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- notectl.toml sections ---


class RepositoryConfig(BaseModel):
    """[repository] section."""

    model_config = {"frozen": True}

    name: str = "my-project"
    issue_library_label: str = "All issues"


class CategoriesConfig(BaseModel):
    """[categories] section.

    Category *names* used when a note or issue is created without an
    explicit category. Rows are created on first use.
    """

    model_config = {"frozen": True}

    default: str = "Default category"
    issue: str = "Issue description"


class FieldsConfig(BaseModel):
    """[fields] section."""

    model_config = {"frozen": True}

    preview_length: int = Field(default=20, ge=4)


class SearchConfig(BaseModel):
    """[search] section."""

    model_config = {"frozen": True}

    limit: int = Field(default=50, ge=1)
    recent_days: int = Field(default=1, ge=1)


class NotectlConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    categories: CategoriesConfig = Field(default_factory=CategoriesConfig)
    fields: FieldsConfig = Field(default_factory=FieldsConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
