"""Content models: nodes, notes, issues, evidence.

Model attributes map 1:1 to table columns. Field-bearing models (notes,
issues, evidence) keep their raw text in a single attribute and delegate
every field operation to :class:`~notectl.domain.fields.FieldDocument`:

- ``document``: the raw text wrapped for field access.
- ``fields``: ordered ``{name: value}`` view of the text.
- ``set_field()``: returns a copy of the model with one field rewritten.

Validation lives directly on the model hierarchy:

- ``validate_create()``: business-rule checks before creation.
- ``validate_update()``: business-rule checks before modification.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, ClassVar, Self

from pydantic import BaseModel

from notectl.domain.fields import MAX_TEXT_LENGTH, TITLE_FIELD, FieldDocument

PREVIEW_LENGTH = 20

# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValidationResult:
    """Result of a content validation check."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def truncate(text: str, length: int = PREVIEW_LENGTH, omission: str = "...") -> str:
    """Shorten *text* to at most *length* characters, *omission* included.

    Examples:
        >>> truncate("short")
        'short'
        >>> truncate("Directory listings enabled")
        'Directory listing...'
    """
    if len(text) <= length:
        return text
    return text[: max(length - len(omission), 0)] + omission


def _check_text_length(text: str | None, label: str, errors: list[str]) -> None:
    if text is not None and len(text) > MAX_TEXT_LENGTH:
        errors.append(
            f"{label} is too long ({len(text)} characters, maximum is {MAX_TEXT_LENGTH})"
        )


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


class NodeType(IntEnum):
    """Node kinds. Only one ISSUELIB node exists per repository."""

    DEFAULT = 0
    HOST = 1
    METHODOLOGY = 2
    ISSUELIB = 3


class NodeModel(BaseModel):
    """A position in the project tree (a host, a folder, the issue library)."""

    model_config = {"frozen": True}

    id: int
    label: str
    type_id: int = NodeType.DEFAULT
    parent_id: int | None = None
    position: int = 0
    created_at: str
    updated_at: str

    @classmethod
    def validate_create(cls, data: dict[str, Any]) -> ValidationResult:
        errors: list[str] = []
        if not str(data.get("label") or "").strip():
            errors.append("Label can't be blank")
        type_id = data.get("type_id", NodeType.DEFAULT)
        if type_id not in {t.value for t in NodeType}:
            errors.append(f"Unknown node type: {type_id!r}")
        return ValidationResult(valid=len(errors) == 0, errors=errors)


# ---------------------------------------------------------------------------
# Field-bearing models
# ---------------------------------------------------------------------------


class FieldContentModel(BaseModel):
    """Base for models whose text packs ``#[Name]#`` fields.

    Subclasses name the attribute holding the text in ``_text_attr`` and
    the placeholder shown for a missing title in ``_missing_title``.
    """

    model_config = {"frozen": True}

    _text_attr: ClassVar[str] = "text"
    _item_type: ClassVar[str] = ""
    _missing_title: ClassVar[str] = ""

    @property
    def raw_text(self) -> str:
        return str(getattr(self, self._text_attr) or "")

    @property
    def document(self) -> FieldDocument:
        return FieldDocument(self.raw_text)

    @property
    def fields(self) -> dict[str, str]:
        return self.document.fields

    def field(self, name: str, default: str | None = None) -> str | None:
        return self.document.get_field(name, default)

    def field_or_text(self, name: str, length: int = PREVIEW_LENGTH) -> str:
        """The named field, or a truncated preview of the whole text."""
        return self.fields.get(name, truncate(self.raw_text, length))

    def set_field(self, name: str, value: str) -> Self:
        """Return a copy with field *name* set to *value*.

        Raises:
            FieldValidationError: If the new text is over the length limit.
        """
        doc = self.document.set_field(name, value)
        return self.model_copy(update={self._text_attr: doc.raw})

    @property
    def title(self) -> str:
        return self.document.title(self._missing_title)

    @property
    def has_title(self) -> bool:
        return self.document.has_title()

    # --- Validation (override in subclasses for business rules) ---

    @classmethod
    def validate_create(cls, data: dict[str, Any]) -> ValidationResult:
        errors: list[str] = []
        _check_text_length(data.get(cls._text_attr), cls._text_attr.capitalize(), errors)
        return ValidationResult(valid=len(errors) == 0, errors=errors)

    @classmethod
    def validate_update(
        cls,
        existing: dict[str, Any],
        changes: dict[str, Any],
    ) -> ValidationResult:
        """Validate an update against existing content.

        Base implementation only enforces the text length limit.
        """
        errors: list[str] = []
        _check_text_length(changes.get(cls._text_attr), cls._text_attr.capitalize(), errors)
        return ValidationResult(valid=len(errors) == 0, errors=errors)


class NoteModel(FieldContentModel):
    """A note attached to a node, categorized, authored."""

    _item_type: ClassVar[str] = "Note"
    _missing_title: ClassVar[str] = f"This note doesn't provide a #[{TITLE_FIELD}]# field"

    id: int
    text: str = ""
    author: str | None = None
    category_id: int
    node_id: int
    created_at: str
    updated_at: str

    @classmethod
    def validate_create(cls, data: dict[str, Any]) -> ValidationResult:
        errors: list[str] = []
        if data.get("category_id") is None:
            errors.append("Category can't be blank")
        if data.get("node_id") is None:
            errors.append("Node can't be blank")
        _check_text_length(data.get("text"), "Text", errors)
        return ValidationResult(valid=len(errors) == 0, errors=errors)

    @classmethod
    def validate_update(
        cls,
        existing: dict[str, Any],
        changes: dict[str, Any],
    ) -> ValidationResult:
        base = super().validate_update(existing, changes)
        errors = list(base.errors)
        for key in ("category_id", "node_id"):
            if key in changes and changes[key] is None:
                errors.append(f"{key.removesuffix('_id').capitalize()} can't be blank")
        return ValidationResult(valid=len(errors) == 0, errors=errors)


class IssueModel(NoteModel):
    """A note in the issue category, held by the issue library node."""

    _item_type: ClassVar[str] = "Issue"
    _missing_title: ClassVar[str] = f"This issue doesn't provide a #[{TITLE_FIELD}]# field"


class EvidenceModel(FieldContentModel):
    """Proof that an issue affects a node; content uses the field syntax."""

    _text_attr: ClassVar[str] = "content"
    _item_type: ClassVar[str] = "Evidence"
    _missing_title: ClassVar[str] = f"This evidence doesn't provide a #[{TITLE_FIELD}]# field"

    id: int
    issue_id: int
    node_id: int
    author: str | None = None
    content: str = ""
    created_at: str
    updated_at: str

    @classmethod
    def validate_create(cls, data: dict[str, Any]) -> ValidationResult:
        errors: list[str] = []
        if data.get("issue_id") is None:
            errors.append("Issue can't be blank")
        if data.get("node_id") is None:
            errors.append("Node can't be blank")
        _check_text_length(data.get("content"), "Content", errors)
        return ValidationResult(valid=len(errors) == 0, errors=errors)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

CONTENT_REGISTRY: dict[str, type[FieldContentModel]] = {
    "Note": NoteModel,
    "Issue": IssueModel,
    "Evidence": EvidenceModel,
}


def get_content_model(item_type: str) -> type[FieldContentModel]:
    """Look up the model class for a versioned item type.

    Raises:
        KeyError: If no model is registered for *item_type*.
    """
    if item_type in CONTENT_REGISTRY:
        return CONTENT_REGISTRY[item_type]
    msg = f"No content model registered for item_type={item_type!r}"
    raise KeyError(msg)
