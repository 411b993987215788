"""ServiceResult and ServiceError: the universal service contract.

INVARIANT: All service-layer methods return ServiceResult. Expected
failures (missing rows, validation errors) are reported through
``ok=False`` and a structured :class:`ServiceError`, never by raising.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# Error codes shared by every service.
NOT_FOUND = "NOT_FOUND"
VALIDATION_FAILED = "VALIDATION_FAILED"
INVALID_FIELD = "INVALID_FIELD"
TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
HAS_CHILDREN = "HAS_CHILDREN"
NO_SNAPSHOT = "NO_SNAPSHOT"
ALREADY_INITIALIZED = "ALREADY_INITIALIZED"


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult.

    ``detail["errors"]`` lists every reason for a ``VALIDATION_FAILED``.
    """

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Universal return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"create_note"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (counts, etc.).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @property
    def reasons(self) -> list[str]:
        """Every failure reason: validation errors, or the error message."""
        if self.error is None:
            return []
        errors = self.error.detail.get("errors")
        if isinstance(errors, list) and errors:
            return [str(e) for e in errors]
        return [self.error.message]
