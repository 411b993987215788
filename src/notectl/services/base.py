"""BaseService: abstract foundation for all notectl services.

Every service receives a :class:`Repository` at construction time. The
Repository provides transactional access to the database and the
resolved settings. Services own their transaction boundaries via
``self._repo.transaction()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from notectl.infrastructure.repositories.query import QueryRepository
from notectl.services.result import (
    NOT_FOUND,
    TEMPLATE_NOT_FOUND,
    VALIDATION_FAILED,
    ServiceError,
    ServiceResult,
)

if TYPE_CHECKING:
    from notectl.config.settings import NotectlSettings
    from notectl.infrastructure.repository import Repository


class BaseService:
    """Abstract base for all service-layer classes.

    Usage::

        class NoteService(BaseService):
            def create_note(self, node_id: int, text: str) -> ServiceResult:
                with self._repo.transaction(author=author) as txn:
                    ...
    """

    def __init__(self, repository: Repository) -> None:
        self._repo = repository
        self._query = QueryRepository(repository.engine)

    @property
    def settings(self) -> NotectlSettings:
        return self._repo.settings

    @staticmethod
    def _not_found(op: str, kind: str, item_id: int) -> ServiceResult:
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(code=NOT_FOUND, message=f"No {kind} found with ID: {item_id}"),
        )

    @staticmethod
    def _invalid(op: str, errors: list[str], *, code: str = VALIDATION_FAILED) -> ServiceResult:
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(code=code, message="; ".join(errors), detail={"errors": errors}),
        )

    @staticmethod
    def _template_missing(op: str, template: str) -> ServiceResult:
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(
                code=TEMPLATE_NOT_FOUND,
                message=f"No note template named {template!r}",
            ),
        )
