"""IssueService: issues, their evidence, and the nodes they affect.

An issue is a note in the configured issue category, held by the issue
library node. Evidence links an issue to an affected node and carries
its own field-encoded content (``#[Location]#``, ``#[Output]#``...).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

import structlog
from jinja2 import TemplateNotFound
from sqlalchemy import delete, update

from notectl.domain.content import EvidenceModel, IssueModel, NodeType
from notectl.domain.fields import FieldValidationError
from notectl.infrastructure.database.schema import evidence, nodes
from notectl.infrastructure.templates import render_note_template
from notectl.services._helpers import now_iso
from notectl.services.notes import NoteService
from notectl.services.result import INVALID_FIELD, ServiceResult

if TYPE_CHECKING:
    from notectl.infrastructure.repository import RepositoryTransaction

log = structlog.get_logger(__name__)


def _node_summary(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "label": row["label"],
        "type": NodeType(row["type_id"]).name.lower(),
        "type_id": row["type_id"],
    }


class IssueService(NoteService):
    """Issues live in the notes table, scoped to the issue category."""

    _item_type: ClassVar[str] = "Issue"
    _kind: ClassVar[str] = "issue"
    _model_cls: ClassVar[type[IssueModel]] = IssueModel

    def _in_scope(self, row: dict[str, Any]) -> bool:
        issue_category = self._issue_category_id()
        return issue_category is not None and row["category_id"] == issue_category

    def _scope_filter(self) -> dict[str, int | None]:
        # -1 never matches: no issue category means no issues yet.
        return {"category_id": self._issue_category_id() or -1}

    def _evidence_payload(self, model: EvidenceModel) -> dict[str, Any]:
        return {
            "id": model.id,
            "issue_id": model.issue_id,
            "node_id": model.node_id,
            "author": model.author,
            "fields": model.fields,
            "content": model.content,
            "created_at": model.created_at,
            "updated_at": model.updated_at,
        }

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    def create_issue(
        self,
        text: str = "",
        *,
        author: str | None = None,
        template: str | None = None,
        template_context: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Add an issue to the issue library.

        The issue category and the issue library node are created the
        first time an issue is added.
        """
        op = "create_issue"
        warnings: list[str] = []
        if template and not text:
            try:
                text = render_note_template(
                    template, root=self._repo.root, **(template_context or {})
                )
            except TemplateNotFound:
                return self._template_missing(op, template)
        elif template:
            warnings.append(f"Template {template!r} ignored: text was given")

        with self._repo.transaction(author=author) as txn:
            now = now_iso()
            library_id = txn.issue_library_id(now)
            category_id = txn.category_id(self.settings.categories.issue, now)
            return self._insert(txn, op, library_id, category_id, text, now, warnings)

    def list_issues(self) -> ServiceResult:
        """Every issue in the library, ordered by title."""
        rows = self._query.list_notes(**self._scope_filter())
        items = [self._summary(row) for row in rows]
        items.sort(key=lambda item: (item["title"].casefold(), item["id"]))
        return ServiceResult(
            ok=True,
            op="list_issues",
            data={"items": items, "count": len(items)},
        )

    def get(self, item_id: int) -> ServiceResult:
        """An issue with its evidence and the nodes it affects."""
        result = super().get(item_id)
        if not result.ok:
            return result
        evidence_rows = self._query.list_evidence(issue_id=item_id)
        affected = self._query.affected_nodes(item_id)
        data = {
            **result.data,
            "evidence": [
                self._evidence_payload(EvidenceModel.model_validate(row))
                for row in evidence_rows
            ],
            "affected": [_node_summary(row) for row in affected],
        }
        return ServiceResult(ok=True, op=result.op, data=data, warnings=result.warnings)

    def update_issue(
        self,
        issue_id: int,
        *,
        text: str,
        author: str | None = None,
    ) -> ServiceResult:
        """Replace the whole text of an issue."""
        return self._update("update_issue", issue_id, {"text": text}, author=author)

    def delete_issue(self, issue_id: int, *, author: str | None = None) -> ServiceResult:
        """Delete an issue and its evidence."""
        return self._delete(issue_id, author=author)

    def affected(self, issue_id: int) -> ServiceResult:
        """Nodes that hold evidence for *issue_id*."""
        op = "affected_nodes"
        with self._repo.transaction() as txn:
            row = self._load(txn, issue_id)
        if row is None:
            return self._not_found(op, "issue", issue_id)
        items = [_node_summary(node) for node in self._query.affected_nodes(issue_id)]
        return ServiceResult(
            ok=True,
            op=op,
            data={"issue_id": issue_id, "items": items, "count": len(items)},
        )

    def _before_delete(self, txn: RepositoryTransaction, row: dict[str, Any], now: str) -> None:
        items = txn.conn.execute(
            evidence.select().where(evidence.c.issue_id == row["id"])
        ).mappings().all()
        for item in items:
            self._destroy_evidence(txn, dict(item), now)

    # ------------------------------------------------------------------
    # Evidence
    # ------------------------------------------------------------------

    def add_evidence(
        self,
        issue_id: int,
        node_id: int,
        content: str = "",
        *,
        author: str | None = None,
        template: str | None = "evidence",
    ) -> ServiceResult:
        """Attach evidence of *issue_id* to *node_id*.

        Empty *content* is filled from the ``evidence`` note template.
        """
        op = "add_evidence"
        if not content and template:
            try:
                content = render_note_template(template, root=self._repo.root)
            except TemplateNotFound:
                return self._template_missing(op, template)

        with self._repo.transaction(author=author) as txn:
            now = now_iso()
            if self._load(txn, issue_id) is None:
                return self._not_found(op, "issue", issue_id)
            node = txn.fetch_row(nodes, node_id)
            if node is None:
                return self._not_found(op, "node", node_id)
            if node["type_id"] == NodeType.ISSUELIB:
                return self._invalid(op, ["Evidence can't be added to the issue library"])

            values: dict[str, Any] = {
                "issue_id": issue_id,
                "node_id": node_id,
                "author": txn.author,
                "content": content,
                "created_at": now,
                "updated_at": now,
            }
            vr = EvidenceModel.validate_create(values)
            if not vr.valid:
                return self._invalid(op, vr.errors)

            evidence_id = txn.insert_row(evidence, values)
            txn.record_version("Evidence", evidence_id, "create", now)
            txn.track_activity("Evidence", evidence_id, "create", now)
            txn.touch_node(node_id, now)

        log.info("evidence.created", evidence_id=evidence_id, issue_id=issue_id, node_id=node_id)
        model = EvidenceModel.model_validate({"id": evidence_id, **values})
        return ServiceResult(ok=True, op=op, data=self._evidence_payload(model))

    def get_evidence(self, evidence_id: int) -> ServiceResult:
        row = self._query.get_evidence(evidence_id)
        if row is None:
            return self._not_found("get_evidence", "evidence", evidence_id)
        model = EvidenceModel.model_validate(row)
        return ServiceResult(ok=True, op="get_evidence", data=self._evidence_payload(model))

    def update_evidence(
        self,
        evidence_id: int,
        *,
        content: str | None = None,
        field: tuple[str, str] | None = None,
        author: str | None = None,
    ) -> ServiceResult:
        """Replace evidence content, or rewrite one of its fields.

        *field* is a ``(name, value)`` pair applied to the current content.
        """
        op = "update_evidence"
        with self._repo.transaction(author=author) as txn:
            now = now_iso()
            row = txn.fetch_row(evidence, evidence_id)
            if row is None:
                return self._not_found(op, "evidence", evidence_id)

            model = EvidenceModel.model_validate(row)
            if field is not None:
                try:
                    model = model.set_field(*field)
                except FieldValidationError as exc:
                    return self._invalid(op, [str(exc)])
                except ValueError as exc:
                    return self._invalid(op, [str(exc)], code=INVALID_FIELD)
            elif content is not None:
                vr = EvidenceModel.validate_update(row, {"content": content})
                if not vr.valid:
                    return self._invalid(op, vr.errors)
                model = model.model_copy(update={"content": content})

            if model.content == row["content"]:
                return ServiceResult(
                    ok=True,
                    op=op,
                    data=self._evidence_payload(model),
                    warnings=["No changes"],
                )

            txn.conn.execute(
                update(evidence)
                .where(evidence.c.id == evidence_id)
                .values(content=model.content, updated_at=now)
            )
            txn.record_version("Evidence", evidence_id, "update", now, previous=row)
            txn.track_activity("Evidence", evidence_id, "update", now)
            txn.touch_node(row["node_id"], now)
            model = model.model_copy(update={"updated_at": now})

        log.info("evidence.updated", evidence_id=evidence_id)
        return ServiceResult(ok=True, op=op, data=self._evidence_payload(model))

    def delete_evidence(self, evidence_id: int, *, author: str | None = None) -> ServiceResult:
        op = "delete_evidence"
        with self._repo.transaction(author=author) as txn:
            row = txn.fetch_row(evidence, evidence_id)
            if row is None:
                return self._not_found(op, "evidence", evidence_id)
            self._destroy_evidence(txn, row, now_iso())
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": evidence_id, "issue_id": row["issue_id"], "node_id": row["node_id"]},
        )

    def _destroy_evidence(self, txn: RepositoryTransaction, row: dict[str, Any], now: str) -> None:
        txn.record_version("Evidence", row["id"], "destroy", now, previous=row)
        txn.track_activity("Evidence", row["id"], "destroy", now)
        txn.conn.execute(delete(evidence).where(evidence.c.id == row["id"]))
        txn.touch_node(row["node_id"], now)
        log.info("evidence.deleted", evidence_id=row["id"], issue_id=row["issue_id"])
