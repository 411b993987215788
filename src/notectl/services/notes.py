"""NoteService: notes attached to nodes.

Pipeline for every write: VALIDATE → APPLY → RECORD → RESPOND.
RECORD appends a paper-trail version, an activity row, and touches the
owning node, all inside the same transaction as the write itself.

Issues share the ``notes`` table; :class:`~notectl.services.issues.IssueService`
reuses this pipeline with its own scope.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

import structlog
from jinja2 import TemplateNotFound
from sqlalchemy import delete, update

from notectl.domain.content import NodeType, NoteModel
from notectl.domain.fields import FieldValidationError
from notectl.infrastructure.database.schema import nodes, notes
from notectl.infrastructure.templates import render_note_template
from notectl.services._helpers import now_iso, since_iso
from notectl.services.base import BaseService
from notectl.services.result import INVALID_FIELD, ServiceResult

if TYPE_CHECKING:
    from notectl.infrastructure.repository import RepositoryTransaction

log = structlog.get_logger(__name__)


class NoteService(BaseService):
    """Create, read, update, delete, and search notes."""

    _item_type: ClassVar[str] = "Note"
    _kind: ClassVar[str] = "note"
    _model_cls: ClassVar[type[NoteModel]] = NoteModel

    # ------------------------------------------------------------------
    # Scope: which rows of the notes table this service owns
    # ------------------------------------------------------------------

    def _issue_category_id(self) -> int | None:
        return self._query.category_id(self.settings.categories.issue)

    def _in_scope(self, row: dict[str, Any]) -> bool:
        return row["category_id"] != self._issue_category_id()

    def _scope_filter(self) -> dict[str, int | None]:
        return {"exclude_category_id": self._issue_category_id()}

    def _load(self, txn: RepositoryTransaction, item_id: int) -> dict[str, Any] | None:
        row = txn.fetch_row(notes, item_id)
        if row is None or not self._in_scope(row):
            return None
        return row

    # ------------------------------------------------------------------
    # Payloads
    # ------------------------------------------------------------------

    def _payload(self, model: NoteModel) -> dict[str, Any]:
        return {
            "id": model.id,
            "node_id": model.node_id,
            "category_id": model.category_id,
            "author": model.author,
            "title": model.title,
            "has_title": model.has_title,
            "fields": model.fields,
            "text": model.text,
            "created_at": model.created_at,
            "updated_at": model.updated_at,
        }

    def _summary(self, row: dict[str, Any]) -> dict[str, Any]:
        model = self._model_cls.model_validate(row)
        preview = model.field_or_text("Title", self.settings.fields.preview_length)
        return {
            "id": model.id,
            "node_id": model.node_id,
            "title": preview,
            "updated_at": model.updated_at,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create_note(
        self,
        node_id: int,
        text: str = "",
        *,
        author: str | None = None,
        category: str | None = None,
        template: str | None = None,
        template_context: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Create a note on *node_id*.

        *category* is a category name; it defaults to the configured
        default category. *template* renders a note template into the
        text when no *text* is given.
        """
        op = "create_note"
        warnings: list[str] = []

        if template:
            if text:
                warnings.append(f"Template {template!r} ignored: text was given")
            else:
                try:
                    text = render_note_template(
                        template, root=self._repo.root, **(template_context or {})
                    )
                except TemplateNotFound:
                    return self._template_missing(op, template)

        with self._repo.transaction(author=author) as txn:
            now = now_iso()
            node = txn.fetch_row(nodes, node_id)
            if node is None:
                return self._not_found(op, "node", node_id)
            if node["type_id"] == NodeType.ISSUELIB:
                return self._invalid(op, ["Use the issue commands to add issues"])
            category_name = category or self.settings.categories.default
            if category_name == self.settings.categories.issue:
                return self._invalid(op, ["Use the issue commands to create issues"])
            category_id = txn.category_id(category_name, now)
            return self._insert(txn, op, node_id, category_id, text, now, warnings)

    def get(self, item_id: int) -> ServiceResult:
        """Retrieve one item with its decoded fields."""
        op = f"get_{self._kind}"
        with self._repo.transaction() as txn:
            row = self._load(txn, item_id)
        if row is None:
            return self._not_found(op, self._kind, item_id)
        model = self._model_cls.model_validate(row)
        return ServiceResult(ok=True, op=op, data=self._payload(model))

    def list_notes(self, node_id: int) -> ServiceResult:
        """Notes of one node, oldest first."""
        op = "list_notes"
        if self._query.get_node(node_id) is None:
            return self._not_found(op, "node", node_id)
        rows = self._query.list_notes(node_id=node_id, **self._scope_filter())
        items = [self._summary(row) for row in rows]
        return ServiceResult(ok=True, op=op, data={"items": items, "count": len(items)})

    def update_note(
        self,
        note_id: int,
        *,
        text: str | None = None,
        category: str | None = None,
        node_id: int | None = None,
        author: str | None = None,
    ) -> ServiceResult:
        """Update a note's text, move it to another node, or recategorize it.

        The target node and the category are resolved in the same
        transaction as the write. A new category is only created once the
        note exists and the update is valid.
        """
        if category is not None and category == self.settings.categories.issue:
            return self._invalid("update_note", ["Notes cannot be moved to the issue category"])
        changes: dict[str, Any] = {}
        if text is not None:
            changes["text"] = text
        return self._update(
            "update_note",
            note_id,
            changes,
            node_id=node_id,
            category=category,
            author=author,
        )

    def set_field(
        self,
        item_id: int,
        name: str,
        value: str,
        *,
        author: str | None = None,
    ) -> ServiceResult:
        """Rewrite a single ``#[name]#`` field, leaving the others untouched."""
        op = f"set_{self._kind}_field"
        return self._update(op, item_id, {}, field=(name, value), author=author)

    def _delete(self, item_id: int, *, author: str | None = None) -> ServiceResult:
        """Delete an item; its versions and activities are kept."""
        op = f"delete_{self._kind}"
        with self._repo.transaction(author=author) as txn:
            now = now_iso()
            row = self._load(txn, item_id)
            if row is None:
                return self._not_found(op, self._kind, item_id)
            self._before_delete(txn, row, now)
            txn.record_version(self._item_type, item_id, "destroy", now, previous=row)
            txn.track_activity(self._item_type, item_id, "destroy", now)
            txn.conn.execute(delete(notes).where(notes.c.id == item_id))
            txn.touch_node(row["node_id"], now)

        log.info(f"{self._kind}.deleted", item_id=item_id)
        return ServiceResult(ok=True, op=op, data={"id": item_id, "node_id": row["node_id"]})

    def delete_note(self, note_id: int, *, author: str | None = None) -> ServiceResult:
        return self._delete(note_id, author=author)

    def search(self, term: str, *, limit: int | None = None) -> ServiceResult:
        """Case-insensitive substring search, most recently updated first."""
        op = f"search_{self._kind}s"
        rows = self._query.search_notes(
            term,
            limit=limit or self.settings.search.limit,
            **self._scope_filter(),
        )
        items = [
            {**self._summary(row), "text": row["text"]}
            for row in rows
        ]
        return ServiceResult(
            ok=True,
            op=op,
            data={"term": term, "items": items, "count": len(items)},
        )

    def recent(self, *, created: bool = False, days: int | None = None) -> ServiceResult:
        """Notes created (or updated) within the last *days* days."""
        op = "recent_notes"
        since = since_iso(days or self.settings.search.recent_days)
        column = "created_at" if created else "updated_at"
        rows = self._query.recent_notes(since, column=column, **self._scope_filter())
        items = [self._summary(row) for row in rows]
        return ServiceResult(
            ok=True,
            op=op,
            data={"since": since, "column": column, "items": items, "count": len(items)},
        )

    # ------------------------------------------------------------------
    # Write pipeline (private)
    # ------------------------------------------------------------------

    def _insert(
        self,
        txn: RepositoryTransaction,
        op: str,
        node_id: int,
        category_id: int,
        text: str,
        now: str,
        warnings: list[str],
    ) -> ServiceResult:
        values: dict[str, Any] = {
            "text": text,
            "author": txn.author,
            "category_id": category_id,
            "node_id": node_id,
            "created_at": now,
            "updated_at": now,
        }
        vr = self._model_cls.validate_create(values)
        if not vr.valid:
            return self._invalid(op, vr.errors)
        warnings.extend(vr.warnings)

        item_id = txn.insert_row(notes, values)
        txn.record_version(self._item_type, item_id, "create", now)
        txn.track_activity(self._item_type, item_id, "create", now)
        txn.touch_node(node_id, now)

        model = self._model_cls.model_validate({"id": item_id, **values})
        if not model.has_title:
            warnings.append(f"{self._item_type} has no #[Title]# field")
        log.info(f"{self._kind}.created", item_id=item_id, node_id=node_id)
        return ServiceResult(ok=True, op=op, data=self._payload(model), warnings=warnings)

    def _update(
        self,
        op: str,
        item_id: int,
        changes: dict[str, Any],
        *,
        node_id: int | None = None,
        category: str | None = None,
        field: tuple[str, str] | None = None,
        author: str | None = None,
    ) -> ServiceResult:
        """Load, validate, and write one item in a single transaction.

        *field* is a ``(name, value)`` pair applied to the current text.
        *category* is created only after every check has passed.
        """
        with self._repo.transaction(author=author) as txn:
            now = now_iso()
            row = self._load(txn, item_id)
            if row is None:
                return self._not_found(op, self._kind, item_id)

            changes = dict(changes)
            if field is not None:
                try:
                    updated = self._model_cls.model_validate(row).set_field(*field)
                except FieldValidationError as exc:
                    return self._invalid(op, [str(exc)])
                except ValueError as exc:
                    return self._invalid(op, [str(exc)], code=INVALID_FIELD)
                changes["text"] = updated.text

            if node_id is not None:
                node = txn.fetch_row(nodes, node_id)
                if node is None:
                    return self._not_found(op, "node", node_id)
                if node["type_id"] == NodeType.ISSUELIB:
                    return self._invalid(op, ["Notes cannot be moved to the issue library"])
                changes["node_id"] = node_id

            vr = self._model_cls.validate_update(row, changes)
            if not vr.valid:
                return self._invalid(op, vr.errors)

            if category is not None:
                changes["category_id"] = txn.category_id(category, now)

            fields_changed = sorted(k for k, v in changes.items() if row.get(k) != v)
            if not fields_changed:
                model = self._model_cls.model_validate(row)
                return ServiceResult(
                    ok=True,
                    op=op,
                    data={**self._payload(model), "fields_changed": []},
                    warnings=["No changes"],
                )

            txn.conn.execute(
                update(notes).where(notes.c.id == item_id).values(**changes, updated_at=now)
            )
            txn.record_version(self._item_type, item_id, "update", now, previous=row)
            txn.track_activity(self._item_type, item_id, "update", now)
            txn.touch_node(row["node_id"], now)
            if changes.get("node_id", row["node_id"]) != row["node_id"]:
                txn.touch_node(changes["node_id"], now)

            model = self._model_cls.model_validate({**row, **changes, "updated_at": now})

        log.info(f"{self._kind}.updated", item_id=item_id, fields=fields_changed)
        return ServiceResult(
            ok=True,
            op=op,
            data={**self._payload(model), "fields_changed": fields_changed},
            warnings=vr.warnings,
        )

    def _before_delete(self, txn: RepositoryTransaction, row: dict[str, Any], now: str) -> None:
        """Hook for dependent rows that must go before the item itself."""
