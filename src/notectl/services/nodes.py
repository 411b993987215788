"""NodeService: the project tree of hosts, folders, and the issue library."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, select, update

from notectl.domain.content import EvidenceModel, NodeModel, NodeType, NoteModel
from notectl.infrastructure.database.schema import evidence, nodes, notes
from notectl.services._helpers import now_iso
from notectl.services.base import BaseService
from notectl.services.result import HAS_CHILDREN, ServiceResult

if TYPE_CHECKING:
    from notectl.infrastructure.repository import RepositoryTransaction

log = structlog.get_logger(__name__)


def node_payload(row: dict[str, Any]) -> dict[str, Any]:
    model = NodeModel.model_validate(row)
    return {
        "id": model.id,
        "label": model.label,
        "type": NodeType(model.type_id).name.lower(),
        "type_id": model.type_id,
        "parent_id": model.parent_id,
        "position": model.position,
        "created_at": model.created_at,
        "updated_at": model.updated_at,
    }


class NodeService(BaseService):
    """Create, move, inspect, and delete nodes."""

    def create_node(
        self,
        label: str,
        *,
        parent_id: int | None = None,
        type_id: int = NodeType.DEFAULT,
        position: int = 0,
        author: str | None = None,
    ) -> ServiceResult:
        op = "create_node"
        if type_id == NodeType.ISSUELIB:
            return self._invalid(op, ["The issue library is created automatically"])

        with self._repo.transaction(author=author) as txn:
            now = now_iso()
            if parent_id is not None and txn.fetch_row(nodes, parent_id) is None:
                return self._not_found(op, "parent node", parent_id)

            values: dict[str, Any] = {
                "label": label,
                "type_id": int(type_id),
                "parent_id": parent_id,
                "position": position,
                "created_at": now,
                "updated_at": now,
            }
            vr = NodeModel.validate_create(values)
            if not vr.valid:
                return self._invalid(op, vr.errors)

            node_id = txn.insert_row(nodes, values)
            txn.record_version("Node", node_id, "create", now)
            txn.track_activity("Node", node_id, "create", now)
            if parent_id is not None:
                txn.touch_node(parent_id, now)

        log.info("node.created", node_id=node_id, label=label, parent_id=parent_id)
        return ServiceResult(ok=True, op=op, data=node_payload({"id": node_id, **values}))

    def update_node(
        self,
        node_id: int,
        *,
        label: str | None = None,
        parent_id: int | None = None,
        to_root: bool = False,
        position: int | None = None,
        author: str | None = None,
    ) -> ServiceResult:
        """Rename, reorder, or move a node.

        *to_root* moves the node to the top level; *parent_id* moves it
        under another node. A node cannot be moved below itself.
        """
        op = "update_node"
        with self._repo.transaction(author=author) as txn:
            now = now_iso()
            row = txn.fetch_row(nodes, node_id)
            if row is None:
                return self._not_found(op, "node", node_id)

            changes: dict[str, Any] = {}
            if label is not None:
                if not label.strip():
                    return self._invalid(op, ["Label can't be blank"])
                changes["label"] = label
            if position is not None:
                changes["position"] = position
            if to_root or parent_id is not None:
                if row["type_id"] == NodeType.ISSUELIB:
                    return self._invalid(op, ["The issue library can't be moved"])
                if parent_id is not None:
                    if txn.fetch_row(nodes, parent_id) is None:
                        return self._not_found(op, "parent node", parent_id)
                    if self._is_descendant(txn, parent_id, node_id):
                        return self._invalid(op, ["A node can't be moved below itself"])
                changes["parent_id"] = None if to_root else parent_id

            fields_changed = sorted(k for k, v in changes.items() if row[k] != v)
            if not fields_changed:
                return ServiceResult(
                    ok=True,
                    op=op,
                    data={**node_payload(row), "fields_changed": []},
                    warnings=["No changes"],
                )

            txn.conn.execute(
                update(nodes).where(nodes.c.id == node_id).values(**changes, updated_at=now)
            )
            txn.record_version("Node", node_id, "update", now, previous=row)
            txn.track_activity("Node", node_id, "update", now)

        log.info("node.updated", node_id=node_id, fields=fields_changed)
        data = node_payload({**row, **changes, "updated_at": now})
        return ServiceResult(ok=True, op=op, data={**data, "fields_changed": fields_changed})

    def get(self, node_id: int) -> ServiceResult:
        """A node with its children, notes, and evidence."""
        op = "get_node"
        row = self._query.get_node(node_id)
        if row is None:
            return self._not_found(op, "node", node_id)

        preview = self.settings.fields.preview_length
        children = [node_payload(child) for child in self._query.list_nodes(parent_id=node_id)]
        note_items = []
        for note_row in self._query.list_notes(node_id=node_id):
            note = NoteModel.model_validate(note_row)
            note_items.append(
                {
                    "id": note.id,
                    "category_id": note.category_id,
                    "title": note.field_or_text("Title", preview),
                    "updated_at": note.updated_at,
                }
            )
        evidence_items = []
        for ev_row in self._query.list_evidence(node_id=node_id):
            ev = EvidenceModel.model_validate(ev_row)
            issue = self._query.get_note(ev.issue_id)
            issue_title = (
                NoteModel.model_validate(issue).field_or_text("Title", preview) if issue else ""
            )
            evidence_items.append(
                {
                    "id": ev.id,
                    "issue_id": ev.issue_id,
                    "issue_title": issue_title,
                    "fields": ev.fields,
                    "updated_at": ev.updated_at,
                }
            )

        data = {
            **node_payload(row),
            "children": children,
            "notes": note_items,
            "evidence": evidence_items,
        }
        return ServiceResult(ok=True, op=op, data=data)

    def list_nodes(self, parent_id: int | None = None) -> ServiceResult:
        """Children of *parent_id*, or the top-level nodes."""
        op = "list_nodes"
        if parent_id is not None and self._query.get_node(parent_id) is None:
            return self._not_found(op, "node", parent_id)
        rows = self._query.list_nodes(parent_id=parent_id, roots_only=parent_id is None)
        items = [
            {**node_payload(row), "children": self._query.count_children(row["id"])}
            for row in rows
        ]
        return ServiceResult(ok=True, op=op, data={"items": items, "count": len(items)})

    def issue_library(self) -> ServiceResult:
        """The issue library node, created on first access."""
        with self._repo.transaction() as txn:
            library_id = txn.issue_library_id(now_iso())
            row = txn.fetch_row(nodes, library_id)
        assert row is not None
        return ServiceResult(ok=True, op="issue_library", data=node_payload(row))

    def delete_node(self, node_id: int, *, author: str | None = None) -> ServiceResult:
        """Delete a leaf node together with its notes and evidence."""
        op = "delete_node"
        with self._repo.transaction(author=author) as txn:
            now = now_iso()
            row = txn.fetch_row(nodes, node_id)
            if row is None:
                return self._not_found(op, "node", node_id)
            if row["type_id"] == NodeType.ISSUELIB:
                return self._invalid(op, ["The issue library can't be deleted"])
            children = self._query.count_children(node_id)
            if children:
                return self._invalid(
                    op,
                    [f"Node {node_id} has {children} child node(s); delete or move them first"],
                    code=HAS_CHILDREN,
                )

            removed_notes = self._destroy_all(txn, notes, "Note", node_id, now)
            removed_evidence = self._destroy_all(txn, evidence, "Evidence", node_id, now)
            txn.record_version("Node", node_id, "destroy", now, previous=row)
            txn.track_activity("Node", node_id, "destroy", now)
            txn.conn.execute(delete(nodes).where(nodes.c.id == node_id))

        log.info(
            "node.deleted",
            node_id=node_id,
            notes=removed_notes,
            evidence=removed_evidence,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": node_id, "notes": removed_notes, "evidence": removed_evidence},
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _is_descendant(txn: RepositoryTransaction, candidate: int, ancestor: int) -> bool:
        """True when *candidate* is *ancestor* or sits anywhere below it."""
        current: int | None = candidate
        seen: set[int] = set()
        while current is not None and current not in seen:
            if current == ancestor:
                return True
            seen.add(current)
            row = txn.conn.execute(select(nodes.c.parent_id).where(nodes.c.id == current)).first()
            current = row.parent_id if row is not None else None
        return False

    @staticmethod
    def _destroy_all(
        txn: RepositoryTransaction,
        table: Any,
        item_type: str,
        node_id: int,
        now: str,
    ) -> int:
        rows = txn.conn.execute(select(table).where(table.c.node_id == node_id)).mappings().all()
        for item in rows:
            txn.record_version(item_type, item["id"], "destroy", now, previous=dict(item))
            txn.track_activity(item_type, item["id"], "destroy", now)
        txn.conn.execute(delete(table).where(table.c.node_id == node_id))
        return len(rows)
