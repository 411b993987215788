"""HistoryService: paper-trail versions, the activity feed, and revert."""

from __future__ import annotations

import json
from typing import Any

from notectl.domain.content import get_content_model
from notectl.services.base import BaseService
from notectl.services.issues import IssueService
from notectl.services.notes import NoteService
from notectl.services.result import NO_SNAPSHOT, ServiceError, ServiceResult

ITEM_TYPES = ("Node", "Note", "Issue", "Evidence")


def _version_payload(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "item_type": row["item_type"],
        "item_id": row["item_id"],
        "event": row["event"],
        "whodunnit": row["whodunnit"],
        "object": json.loads(row["object"]) if row["object"] else None,
        "created_at": row["created_at"],
    }


class HistoryService(BaseService):
    """Read the audit trail of an item and restore earlier text."""

    def versions(self, item_type: str, item_id: int) -> ServiceResult:
        """Every version of one item, oldest first."""
        rows = self._query.list_versions(item_type, item_id)
        items = [_version_payload(row) for row in rows]
        return ServiceResult(
            ok=True,
            op="versions",
            data={"item_type": item_type, "item_id": item_id, "items": items, "count": len(items)},
        )

    def activities(
        self,
        item_type: str | None = None,
        item_id: int | None = None,
        *,
        limit: int | None = None,
    ) -> ServiceResult:
        """The activity feed, newest first, optionally for one item."""
        rows = self._query.list_activities(item_type, item_id, limit=limit)
        items = [
            {
                "id": row["id"],
                "item_type": row["trackable_type"],
                "item_id": row["trackable_id"],
                "action": row["action"],
                "user": row["user"],
                "created_at": row["created_at"],
            }
            for row in rows
        ]
        return ServiceResult(ok=True, op="activities", data={"items": items, "count": len(items)})

    def revert(
        self,
        item_type: str,
        item_id: int,
        version_id: int,
        *,
        author: str | None = None,
    ) -> ServiceResult:
        """Restore the text an item had before *version_id* was recorded.

        The restore is an ordinary update, so it is itself versioned and
        can be reverted in turn.
        """
        op = "revert"
        try:
            model_cls = get_content_model(item_type)
        except KeyError as exc:
            return self._invalid(op, [str(exc).strip("'\"")])

        version = self._query.get_version(version_id)
        if (
            version is None
            or version["item_type"] != item_type
            or version["item_id"] != item_id
        ):
            return self._not_found(op, f"{item_type} version", version_id)
        if not version["object"]:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code=NO_SNAPSHOT,
                    message=f"Version {version_id} has no earlier state to restore",
                ),
            )

        snapshot = json.loads(version["object"])
        text = snapshot[model_cls._text_attr]
        if item_type == "Note":
            result = NoteService(self._repo).update_note(item_id, text=text, author=author)
        elif item_type == "Issue":
            result = IssueService(self._repo).update_issue(item_id, text=text, author=author)
        else:
            result = IssueService(self._repo).update_evidence(
                item_id, content=text, author=author
            )
        if not result.ok:
            return result
        return ServiceResult(
            ok=True,
            op=op,
            data={**result.data, "reverted_to": version_id},
            warnings=result.warnings,
        )
