"""Shared service-layer helper functions."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

_last_stamp = ""


def now_iso() -> str:
    """Current UTC time as ISO 8601 with microseconds.

    Never returns the same value twice in one process: a stamp that
    would not sort after the previous one is pushed 1µs past it, so
    ``updated_at`` ordering follows call order.
    """
    global _last_stamp
    now = datetime.now(UTC)
    if _last_stamp:
        floor = datetime.fromisoformat(_last_stamp) + timedelta(microseconds=1)
        now = max(now, floor)
    _last_stamp = now.isoformat(timespec="microseconds")
    return _last_stamp


def since_iso(days: int) -> str:
    """UTC timestamp *days* ago, comparable with :func:`now_iso` values."""
    return (datetime.now(UTC) - timedelta(days=days)).isoformat(timespec="microseconds")
