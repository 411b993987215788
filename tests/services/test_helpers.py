"""Tests for service helper functions."""

from datetime import datetime

from notectl.services._helpers import now_iso, since_iso


class TestNowIso:
    def test_strictly_increasing(self) -> None:
        stamps = [now_iso() for _ in range(50)]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == len(stamps)

    def test_parses_as_utc(self) -> None:
        parsed = datetime.fromisoformat(now_iso())
        assert parsed.utcoffset() is not None
        assert parsed.utcoffset().total_seconds() == 0


class TestSinceIso:
    def test_in_the_past(self) -> None:
        assert since_iso(1) < now_iso()
        assert since_iso(2) < since_iso(1)
