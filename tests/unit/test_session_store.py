"""
Unit tests for the in-memory session table.

Run: pytest tests/unit/test_session_store.py -v
"""

from datetime import UTC, datetime, timedelta

import pytest

from lexicon.review.models import (
    Direction,
    ReviewMode,
    ReviewSession,
    SessionItem,
    SessionStats,
    SessionType,
)
from lexicon.review.session_store import InMemorySessionTable

STARTED = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


def _session(session_id: str, learner_id: str = "learner-1", items: int = 2) -> ReviewSession:
    return ReviewSession(
        session_id=session_id,
        learner_id=learner_id,
        mode=ReviewMode.RECOGNITION,
        session_type=SessionType.DAILY,
        items=[
            SessionItem(f"item-{n}", Direction.LEARNING_TO_NATIVE, f"p{n}", f"a{n}")
            for n in range(items)
        ],
        started_at=STARTED,
        last_activity_at=STARTED,
        stats=SessionStats(total_items=items),
    )


class TestSessionTable:
    """Live sessions."""

    def test_add_and_get(self):
        table = InMemorySessionTable()
        session = _session("s1")

        table.add(session)

        assert table.get("s1") is session
        assert len(table) == 1

    def test_duplicate_id_rejected(self):
        table = InMemorySessionTable()
        table.add(_session("s1"))

        with pytest.raises(KeyError):
            table.add(_session("s1"))

    def test_unknown_is_none(self):
        assert InMemorySessionTable().get("nope") is None

    def test_list_by_learner(self):
        table = InMemorySessionTable()
        table.add(_session("s1", "a"))
        table.add(_session("s2", "b"))
        table.add(_session("s3", "a"))

        assert {s.session_id for s in table.list_sessions("a")} == {"s1", "s3"}
        assert len(table.list_sessions()) == 3


class TestFinishedLedger:
    """Final stats survive removal from the table."""

    def test_finish_moves_to_ledger(self):
        table = InMemorySessionTable()
        session = _session("s1")
        session.stats.record(4, 2.0)
        table.add(session)

        record = table.finish(session, STARTED)

        assert table.get("s1") is None
        assert table.get_finished("s1") == record
        assert record.stats.completed_count == 1

    def test_ledger_stats_are_a_snapshot(self):
        table = InMemorySessionTable()
        session = _session("s1")
        table.add(session)

        record = table.finish(session, STARTED)
        session.stats.record(1, 0)

        assert record.stats.completed_count == 0

    def test_ledger_is_bounded(self):
        table = InMemorySessionTable(ledger_size=2)
        for n in range(3):
            session = _session(f"s{n}")
            table.add(session)
            table.finish(session, STARTED)

        assert table.get_finished("s0") is None
        assert table.get_finished("s1") is not None
        assert table.get_finished("s2") is not None

    def test_zero_ledger_keeps_nothing(self):
        table = InMemorySessionTable(ledger_size=0)
        session = _session("s1")
        table.add(session)
        table.finish(session, STARTED)

        assert table.get_finished("s1") is None


class TestLocking:
    """Per-session lock."""

    def test_lock_released_after_block(self):
        table = InMemorySessionTable()
        table.add(_session("s1"))

        with table.locked("s1"):
            pass
        with table.locked("s1"):
            assert table.get("s1") is not None

    def test_lock_for_unknown_id_is_dropped(self):
        table = InMemorySessionTable()

        with table.locked("ghost"):
            pass

        assert "ghost" not in table._locks


class TestCleanupExpired:
    """Idle sweep."""

    def test_removes_idle_sessions(self):
        table = InMemorySessionTable()
        idle = _session("idle")
        active = _session("active")
        active.last_activity_at = STARTED + timedelta(hours=11)
        table.add(idle)
        table.add(active)

        removed = table.cleanup_expired(timedelta(hours=12), STARTED + timedelta(hours=13))

        assert removed == 1
        assert table.get("idle") is None
        assert table.get("active") is active
        assert table.get_finished("idle") is not None

    def test_nothing_to_sweep(self):
        table = InMemorySessionTable()
        table.add(_session("s1"))

        assert table.cleanup_expired(timedelta(hours=12), STARTED) == 0
