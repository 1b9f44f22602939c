"""
Integration Tests for the SQLAlchemy item store.

Runs against an in-memory SQLite database, so no server is needed.
Covers candidate queries, the atomic review write and a full daily
session driven through the session manager.
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lexicon.core.errors import NotFoundError, UpstreamError
from lexicon.db.database import init_db, session_scope
from lexicon.db.item_store import SqlItemStore
from lexicon.db.models import Review
from lexicon.review.manager import ReviewSessionManager
from lexicon.review.models import (
    Direction,
    ItemPresented,
    ReviewMode,
    SessionCompleted,
    SessionType,
)
from lexicon.review.ports import ItemFilter, ItemPatch, ReviewAttempt

pytestmark = pytest.mark.integration

LEARNER = "learner-1"
NOW = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


@pytest.fixture
def session_factory():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture
def sql_store(session_factory):
    return SqlItemStore(session_factory)


def _add(store, primary, translated, *, days_ago=2, **kwargs):
    """Add a word created (and therefore due) in the past."""
    return store.add_word(
        LEARNER,
        primary,
        translated,
        created_at=NOW - timedelta(days=days_ago),
        **kwargs,
    )


def _count_reviews(factory) -> int:
    with session_scope(factory) as session:
        return session.scalar(select(func.count()).select_from(Review))


def _attempt(item_id, rating=3, session_type=SessionType.DAILY):
    return ReviewAttempt(
        learner_id=LEARNER,
        item_id=item_id,
        session_id="session_test",
        rating=rating,
        mode=ReviewMode.RECOGNITION,
        session_type=session_type,
        direction=Direction.LEARNING_TO_NATIVE,
        reviewed_at=NOW,
    )


class TestAddWord:
    """Authoring new words."""

    def test_initial_schedule(self, sql_store):
        item = sql_store.add_word(LEARNER, " der Hund ", "the dog", ["hound", " "], ["animals"], NOW)

        assert item.primary_text == "der Hund"
        assert item.synonyms == ["hound"]
        assert item.tags == ["animals"]
        assert item.mastery_level == 0
        assert item.current_interval == 1
        assert item.next_review_date == NOW + timedelta(days=1)

    def test_round_trip_is_utc(self, sql_store):
        added = _add(sql_store, "der Hund", "the dog")

        loaded = sql_store.get_item(LEARNER, added.id)

        assert loaded.created_at == added.created_at
        assert loaded.next_review_date.tzinfo is not None

    def test_list_items(self, sql_store):
        _add(sql_store, "b", "B", days_ago=1)
        _add(sql_store, "a", "A", days_ago=5)

        assert [i.primary_text for i in sql_store.list_items(LEARNER)] == ["a", "b"]
        assert sql_store.list_items("nobody") == []


class TestCandidateQueries:
    """fetch_due and fetch_training."""

    def test_fetch_due_order_and_limit(self, sql_store):
        newer = _add(sql_store, "neu", "new", days_ago=2)
        older = _add(sql_store, "alt", "old", days_ago=5)
        _add(sql_store, "morgen", "tomorrow", days_ago=0)

        due = sql_store.fetch_due(LEARNER, NOW, 50)

        assert [i.id for i in due] == [older.id, newer.id]
        assert len(sql_store.fetch_due(LEARNER, NOW, 1)) == 1

    def test_fetch_due_skips_retired(self, sql_store):
        word = _add(sql_store, "Haus", "house")
        sql_store.apply_review(
            _attempt(word.id, 4),
            ItemPatch(mastery_level=5, current_interval=-1, clear_next_review_date=True),
        )

        assert sql_store.fetch_due(LEARNER, NOW, 50) == []

    def test_fetch_training(self, sql_store):
        _add(sql_store, "Hund", "dog", tags=["animals"], days_ago=3)
        cat = _add(sql_store, "Katze", "cat", tags=["animals", "pets"], days_ago=1)
        _add(sql_store, "Brot", "bread", tags=["food"], days_ago=2)

        items = sql_store.fetch_training(LEARNER, ItemFilter(tags=["pets", "animals"]), 20)

        assert [i.primary_text for i in items] == ["Katze", "Hund"]
        assert sql_store.fetch_training(LEARNER, ItemFilter(), 1)[0].id == cat.id

    def test_fetch_training_levels(self, sql_store):
        word = _add(sql_store, "Haus", "house")
        _add(sql_store, "Baum", "tree")
        sql_store.apply_review(_attempt(word.id, 4), ItemPatch(mastery_level=2))

        items = sql_store.fetch_training(LEARNER, ItemFilter(mastery_levels=[2]), 20)

        assert [i.id for i in items] == [word.id]

    def test_other_learner_invisible(self, sql_store):
        word = _add(sql_store, "Haus", "house")

        assert sql_store.get_item("intruder", word.id) is None
        assert sql_store.fetch_due("intruder", NOW, 50) == []


class TestApplyReview:
    """Atomic schedule update plus review row."""

    def test_updates_word_and_logs(self, sql_store, session_factory):
        word = _add(sql_store, "Haus", "house")

        sql_store.apply_review(
            _attempt(word.id, 3),
            ItemPatch(
                mastery_level=1,
                current_interval=6,
                last_review_date=NOW,
                next_review_date=NOW + timedelta(days=6),
            ),
        )

        saved = sql_store.get_item(LEARNER, word.id)
        assert saved.mastery_level == 1
        assert saved.current_interval == 6
        assert saved.last_review_date == NOW
        assert saved.next_review_date == NOW + timedelta(days=6)
        assert _count_reviews(session_factory) == 1

    def test_missing_word_writes_nothing(self, sql_store, session_factory):
        with pytest.raises(NotFoundError):
            sql_store.apply_review(_attempt("missing"), ItemPatch(mastery_level=1))

        assert _count_reviews(session_factory) == 0

    def test_log_attempt_leaves_word(self, sql_store, session_factory):
        word = _add(sql_store, "Haus", "house")

        sql_store.log_attempt(_attempt(word.id, 4, SessionType.TRAINING))

        assert sql_store.get_item(LEARNER, word.id).mastery_level == 0
        assert _count_reviews(session_factory) == 1

    def test_database_error_is_upstream(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'missing' / 'lexicon.db'}"
        broken = SqlItemStore(sessionmaker(bind=create_engine(url)))

        with pytest.raises(UpstreamError):
            broken.fetch_due(LEARNER, NOW, 10)


class TestManagerOnSql:
    """The session manager end to end on the SQL store."""

    def test_daily_input_session(self, sql_store, settings):
        hund = _add(sql_store, "der Hund", "the dog", synonyms=["the hound"], days_ago=3)
        katze = _add(sql_store, "die Katze", "the cat", days_ago=2)
        manager = ReviewSessionManager(sql_store, settings=settings, clock=lambda: NOW)

        created = manager.create_session(LEARNER, ReviewMode.TRANSLATION_INPUT, SessionType.DAILY)
        sid = created.session_id
        answers = {
            (hund.id, Direction.LEARNING_TO_NATIVE): "the hound",
            (katze.id, Direction.LEARNING_TO_NATIVE): "the cat",
            (hund.id, Direction.NATIVE_TO_LEARNING): "der hund",
            (katze.id, Direction.NATIVE_TO_LEARNING): "",
        }

        step = manager.current_item(sid, LEARNER)
        while isinstance(step, ItemPresented):
            answer = answers[(step.item.item_id, step.item.direction)]
            manager.submit_input(sid, LEARNER, step.item.item_id, answer, time_spent=2.0)
            step = manager.current_item(sid, LEARNER)

        assert isinstance(step, SessionCompleted)
        assert step.stats.completed_count == 4
        assert step.stats.correct_count == 3

        # Hund: 3 then 4 -> level 1 then 3
        saved_hund = sql_store.get_item(LEARNER, hund.id)
        assert saved_hund.mastery_level == 3
        assert saved_hund.next_review_date == NOW + timedelta(days=24)
        assert saved_hund.input_history.attempt_count == 2
        assert saved_hund.input_history.correct_count == 2

        # Katze: 4 then 1 -> level 2 then 0
        saved_katze = sql_store.get_item(LEARNER, katze.id)
        assert saved_katze.mastery_level == 0
        assert saved_katze.input_history.last_score == 1
