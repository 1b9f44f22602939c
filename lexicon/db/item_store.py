"""
SQLAlchemy implementation of the item store port.

Every write runs in its own transaction via session_scope(), so a daily
review (review row + word update) is committed or rolled back as one unit.
Database errors are re-raised as UpstreamError.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TypeVar

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from lexicon.core.errors import NotFoundError, UpstreamError
from lexicon.core.scheduler import RETIRED_LEVEL, initial_schedule
from lexicon.db.database import get_session_factory, session_scope
from lexicon.db.models import Review, Word
from lexicon.review.ports import (
    InputHistory,
    ItemFilter,
    ItemPatch,
    ItemStore,
    ReviewAttempt,
    VocabularyItem,
)

T = TypeVar("T")


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_item(word: Word) -> VocabularyItem:
    """Convert a Word row to the engine's item type."""
    return VocabularyItem(
        id=word.id,
        learner_id=word.learner_id,
        primary_text=word.primary_text,
        translated_text=word.translated_text,
        created_at=_as_utc(word.created_at),
        synonyms=list(word.synonyms or []),
        tags=list(word.tags or []),
        mastery_level=word.mastery_level,
        current_interval=word.current_interval,
        last_review_date=_as_utc(word.last_review_date),
        next_review_date=_as_utc(word.next_review_date),
        input_history=InputHistory.from_dict(word.input_history),
    )


def _review_row(attempt: ReviewAttempt) -> Review:
    return Review(
        learner_id=attempt.learner_id,
        word_id=attempt.item_id,
        session_id=attempt.session_id,
        rating=attempt.rating,
        review_mode=attempt.mode.value,
        session_type=attempt.session_type.value,
        direction=attempt.direction.value,
        user_input=attempt.user_input,
        hints_used=attempt.hints_used,
        time_spent=attempt.time_spent,
        created_at=_as_utc(attempt.reviewed_at),
    )


class SqlItemStore(ItemStore):
    """ItemStore backed by the words/reviews tables."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self._factory = session_factory

    @contextmanager
    def _scope(self) -> Iterator[Session]:
        try:
            with session_scope(self._factory or get_session_factory()) as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Item store error: {e}")
            raise UpstreamError(f"Item store error: {e}") from e

    def _read(self, fn: Callable[[Session], T]) -> T:
        with self._scope() as session:
            return fn(session)

    # =========================================================================
    # Authoring
    # =========================================================================

    def add_word(
        self,
        learner_id: str,
        primary_text: str,
        translated_text: str,
        synonyms: list[str] | None = None,
        tags: list[str] | None = None,
        created_at: datetime | None = None,
    ) -> VocabularyItem:
        """Insert a new word scheduled for tomorrow."""
        created_at = created_at or datetime.now(UTC)
        schedule = initial_schedule(created_at)

        with self._scope() as session:
            word = Word(
                learner_id=learner_id,
                primary_text=primary_text.strip(),
                translated_text=translated_text.strip(),
                synonyms=[s.strip() for s in synonyms or [] if s.strip()],
                tags=[t.strip() for t in tags or [] if t.strip()],
                mastery_level=schedule.mastery_level,
                current_interval=schedule.interval,
                next_review_date=schedule.next_review_date,
                created_at=created_at,
            )
            session.add(word)
            session.flush()
            return to_item(word)

    def list_items(self, learner_id: str) -> list[VocabularyItem]:
        """All of a learner's words, oldest first."""
        stmt = (
            select(Word)
            .where(Word.learner_id == learner_id)
            .order_by(Word.created_at.asc())
        )
        return self._read(lambda s: [to_item(w) for w in s.scalars(stmt)])

    # =========================================================================
    # ItemStore
    # =========================================================================

    def fetch_due(self, learner_id: str, now: datetime, limit: int) -> list[VocabularyItem]:
        stmt = (
            select(Word)
            .where(
                Word.learner_id == learner_id,
                Word.mastery_level < RETIRED_LEVEL,
                Word.next_review_date.is_not(None),
                Word.next_review_date <= _as_utc(now),
            )
            .order_by(Word.next_review_date.asc(), Word.created_at.asc())
            .limit(limit)
        )
        return self._read(lambda s: [to_item(w) for w in s.scalars(stmt)])

    def fetch_training(
        self,
        learner_id: str,
        item_filter: ItemFilter,
        limit: int,
    ) -> list[VocabularyItem]:
        stmt = select(Word).where(Word.learner_id == learner_id)
        if item_filter.mastery_levels:
            stmt = stmt.where(Word.mastery_level.in_(item_filter.mastery_levels))
        else:
            stmt = stmt.where(Word.mastery_level < RETIRED_LEVEL)
        stmt = stmt.order_by(Word.created_at.desc())

        wanted_tags = set(item_filter.tags)

        def run(session: Session) -> list[VocabularyItem]:
            # Tag overlap is checked here; JSON containment is not portable
            selected: list[VocabularyItem] = []
            for word in session.scalars(stmt):
                if wanted_tags and not wanted_tags.intersection(word.tags or []):
                    continue
                selected.append(to_item(word))
                if len(selected) >= limit:
                    break
            return selected

        return self._read(run)

    def get_item(self, learner_id: str, item_id: str) -> VocabularyItem | None:
        def run(session: Session) -> VocabularyItem | None:
            word = session.get(Word, item_id)
            if word is None or word.learner_id != learner_id:
                return None
            return to_item(word)

        return self._read(run)

    def apply_review(self, attempt: ReviewAttempt, patch: ItemPatch) -> None:
        with self._scope() as session:
            word = session.get(Word, attempt.item_id)
            if word is None or word.learner_id != attempt.learner_id:
                raise NotFoundError(f"Item {attempt.item_id} not found", item_id=attempt.item_id)

            if patch.mastery_level is not None:
                word.mastery_level = patch.mastery_level
            if patch.current_interval is not None:
                word.current_interval = patch.current_interval
            if patch.last_review_date is not None:
                word.last_review_date = _as_utc(patch.last_review_date)
            if patch.clear_next_review_date:
                word.next_review_date = None
            elif patch.next_review_date is not None:
                word.next_review_date = _as_utc(patch.next_review_date)
            if patch.input_history is not None:
                word.input_history = patch.input_history.to_dict()

            session.add(_review_row(attempt))

    def log_attempt(self, attempt: ReviewAttempt) -> None:
        with self._scope() as session:
            session.add(_review_row(attempt))
