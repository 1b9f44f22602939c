"""
Review Session Manager - orchestration of review sessions.

Builds a session from the learner's items, walks the cursor through it,
grades each answer (self-rating in recognition mode, the answer evaluator
in input modes) and, for daily sessions, pushes the rating through the
mastery scheduler and writes the new schedule back to the item store.

Lifecycle:
    create_session -> (current_item / submit_* / request_hint)* -> completed
                                                       \\-> end_session

Guarantees:
- One submission advances the cursor by exactly one; mutations of a
  session are serialized on its lock.
- A daily answer is committed to the store before the cursor moves. If
  the store write fails the cursor and stats stay where they were and the
  same item can be submitted again.
- Training answers only append to the attempt log; a failed log write is
  logged and the session moves on.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, TypeVar

from loguru import logger

from config import Settings, get_settings
from lexicon.core.errors import (
    ConflictError,
    LexiconError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from lexicon.core.evaluator import AnswerEvaluator, Evaluation
from lexicon.core.hints import HintType, generate_hint
from lexicon.core.scheduler import RETIRED_LEVEL, advance, validate_rating
from lexicon.review.events import EventDispatcher, EventListener, ItemMastered, ReviewSubmitted
from lexicon.review.models import (
    Advanced,
    Direction,
    HintContent,
    ItemPresented,
    NoItemsDue,
    ReviewMode,
    ReviewSession,
    SessionCompleted,
    SessionCreated,
    SessionItem,
    SessionStats,
    SessionType,
    TrainingPreview,
)
from lexicon.review.ports import (
    InputHistory,
    ItemFilter,
    ItemPatch,
    ItemStore,
    ReviewAttempt,
    VocabularyItem,
)
from lexicon.review.session_store import InMemorySessionTable, SessionTable

E = TypeVar("E", bound=Enum)

# Direction plan per mode; translation_input runs both rounds in order
MODE_DIRECTIONS: dict[ReviewMode, tuple[Direction, ...]] = {
    ReviewMode.RECOGNITION: (Direction.LEARNING_TO_NATIVE,),
    ReviewMode.MIXED: (Direction.LEARNING_TO_NATIVE,),
    ReviewMode.REVERSE_INPUT: (Direction.NATIVE_TO_LEARNING,),
    ReviewMode.TRANSLATION_INPUT: (
        Direction.LEARNING_TO_NATIVE,
        Direction.NATIVE_TO_LEARNING,
    ),
}


def _coerce(enum_cls: type[E], value: E | str, name: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {name}: {value!r}. Expected one of: {allowed}") from None


def _require_id(value: str | None, name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{name} is required")
    return str(value)


def expand_items(
    items: list[VocabularyItem],
    mode: ReviewMode,
) -> tuple[list[SessionItem], int | None]:
    """
    Turn source items into the session's presentation list.

    Returns:
        (session items, round boundary) where the boundary is the cursor
        value at which round 2 starts, or None for single-round modes
    """
    directions = MODE_DIRECTIONS[mode]
    session_items = [
        SessionItem(
            item_id=item.id,
            direction=direction,
            prompt=item.prompt_for(direction),
            expected_answer=item.answer_for(direction),
            synonyms=list(item.synonyms),
        )
        for direction in directions
        for item in items
    ]
    boundary = len(items) if len(directions) > 1 else None
    return session_items, boundary


class ReviewSessionManager:
    """
    Stateful orchestrator for review sessions.

    Coordinates the item store, answer evaluator, mastery scheduler and the
    session table. Safe to share between threads; sessions of different
    learners never block each other.
    """

    def __init__(
        self,
        item_store: ItemStore,
        session_table: SessionTable | None = None,
        settings: Settings | None = None,
        evaluator: AnswerEvaluator | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the manager.

        Args:
            item_store: Source of items and sink for schedule updates
            session_table: Live session storage (in-memory by default)
            settings: Settings override (defaults to get_settings())
            evaluator: Answer evaluator for input modes
            clock: Returns the current UTC time; injectable for tests
        """
        self.settings = settings or get_settings()
        self.item_store = item_store
        self.sessions = session_table or InMemorySessionTable(
            ledger_size=self.settings.finished_session_ledger_size
        )
        self.evaluator = evaluator or AnswerEvaluator()
        self.events = EventDispatcher()
        self._clock = clock or (lambda: datetime.now(UTC))

    # =========================================================================
    # Session Lifecycle
    # =========================================================================

    def create_session(
        self,
        learner_id: str,
        mode: ReviewMode | str,
        session_type: SessionType | str,
        item_filter: ItemFilter | dict[str, Any] | None = None,
    ) -> SessionCreated | NoItemsDue:
        """
        Start a session over the learner's due (daily) or filtered (training) items.

        Returns:
            SessionCreated with the first item, or NoItemsDue when there is
            nothing to review (no session is stored in that case)
        """
        learner_id = _require_id(learner_id, "learner_id")
        mode = _coerce(ReviewMode, mode, "mode")
        session_type = _coerce(SessionType, session_type, "session_type")
        item_filter = self._parse_filter(item_filter)
        now = self._clock()

        candidates = self._fetch_candidates(learner_id, session_type, item_filter, now)
        if not candidates:
            logger.info(f"No items for {session_type.value} session of learner {learner_id}")
            message = (
                "No items due for review today"
                if session_type is SessionType.DAILY
                else "No items found for training"
            )
            return NoItemsDue(session_type=session_type, message=message)

        # A learner drives one session at a time
        for stale in self.sessions.list_sessions(learner_id):
            with self.sessions.locked(stale.session_id):
                if self.sessions.get(stale.session_id) is not None:
                    self.sessions.finish(stale, now)
                    logger.info(f"Session {stale.session_id} replaced by a new session")

        items, boundary = expand_items(candidates, mode)
        session = ReviewSession(
            session_id=f"session_{uuid.uuid4().hex}",
            learner_id=learner_id,
            mode=mode,
            session_type=session_type,
            items=items,
            started_at=now,
            last_activity_at=now,
            round_boundary=boundary,
            stats=SessionStats(total_items=len(items)),
        )
        self.sessions.add(session)

        logger.info(
            f"Created {session_type.value} session {session.session_id} "
            f"({mode.value}, {len(candidates)} items, {len(items)} presentations)"
        )

        return SessionCreated(
            session_id=session.session_id,
            mode=mode,
            session_type=session_type,
            total_items=len(items),
            current_round=session.current_round,
            item=items[0],
            remaining=session.remaining,
        )

    def current_item(self, session_id: str, learner_id: str) -> ItemPresented | SessionCompleted:
        """The item to answer next, or the final stats once the session is over."""
        session_id = _require_id(session_id, "session_id")
        learner_id = _require_id(learner_id, "learner_id")

        with self.sessions.locked(session_id):
            session = self.sessions.get(session_id)
            if session is None:
                return self._finished_result(session_id, learner_id)
            self._check_owner(session, learner_id)

            if session.is_complete:
                record = self.sessions.finish(session, self._clock())
                return SessionCompleted(session_id=session_id, stats=record.stats)

            return ItemPresented(
                session_id=session_id,
                item=session.items[session.cursor],
                remaining=session.remaining,
                current_round=session.current_round,
                total_items=len(session.items),
            )

    def submit_rating(
        self,
        session_id: str,
        learner_id: str,
        item_id: str,
        rating: int,
        time_spent: float = 0,
        direction: Direction | str | None = None,
    ) -> Advanced | SessionCompleted:
        """
        Submit a self-assessed rating (1-4) for the current item.

        Accepted in every mode; in input modes it stands for an answer the
        learner graded without typing (e.g. "don't know"). Passing the
        direction the answer was given in rejects a retried round-1 answer
        once the same item comes back in round 2.
        """
        rating = validate_rating(rating)
        return self._submit(
            session_id,
            learner_id,
            item_id,
            time_spent=time_spent,
            direction=direction,
            rating=int(rating),
        )

    def submit_input(
        self,
        session_id: str,
        learner_id: str,
        item_id: str,
        user_input: str,
        hints_used: int = 0,
        time_spent: float = 0,
        direction: Direction | str | None = None,
    ) -> Advanced | SessionCompleted:
        """Submit a typed answer; the rating comes from the answer evaluator."""
        if hints_used < 0:
            raise ValidationError(f"hints_used must be >= 0, got {hints_used}")
        return self._submit(
            session_id,
            learner_id,
            item_id,
            time_spent=time_spent,
            direction=direction,
            user_input=user_input if user_input is not None else "",
            hints_used=hints_used,
        )

    def request_hint(
        self,
        learner_id: str,
        item_id: str,
        hint_type: HintType | str,
        hints_already_used: int = 0,
        direction: Direction | str = Direction.LEARNING_TO_NATIVE,
    ) -> HintContent:
        """Hint for the answer of an item in the given direction."""
        learner_id = _require_id(learner_id, "learner_id")
        item_id = _require_id(item_id, "item_id")
        kind = _coerce(HintType, hint_type, "hint_type")
        direction = _coerce(Direction, direction, "direction")
        if hints_already_used < 0:
            raise ValidationError(f"hints_already_used must be >= 0, got {hints_already_used}")

        item = self._load_item(learner_id, item_id)
        hint = generate_hint(item.answer_for(direction), kind, hints_already_used)

        return HintContent(
            item_id=item_id,
            hint_type=kind.value,
            content=hint.content,
            penalty_applied=hint.penalty_applies,
        )

    def end_session(self, session_id: str, learner_id: str) -> SessionStats:
        """
        Terminate a session and return its final stats.

        Idempotent: ending a session that already ended (or completed on
        its own) returns the stats recorded at that time.
        """
        session_id = _require_id(session_id, "session_id")
        learner_id = _require_id(learner_id, "learner_id")

        with self.sessions.locked(session_id):
            session = self.sessions.get(session_id)
            if session is None:
                return self._finished_result(session_id, learner_id).stats
            self._check_owner(session, learner_id)

            record = self.sessions.finish(session, self._clock())
            logger.info(
                f"Session {session_id} ended by learner {learner_id} "
                f"({record.stats.completed_count}/{record.stats.total_items} answered)"
            )
            return record.stats

    def training_preview(
        self,
        learner_id: str,
        item_filter: ItemFilter | dict[str, Any] | None = None,
    ) -> TrainingPreview:
        """
        List the items a training session with this filter would contain.

        Uses the same selection as create_session (newest first, limit
        capped by settings) and creates no session.
        """
        learner_id = _require_id(learner_id, "learner_id")
        item_filter = self._parse_filter(item_filter)

        items = self._fetch_candidates(learner_id, SessionType.TRAINING, item_filter, self._clock())
        by_tags: dict[str, int] = {}
        for item in items:
            for tag in item.tags:
                by_tags[tag] = by_tags.get(tag, 0) + 1

        return TrainingPreview(items=items, by_tags=by_tags)

    def subscribe(self, listener: EventListener) -> None:
        """Register a listener for ReviewSubmitted / ItemMastered events."""
        self.events.subscribe(listener)

    def sweep_stale(self, max_idle: timedelta | None = None) -> int:
        """Remove sessions idle longer than max_idle; returns how many."""
        if max_idle is None:
            max_idle = timedelta(hours=self.settings.session_max_idle_hours)
        return self.sessions.cleanup_expired(max_idle, self._clock())

    # =========================================================================
    # Submission
    # =========================================================================

    def _submit(
        self,
        session_id: str,
        learner_id: str,
        item_id: str,
        time_spent: float,
        direction: Direction | str | None = None,
        rating: int | None = None,
        user_input: str | None = None,
        hints_used: int = 0,
    ) -> Advanced | SessionCompleted:
        session_id = _require_id(session_id, "session_id")
        learner_id = _require_id(learner_id, "learner_id")
        item_id = _require_id(item_id, "item_id")
        if time_spent < 0:
            raise ValidationError(f"time_spent must be >= 0, got {time_spent}")
        if direction is not None:
            direction = _coerce(Direction, direction, "direction")

        events: list[ReviewSubmitted | ItemMastered] = []

        with self.sessions.locked(session_id):
            session = self._require_session(session_id, learner_id)
            current = session.current
            if current is None or current.item_id != item_id:
                expected = current.item_id if current else None
                raise ConflictError(
                    f"Item {item_id} is not the current item (expected {expected})",
                    session_id=session_id,
                    item_id=item_id,
                )
            if direction is not None and current.direction is not direction:
                raise ConflictError(
                    f"Item {item_id} is expected in direction {current.direction.value}, "
                    f"got {direction.value}",
                    session_id=session_id,
                    item_id=item_id,
                )

            evaluation: Evaluation | None = None
            if user_input is not None:
                if not session.mode.is_input:
                    raise ValidationError(
                        f"Typed answers are not accepted in {session.mode.value} mode",
                        session_id=session_id,
                    )
                evaluation = self.evaluator.evaluate(
                    user_input, current.expected_answer, current.synonyms, hints_used
                )
                rating = evaluation.score

            now = self._clock()
            attempt = ReviewAttempt(
                learner_id=learner_id,
                item_id=item_id,
                session_id=session_id,
                rating=rating,
                mode=session.mode,
                session_type=session.session_type,
                direction=current.direction,
                reviewed_at=now,
                user_input=user_input,
                hints_used=hints_used,
                time_spent=time_spent,
            )

            if session.session_type is SessionType.DAILY:
                mastered = self._commit_daily(attempt, auto_evaluated=evaluation is not None)
                if mastered:
                    events.append(ItemMastered(learner_id=learner_id, item_id=item_id, occurred_at=now))
            else:
                self._log_training(attempt)

            session.stats.record(rating, time_spent)
            session.advance_cursor()
            session.last_activity_at = now
            events.insert(
                0,
                ReviewSubmitted(
                    learner_id=learner_id,
                    session_id=session_id,
                    item_id=item_id,
                    rating=rating,
                    mode=session.mode,
                    session_type=session.session_type,
                    direction=current.direction,
                    auto_evaluated=evaluation is not None,
                    occurred_at=now,
                ),
            )
            logger.debug(
                f"Session {session_id}: item {item_id} rated {rating} "
                f"({session.cursor}/{len(session.items)})"
            )

            if session.is_complete:
                record = self.sessions.finish(session, now)
                logger.info(
                    f"Session {session_id} completed: {record.stats.correct_count}/"
                    f"{record.stats.completed_count} correct"
                )
                result: Advanced | SessionCompleted = SessionCompleted(
                    session_id=session_id,
                    stats=record.stats,
                    auto_evaluated=evaluation is not None,
                    evaluation=evaluation,
                    rating=rating,
                )
            else:
                result = Advanced(
                    session_id=session_id,
                    rating=rating,
                    item=session.items[session.cursor],
                    remaining=session.remaining,
                    current_round=session.current_round,
                    stats=session.stats.copy(),
                    auto_evaluated=evaluation is not None,
                    evaluation=evaluation,
                )

        for event in events:
            self.events.publish(event)
        return result

    def _commit_daily(self, attempt: ReviewAttempt, auto_evaluated: bool) -> bool:
        """
        Schedule and persist one daily answer.

        Returns:
            True when this answer retired the item
        """
        item = self._load_item(attempt.learner_id, attempt.item_id)
        update = advance(item.mastery_level, attempt.rating, attempt.reviewed_at)

        history = None
        if auto_evaluated:
            history = (item.input_history or InputHistory()).updated(
                attempt.rating, attempt.time_spent
            )

        patch = ItemPatch(
            mastery_level=update.mastery_level,
            current_interval=update.interval,
            last_review_date=attempt.reviewed_at,
            next_review_date=update.next_review_date,
            clear_next_review_date=update.is_retired,
            input_history=history,
        )

        try:
            self.item_store.apply_review(attempt, patch)
        except LexiconError:
            raise
        except Exception as e:  # Intentionally broad - any store failure blocks the advance
            logger.error(f"Failed to save review of item {attempt.item_id}: {e}")
            raise UpstreamError(
                f"Could not save review: {e}",
                session_id=attempt.session_id,
                item_id=attempt.item_id,
            ) from e

        return update.is_retired and item.mastery_level < RETIRED_LEVEL

    def _log_training(self, attempt: ReviewAttempt) -> None:
        try:
            self.item_store.log_attempt(attempt)
        except Exception as e:  # Intentionally broad - training logs never block the session
            logger.warning(f"Could not log training attempt for item {attempt.item_id}: {e}")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _parse_filter(self, item_filter: ItemFilter | dict[str, Any] | None) -> ItemFilter:
        if item_filter is None:
            return ItemFilter()
        if isinstance(item_filter, ItemFilter):
            return item_filter
        try:
            return ItemFilter.model_validate(item_filter)
        except ValueError as e:
            raise ValidationError(f"Invalid filter: {e}") from e

    def _fetch_candidates(
        self,
        learner_id: str,
        session_type: SessionType,
        item_filter: ItemFilter,
        now: datetime,
    ) -> list[VocabularyItem]:
        try:
            if session_type is SessionType.DAILY:
                return self.item_store.fetch_due(
                    learner_id, now, self.settings.daily_session_limit
                )
            limit = min(
                item_filter.limit or self.settings.training_session_limit,
                self.settings.training_session_max,
            )
            return self.item_store.fetch_training(learner_id, item_filter, limit)
        except LexiconError:
            raise
        except Exception as e:  # Intentionally broad - surface any store failure uniformly
            logger.error(f"Failed to load items for learner {learner_id}: {e}")
            raise UpstreamError(f"Could not load items: {e}") from e

    def _load_item(self, learner_id: str, item_id: str) -> VocabularyItem:
        try:
            item = self.item_store.get_item(learner_id, item_id)
        except LexiconError:
            raise
        except Exception as e:  # Intentionally broad - surface any store failure uniformly
            logger.error(f"Failed to load item {item_id}: {e}")
            raise UpstreamError(f"Could not load item: {e}", item_id=item_id) from e

        if item is None:
            raise NotFoundError(f"Item {item_id} not found", item_id=item_id)
        return item

    def _require_session(self, session_id: str, learner_id: str) -> ReviewSession:
        session = self.sessions.get(session_id)
        if session is None:
            finished = self.sessions.get_finished(session_id)
            if finished is not None and finished.learner_id == learner_id:
                raise ConflictError(
                    f"Session {session_id} is already completed", session_id=session_id
                )
            raise NotFoundError(f"Session {session_id} not found", session_id=session_id)
        self._check_owner(session, learner_id)
        return session

    def _check_owner(self, session: ReviewSession, learner_id: str) -> None:
        if session.learner_id != learner_id:
            raise NotFoundError(
                f"Session {session.session_id} not found", session_id=session.session_id
            )

    def _finished_result(self, session_id: str, learner_id: str) -> SessionCompleted:
        finished = self.sessions.get_finished(session_id)
        if finished is None or finished.learner_id != learner_id:
            raise NotFoundError(f"Session {session_id} not found", session_id=session_id)
        return SessionCompleted(session_id=session_id, stats=finished.stats.copy())
