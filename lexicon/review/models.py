"""
Review session data model.

Sessions are ephemeral and live only in the session table. Each session
is an ordered list of SessionItem entries walked by a cursor; in
translation_input mode the list holds every source item twice (first
learning->native, then native->learning) and the cursor crossing
round_boundary moves the session to round 2.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from lexicon.core.evaluator import Evaluation

if TYPE_CHECKING:
    from lexicon.review.ports import VocabularyItem


class ReviewMode(str, Enum):
    """How items are presented and answered."""

    RECOGNITION = "recognition"  # show item, learner self-rates
    TRANSLATION_INPUT = "translation_input"  # type the answer, both directions
    REVERSE_INPUT = "reverse_input"  # type the answer, native -> learning
    MIXED = "mixed"  # reserved, behaves like recognition

    @property
    def is_input(self) -> bool:
        """Answers are typed and auto-evaluated."""
        return self in (ReviewMode.TRANSLATION_INPUT, ReviewMode.REVERSE_INPUT)


class SessionType(str, Enum):
    """Whether answers move the schedule."""

    DAILY = "daily"  # persists scheduling changes
    TRAINING = "training"  # logs attempts only


class Direction(str, Enum):
    """Which side of the item is the prompt."""

    LEARNING_TO_NATIVE = "learning_to_native"  # prompt primary, expect translation
    NATIVE_TO_LEARNING = "native_to_learning"  # prompt translation, expect primary


@dataclass
class SessionItem:
    """One presentation of an item in a fixed direction."""

    item_id: str
    direction: Direction
    prompt: str
    expected_answer: str
    synonyms: list[str] = field(default_factory=list)
    completed: bool = False


@dataclass
class SessionStats:
    """Running totals for a session."""

    total_items: int = 0
    completed_count: int = 0
    correct_count: int = 0
    sum_ratings: int = 0
    sum_response_seconds: float = 0.0

    @property
    def average_rating(self) -> float:
        if self.completed_count == 0:
            return 0.0
        return self.sum_ratings / self.completed_count

    @property
    def accuracy(self) -> float:
        if self.completed_count == 0:
            return 0.0
        return self.correct_count / self.completed_count

    def record(self, rating: int, time_spent: float) -> None:
        """Count one answered item."""
        self.completed_count += 1
        self.sum_ratings += rating
        self.sum_response_seconds += time_spent
        if rating >= 3:
            self.correct_count += 1

    def copy(self) -> SessionStats:
        return SessionStats(
            total_items=self.total_items,
            completed_count=self.completed_count,
            correct_count=self.correct_count,
            sum_ratings=self.sum_ratings,
            sum_response_seconds=self.sum_response_seconds,
        )


@dataclass
class ReviewSession:
    """Live state of one learner's review session."""

    session_id: str
    learner_id: str
    mode: ReviewMode
    session_type: SessionType
    items: list[SessionItem]
    started_at: datetime
    last_activity_at: datetime
    cursor: int = 0
    current_round: int = 1
    round_boundary: int | None = None  # cursor value where round 2 starts
    stats: SessionStats = field(default_factory=SessionStats)

    @property
    def is_complete(self) -> bool:
        return self.cursor >= len(self.items)

    @property
    def current(self) -> SessionItem | None:
        if self.is_complete:
            return None
        return self.items[self.cursor]

    @property
    def remaining(self) -> int:
        """Items left after the current one."""
        return max(len(self.items) - self.cursor - 1, 0)

    def advance_cursor(self) -> None:
        """Mark the current item done and move on, switching round at the boundary."""
        self.items[self.cursor].completed = True
        self.cursor += 1
        if self.round_boundary is not None and self.cursor == self.round_boundary:
            self.current_round = 2


@dataclass
class FinishedSession:
    """What is kept after a session leaves the table."""

    session_id: str
    learner_id: str
    mode: ReviewMode
    session_type: SessionType
    stats: SessionStats
    finished_at: datetime


# =============================================================================
# Operation Results
# =============================================================================


@dataclass
class SessionCreated:
    """A new session with its first item."""

    session_id: str
    mode: ReviewMode
    session_type: SessionType
    total_items: int
    current_round: int
    item: SessionItem
    remaining: int
    completed: bool = False


@dataclass
class NoItemsDue:
    """Nothing to review; no session was created."""

    session_type: SessionType
    message: str
    completed: bool = True


@dataclass
class ItemPresented:
    """The item the learner should answer next."""

    session_id: str
    item: SessionItem
    remaining: int
    current_round: int
    total_items: int
    completed: bool = False


@dataclass
class SessionCompleted:
    """Terminal result carrying the final stats."""

    session_id: str
    stats: SessionStats
    completed: bool = True
    auto_evaluated: bool = False
    evaluation: Evaluation | None = None
    rating: int | None = None


@dataclass
class Advanced:
    """An answer was accepted and the cursor moved to the next item."""

    session_id: str
    rating: int
    item: SessionItem
    remaining: int
    current_round: int
    stats: SessionStats
    auto_evaluated: bool = False
    evaluation: Evaluation | None = None
    completed: bool = False


@dataclass
class TrainingPreview:
    """Items a training session would contain, with a per-tag breakdown."""

    items: list[VocabularyItem]
    by_tags: dict[str, int]

    @property
    def count(self) -> int:
        return len(self.items)


@dataclass
class HintContent:
    """Hint returned to the learner for one item."""

    item_id: str
    hint_type: str
    content: str
    penalty_applied: bool

    @property
    def max_score_now(self) -> int:
        return 2 if self.penalty_applied else 4
