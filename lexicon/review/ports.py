"""
Item store port.

The review engine does not own vocabulary persistence. It reads candidate
items and writes scheduling fields through the ItemStore interface, so the
same session manager runs against the in-process store, the SQLAlchemy
store, or anything else that implements these methods.

Implementations:
- InMemoryItemStore: lexicon.review.memory_store (tests, offline use)
- SqlItemStore: lexicon.db.item_store (SQLAlchemy)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from lexicon.review.models import Direction, ReviewMode, SessionType


@dataclass
class InputHistory:
    """Rolling accuracy record for typed answers on one item."""

    correct_count: int = 0
    attempt_count: int = 0
    last_score: int | None = None
    average_response_seconds: float = 0.0

    def updated(self, rating: int, time_spent: float) -> InputHistory:
        """New record after one more typed attempt."""
        if self.attempt_count == 0:
            average = time_spent
        else:
            average = (self.average_response_seconds + time_spent) / 2
        return InputHistory(
            correct_count=self.correct_count + (1 if rating >= 3 else 0),
            attempt_count=self.attempt_count + 1,
            last_score=rating,
            average_response_seconds=average,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "correct_count": self.correct_count,
            "attempt_count": self.attempt_count,
            "last_score": self.last_score,
            "average_response_seconds": self.average_response_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> InputHistory | None:
        if not data:
            return None
        return cls(
            correct_count=int(data.get("correct_count", 0)),
            attempt_count=int(data.get("attempt_count", 0)),
            last_score=data.get("last_score"),
            average_response_seconds=float(data.get("average_response_seconds", 0.0)),
        )


@dataclass
class VocabularyItem:
    """A learner's vocabulary item as seen by the review engine."""

    id: str
    learner_id: str
    primary_text: str
    translated_text: str
    created_at: datetime
    synonyms: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    mastery_level: int = 0
    current_interval: int = 1
    last_review_date: datetime | None = None
    next_review_date: datetime | None = None
    input_history: InputHistory | None = None

    def prompt_for(self, direction: Direction) -> str:
        if direction is Direction.LEARNING_TO_NATIVE:
            return self.primary_text
        return self.translated_text

    def answer_for(self, direction: Direction) -> str:
        if direction is Direction.LEARNING_TO_NATIVE:
            return self.translated_text
        return self.primary_text


@dataclass(frozen=True)
class ItemPatch:
    """
    Fields to change on an item.

    Only populated fields are applied; None means "leave as is".
    """

    mastery_level: int | None = None
    current_interval: int | None = None
    last_review_date: datetime | None = None
    next_review_date: datetime | None = None
    clear_next_review_date: bool = False  # retired items lose their due date
    input_history: InputHistory | None = None

    def apply_to(self, item: VocabularyItem) -> VocabularyItem:
        """Return a copy of the item with the patch applied."""
        changes: dict[str, Any] = {}
        if self.mastery_level is not None:
            changes["mastery_level"] = self.mastery_level
        if self.current_interval is not None:
            changes["current_interval"] = self.current_interval
        if self.last_review_date is not None:
            changes["last_review_date"] = self.last_review_date
        if self.clear_next_review_date:
            changes["next_review_date"] = None
        elif self.next_review_date is not None:
            changes["next_review_date"] = self.next_review_date
        if self.input_history is not None:
            changes["input_history"] = self.input_history
        return replace(item, **changes)


@dataclass(frozen=True)
class ReviewAttempt:
    """One answered item, appended to the review log."""

    learner_id: str
    item_id: str
    session_id: str
    rating: int
    mode: ReviewMode
    session_type: SessionType
    direction: Direction
    reviewed_at: datetime
    user_input: str | None = None
    hints_used: int = 0
    time_spent: float = 0.0


class ItemFilter(BaseModel):
    """Caller-supplied filter for training sessions."""

    tags: list[str] = Field(default_factory=list)
    mastery_levels: list[int] = Field(default_factory=list)
    limit: int | None = Field(default=None, ge=1)

    @field_validator("mastery_levels")
    @classmethod
    def _levels_in_range(cls, value: list[int]) -> list[int]:
        for level in value:
            if not 0 <= level <= 5:
                raise ValueError(f"mastery level {level} outside 0-5")
        return value


class ItemStore(ABC):
    """Abstract store for a learner's vocabulary items.

    All methods take learner_id; items of other learners are invisible.
    Any failure should surface as an exception, the session manager maps
    it to UpstreamError.
    """

    @abstractmethod
    def fetch_due(self, learner_id: str, now: datetime, limit: int) -> list[VocabularyItem]:
        """Items with mastery_level < 5 and next_review_date <= now.

        Ordered by next_review_date, then created_at, oldest first.
        """

    @abstractmethod
    def fetch_training(
        self,
        learner_id: str,
        item_filter: ItemFilter,
        limit: int,
    ) -> list[VocabularyItem]:
        """Items for a training session, newest first.

        Without explicit mastery_levels only active items (level < 5)
        are returned; tags match when any tag overlaps.
        """

    @abstractmethod
    def get_item(self, learner_id: str, item_id: str) -> VocabularyItem | None:
        """Single item, or None when it does not exist for this learner."""

    @abstractmethod
    def apply_review(self, attempt: ReviewAttempt, patch: ItemPatch) -> None:
        """Append the attempt and patch the item as one atomic unit."""

    @abstractmethod
    def log_attempt(self, attempt: ReviewAttempt) -> None:
        """Append the attempt without touching the item."""
