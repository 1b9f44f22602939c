"""
Mastery Scheduler - fixed-table spaced repetition.

Each item carries a mastery level 0-5. A review rating moves the level
and the new level selects the interval until the next review:

    rating 1 (again) -> level 0
    rating 2 (hard)  -> level unchanged
    rating 3 (good)  -> level + 1, at most 4
    rating 4 (easy)  -> level + 2, at most 5

    level:    0  1  2   3   4   5
    days:     1  6  12  24  48  retired

Level 5 retires the item from due queries. A later rating of 1 still
sends it back to level 0; there is no guard against that.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import IntEnum
from typing import Protocol

from lexicon.core.errors import ValidationError

MIN_LEVEL = 0
MAX_ACTIVE_LEVEL = 4
RETIRED_LEVEL = 5
RETIRED_INTERVAL = -1

MASTERY_INTERVALS: dict[int, int] = {
    0: 1,  # new word
    1: 6,
    2: 12,
    3: 24,
    4: 48,
    5: RETIRED_INTERVAL,  # mastered, excluded from reviews
}


class Rating(IntEnum):
    """Review quality rating."""

    AGAIN = 1  # didn't know
    HARD = 2  # recalled with difficulty
    GOOD = 3
    EASY = 4


@dataclass(frozen=True)
class ScheduleUpdate:
    """New scheduling fields for an item after a review."""

    mastery_level: int
    interval: int  # days, RETIRED_INTERVAL when retired
    next_review_date: datetime | None  # None when retired

    @property
    def is_retired(self) -> bool:
        return self.mastery_level >= RETIRED_LEVEL


@dataclass
class ProgressStats:
    """Counts across a learner's items."""

    total: int = 0
    mastered: int = 0
    due_today: int = 0
    by_mastery_level: dict[int, int] = field(
        default_factory=lambda: {level: 0 for level in MASTERY_INTERVALS}
    )


class Schedulable(Protocol):
    mastery_level: int
    next_review_date: datetime | None


def _utc_now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(UTC)
    if now.tzinfo is None:
        raise ValidationError("Timestamps must be timezone-aware (UTC)")
    return now


def validate_rating(rating: int) -> Rating:
    """Reject anything that is not an integer 1-4."""
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError(f"Invalid rating: {rating!r}. Must be 1-4.")
    try:
        return Rating(rating)
    except ValueError:
        raise ValidationError(f"Invalid rating: {rating}. Must be 1-4.") from None


def validate_level(level: int) -> int:
    if isinstance(level, bool) or not isinstance(level, int) or not (
        MIN_LEVEL <= level <= RETIRED_LEVEL
    ):
        raise ValidationError(f"Invalid mastery level: {level!r}. Must be 0-5.")
    return level


def next_level(current_level: int, rating: int) -> int:
    """Apply the transition table."""
    current_level = validate_level(current_level)
    rating = validate_rating(rating)

    if rating is Rating.AGAIN:
        return MIN_LEVEL
    if rating is Rating.HARD:
        return current_level
    if rating is Rating.GOOD:
        return min(current_level + 1, MAX_ACTIVE_LEVEL)
    return min(current_level + 2, RETIRED_LEVEL)


def advance(
    current_level: int,
    rating: int,
    now: datetime | None = None,
) -> ScheduleUpdate:
    """
    Compute the new schedule after a review.

    Args:
        current_level: Mastery level before the review (0-5)
        rating: Review rating (1-4)
        now: Review time, defaults to the current UTC time

    Returns:
        ScheduleUpdate with level, interval and next due date

    Raises:
        ValidationError: rating or level out of range
    """
    new_level = next_level(current_level, rating)
    interval = MASTERY_INTERVALS[new_level]
    reviewed_at = _utc_now(now)

    if interval == RETIRED_INTERVAL:
        return ScheduleUpdate(mastery_level=new_level, interval=interval, next_review_date=None)

    return ScheduleUpdate(
        mastery_level=new_level,
        interval=interval,
        next_review_date=reviewed_at + timedelta(days=interval),
    )


def initial_schedule(now: datetime | None = None) -> ScheduleUpdate:
    """Schedule for a freshly added item: level 0, due tomorrow."""
    created_at = _utc_now(now)
    interval = MASTERY_INTERVALS[MIN_LEVEL]
    return ScheduleUpdate(
        mastery_level=MIN_LEVEL,
        interval=interval,
        next_review_date=created_at + timedelta(days=interval),
    )


def is_due(
    mastery_level: int,
    next_review_date: datetime | None,
    now: datetime | None = None,
) -> bool:
    """
    Whether an item should be reviewed today.

    Compares calendar dates only, so anything due later today counts.
    """
    if mastery_level >= RETIRED_LEVEL or next_review_date is None:
        return False

    today = _utc_now(now).date()
    if next_review_date.tzinfo is not None:
        next_review_date = next_review_date.astimezone(UTC)
    return next_review_date.date() <= today


def progress_stats(items: Iterable[Schedulable], now: datetime | None = None) -> ProgressStats:
    """Tally items by level, mastered and due today."""
    today = _utc_now(now)
    stats = ProgressStats()

    for item in items:
        stats.total += 1
        stats.by_mastery_level[item.mastery_level] = (
            stats.by_mastery_level.get(item.mastery_level, 0) + 1
        )
        if item.mastery_level >= RETIRED_LEVEL:
            stats.mastered += 1
        elif is_due(item.mastery_level, item.next_review_date, today):
            stats.due_today += 1

    return stats
