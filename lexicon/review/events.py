"""
Review events for the statistics and achievement layers.

The session manager publishes an event after an answer is committed.
Subscribers compute their own aggregates; a failing subscriber is logged
and never rolls back the committed answer.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from lexicon.review.models import Direction, ReviewMode, SessionType


@dataclass(frozen=True)
class ReviewSubmitted:
    """An answer was accepted for an item."""

    learner_id: str
    session_id: str
    item_id: str
    rating: int
    mode: ReviewMode
    session_type: SessionType
    direction: Direction
    auto_evaluated: bool
    occurred_at: datetime


@dataclass(frozen=True)
class ItemMastered:
    """A daily review moved an item to the retired level."""

    learner_id: str
    item_id: str
    occurred_at: datetime


ReviewEvent = ReviewSubmitted | ItemMastered
EventListener = Callable[[ReviewEvent], None]


class EventDispatcher:
    """Fan events out to registered listeners."""

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def publish(self, event: ReviewEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:  # Intentionally broad - listeners are external code
                logger.opt(exception=True).error(
                    f"Event listener {listener!r} failed on {type(event).__name__}"
                )
