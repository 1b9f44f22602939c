"""
In-process item store.

Holds items and the attempt log in dictionaries guarded by one lock.
Used by the test suite and for offline experiments; the SQLAlchemy store
in lexicon.db.item_store is the persistent counterpart.
"""

from __future__ import annotations

import threading
import uuid
from datetime import UTC, datetime

from lexicon.core.scheduler import RETIRED_LEVEL, initial_schedule
from lexicon.review.ports import (
    ItemFilter,
    ItemPatch,
    ItemStore,
    ReviewAttempt,
    VocabularyItem,
)


class InMemoryItemStore(ItemStore):
    """ItemStore backed by plain dictionaries."""

    def __init__(self, items: list[VocabularyItem] | None = None):
        self._lock = threading.Lock()
        self._items: dict[str, VocabularyItem] = {}
        self.attempts: list[ReviewAttempt] = []
        for item in items or []:
            self._items[item.id] = item

    def add(
        self,
        learner_id: str,
        primary_text: str,
        translated_text: str,
        synonyms: list[str] | None = None,
        tags: list[str] | None = None,
        created_at: datetime | None = None,
    ) -> VocabularyItem:
        """Create an item with the initial schedule (due tomorrow)."""
        created_at = created_at or datetime.now(UTC)
        schedule = initial_schedule(created_at)
        item = VocabularyItem(
            id=str(uuid.uuid4()),
            learner_id=learner_id,
            primary_text=primary_text,
            translated_text=translated_text,
            created_at=created_at,
            synonyms=list(synonyms or []),
            tags=list(tags or []),
            mastery_level=schedule.mastery_level,
            current_interval=schedule.interval,
            next_review_date=schedule.next_review_date,
        )
        self.put(item)
        return item

    def put(self, item: VocabularyItem) -> None:
        with self._lock:
            self._items[item.id] = item

    def all_items(self, learner_id: str) -> list[VocabularyItem]:
        with self._lock:
            return [i for i in self._items.values() if i.learner_id == learner_id]

    def fetch_due(self, learner_id: str, now: datetime, limit: int) -> list[VocabularyItem]:
        with self._lock:
            due = [
                item
                for item in self._items.values()
                if item.learner_id == learner_id
                and item.mastery_level < RETIRED_LEVEL
                and item.next_review_date is not None
                and item.next_review_date <= now
            ]
        due.sort(key=lambda i: (i.next_review_date, i.created_at))
        return due[:limit]

    def fetch_training(
        self,
        learner_id: str,
        item_filter: ItemFilter,
        limit: int,
    ) -> list[VocabularyItem]:
        wanted_tags = set(item_filter.tags)
        wanted_levels = set(item_filter.mastery_levels)

        with self._lock:
            candidates = [i for i in self._items.values() if i.learner_id == learner_id]

        selected = []
        for item in candidates:
            if wanted_levels:
                if item.mastery_level not in wanted_levels:
                    continue
            elif item.mastery_level >= RETIRED_LEVEL:
                continue
            if wanted_tags and not wanted_tags.intersection(item.tags):
                continue
            selected.append(item)

        selected.sort(key=lambda i: i.created_at, reverse=True)
        return selected[:limit]

    def get_item(self, learner_id: str, item_id: str) -> VocabularyItem | None:
        with self._lock:
            item = self._items.get(item_id)
        if item is None or item.learner_id != learner_id:
            return None
        return item

    def apply_review(self, attempt: ReviewAttempt, patch: ItemPatch) -> None:
        with self._lock:
            item = self._items.get(attempt.item_id)
            if item is None or item.learner_id != attempt.learner_id:
                raise KeyError(f"Item {attempt.item_id} not found")
            self._items[item.id] = patch.apply_to(item)
            self.attempts.append(attempt)

    def log_attempt(self, attempt: ReviewAttempt) -> None:
        with self._lock:
            self.attempts.append(attempt)
