"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings  # noqa: E402
from lexicon.review.manager import ReviewSessionManager  # noqa: E402
from lexicon.review.memory_store import InMemoryItemStore  # noqa: E402
from lexicon.review.ports import VocabularyItem  # noqa: E402

LEARNER = "learner-1"
NOW = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite in memory)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class Clock:
    """Controllable clock for the session manager."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def tick(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings():
    """Settings isolated from the environment and .env file."""
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        log_file=None,
        daily_session_limit=50,
        training_session_limit=20,
        training_session_max=100,
        session_max_idle_hours=12,
        finished_session_ledger_size=16,
    )


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def make_item():
    """Factory for vocabulary items, due an hour ago by default."""
    counter = {"n": 0}

    def _make(
        primary_text: str = "der Hund",
        translated_text: str = "the dog",
        *,
        learner_id: str = LEARNER,
        synonyms: list[str] | None = None,
        tags: list[str] | None = None,
        mastery_level: int = 0,
        next_review_date: datetime | None = NOW - timedelta(hours=1),
        created_at: datetime | None = None,
        item_id: str | None = None,
    ) -> VocabularyItem:
        counter["n"] += 1
        return VocabularyItem(
            id=item_id or f"item-{counter['n']}",
            learner_id=learner_id,
            primary_text=primary_text,
            translated_text=translated_text,
            created_at=created_at or NOW - timedelta(days=30) + timedelta(minutes=counter["n"]),
            synonyms=list(synonyms or []),
            tags=list(tags or []),
            mastery_level=mastery_level,
            next_review_date=next_review_date,
        )

    return _make


@pytest.fixture
def store():
    return InMemoryItemStore()


@pytest.fixture
def manager(store, settings, clock):
    return ReviewSessionManager(store, settings=settings, clock=clock)


@pytest.fixture
def sample_words(store, make_item):
    """Three due words for the default learner."""
    words = [
        make_item("der Hund", "the dog", synonyms=["the hound"], tags=["animals"]),
        make_item("die Katze", "the cat", tags=["animals"]),
        make_item("guten Morgen", "good morning", tags=["phrases"]),
    ]
    for word in words:
        store.put(word)
    return words
