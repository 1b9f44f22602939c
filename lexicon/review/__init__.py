"""
Review Session Module.

Provides:
- ReviewSessionManager: session lifecycle, answer routing, scheduling writes
- Session data model and operation results
- ItemStore port with an in-memory implementation
- Session table with per-session locking
- Review events for statistics consumers
"""

from lexicon.review.events import EventDispatcher, ItemMastered, ReviewSubmitted
from lexicon.review.manager import ReviewSessionManager, expand_items
from lexicon.review.memory_store import InMemoryItemStore
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

__all__ = [
    # Manager
    "ReviewSessionManager",
    "expand_items",
    # Model
    "ReviewMode",
    "SessionType",
    "Direction",
    "ReviewSession",
    "SessionItem",
    "SessionStats",
    # Results
    "SessionCreated",
    "NoItemsDue",
    "ItemPresented",
    "Advanced",
    "SessionCompleted",
    "HintContent",
    "TrainingPreview",
    # Store
    "ItemStore",
    "InMemoryItemStore",
    "VocabularyItem",
    "InputHistory",
    "ItemFilter",
    "ItemPatch",
    "ReviewAttempt",
    # Sessions
    "SessionTable",
    "InMemorySessionTable",
    # Events
    "EventDispatcher",
    "ReviewSubmitted",
    "ItemMastered",
]
