"""
Database package - SQLAlchemy persistence for vocabulary items.

- models: Word / Review tables
- database: engine, session factory, session_scope, init_db
- item_store: SqlItemStore implementing the review ItemStore port
"""

from lexicon.db.database import get_engine, get_session_factory, init_db, session_scope
from lexicon.db.item_store import SqlItemStore
from lexicon.db.models import Base, Review, Word

__all__ = [
    "Base",
    "Word",
    "Review",
    "SqlItemStore",
    "get_engine",
    "get_session_factory",
    "init_db",
    "session_scope",
]
