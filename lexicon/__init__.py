"""
Lexicon - vocabulary review and spaced-repetition engine.

Packages:
- lexicon.core: pure algorithms (similarity, answer evaluation, hints, scheduling)
- lexicon.review: review sessions on top of an item store
- lexicon.db: SQLAlchemy item store
- lexicon.cli: terminal front end
"""

__version__ = "1.0.0"
