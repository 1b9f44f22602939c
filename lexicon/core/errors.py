"""
Error taxonomy for the review engine.

- ValidationError: malformed input, rejected before any state is touched
- NotFoundError: unknown session/item, or a session owned by another learner
- ConflictError: submission for an item that is not the session's current item
- UpstreamError: the item store failed to read or write
"""

from __future__ import annotations


class LexiconError(Exception):
    """Base class for all review engine errors."""

    def __init__(
        self,
        message: str,
        *,
        session_id: str | None = None,
        item_id: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.session_id = session_id
        self.item_id = item_id


class ValidationError(LexiconError, ValueError):
    """Raised for malformed ratings, identifiers or arguments."""


class NotFoundError(LexiconError):
    """Raised when a session or item does not exist for this learner."""


class ConflictError(LexiconError):
    """Raised when the client is out of sync with the session cursor."""


class UpstreamError(LexiconError):
    """Raised when the item store fails."""
