"""
Session table for live review sessions.

Sessions are kept in process memory, keyed by session id. Every mutation
of a session happens while holding that session's lock, so a retried
submission cannot advance the cursor twice. Finished sessions leave the
table; only their final stats stay behind in a bounded ledger so that a
late "end session" or "current item" call still gets an answer.

The SessionTable interface lets an external cache replace the in-memory
table without touching the session manager.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta

from loguru import logger

from lexicon.review.models import FinishedSession, ReviewSession


class SessionTable(ABC):
    """Storage for live sessions and recently finished ones."""

    @abstractmethod
    def add(self, session: ReviewSession) -> None:
        """Register a new session."""

    @abstractmethod
    def get(self, session_id: str) -> ReviewSession | None:
        """Live session, or None."""

    @abstractmethod
    def finish(self, session: ReviewSession, finished_at: datetime) -> FinishedSession:
        """Remove a session from the table and remember its final stats."""

    @abstractmethod
    def get_finished(self, session_id: str) -> FinishedSession | None:
        """Final record of a session that already left the table."""

    @abstractmethod
    def locked(self, session_id: str) -> Iterator[None]:
        """Context manager serializing mutations of one session."""

    @abstractmethod
    def list_sessions(self, learner_id: str | None = None) -> list[ReviewSession]:
        """Live sessions, optionally for one learner."""

    def cleanup_expired(self, max_idle: timedelta, now: datetime) -> int:
        """Finish every session idle for longer than max_idle."""
        removed = 0
        for session in self.list_sessions():
            with self.locked(session.session_id):
                live = self.get(session.session_id)
                if live is None or now - live.last_activity_at <= max_idle:
                    continue
                self.finish(live, now)
                removed += 1
        return removed


class InMemorySessionTable(SessionTable):
    """Dictionary-backed session table with one lock per session."""

    def __init__(self, ledger_size: int = 256):
        self._guard = threading.Lock()
        self._sessions: dict[str, ReviewSession] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._finished: OrderedDict[str, FinishedSession] = OrderedDict()
        self._ledger_size = ledger_size

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)

    def add(self, session: ReviewSession) -> None:
        with self._guard:
            if session.session_id in self._sessions:
                raise KeyError(f"Session {session.session_id} already exists")
            self._sessions[session.session_id] = session
            self._locks.setdefault(session.session_id, threading.Lock())

    def get(self, session_id: str) -> ReviewSession | None:
        with self._guard:
            return self._sessions.get(session_id)

    def finish(self, session: ReviewSession, finished_at: datetime) -> FinishedSession:
        record = FinishedSession(
            session_id=session.session_id,
            learner_id=session.learner_id,
            mode=session.mode,
            session_type=session.session_type,
            stats=session.stats.copy(),
            finished_at=finished_at,
        )
        with self._guard:
            self._sessions.pop(session.session_id, None)
            self._locks.pop(session.session_id, None)
            if self._ledger_size > 0:
                self._finished[session.session_id] = record
                while len(self._finished) > self._ledger_size:
                    self._finished.popitem(last=False)
        return record

    def get_finished(self, session_id: str) -> FinishedSession | None:
        with self._guard:
            return self._finished.get(session_id)

    @contextmanager
    def locked(self, session_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(session_id, threading.Lock())
        try:
            with lock:
                yield
        finally:
            with self._guard:
                # Drop locks of ids that never became (or no longer are) live sessions
                if session_id not in self._sessions and self._locks.get(session_id) is lock:
                    if not lock.locked():
                        del self._locks[session_id]

    def list_sessions(self, learner_id: str | None = None) -> list[ReviewSession]:
        with self._guard:
            sessions = list(self._sessions.values())
        if learner_id is not None:
            sessions = [s for s in sessions if s.learner_id == learner_id]
        return sessions

    def cleanup_expired(self, max_idle: timedelta, now: datetime) -> int:
        removed = super().cleanup_expired(max_idle, now)
        if removed:
            logger.info(f"Swept {removed} idle review session(s)")
        return removed
