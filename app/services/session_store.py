from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import AsyncIterator, Callable, Dict, Optional

from ..models import IntentResult, Message, Session, Turn

logger = logging.getLogger(__name__)

DEFAULT_PURGE_INTERVAL_SECONDS = 60.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _TurnLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class SessionStore:
    """In-memory session context keyed by session id, with TTL expiry.

    Sessions handed out are copies; the store is the only owner of live state.
    Expired sessions are swept on access at most once per purge interval.
    ``turn()`` serializes turns of one session while other sessions proceed
    in parallel.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 1800.0,
        history_limit: int = 10,
        clock: Callable[[], datetime] = _utcnow,
        purge_interval_seconds: float | None = None,
    ) -> None:
        if history_limit < 1:
            raise ValueError("history_limit must be >= 1")
        self._ttl = timedelta(seconds=ttl_seconds)
        if purge_interval_seconds is None:
            purge_interval_seconds = min(ttl_seconds, DEFAULT_PURGE_INTERVAL_SECONDS)
        self._purge_interval = timedelta(seconds=purge_interval_seconds)
        self._history_limit = history_limit
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._turn_locks: Dict[str, _TurnLock] = {}
        self._lock = Lock()
        self._last_purge = clock()

    @property
    def history_limit(self) -> int:
        return self._history_limit

    @staticmethod
    def _require_id(session_id: str) -> str:
        if not session_id or not session_id.strip():
            raise ValueError("session_id is required")
        return session_id

    def _live(self, session_id: str, now: datetime) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is not None and session.is_expired(now):
            logger.debug("Session expired session_id=%s", session_id)
            del self._sessions[session_id]
            return None
        return session

    def _purge_locked(self, now: datetime) -> int:
        expired = [sid for sid, session in self._sessions.items() if session.is_expired(now)]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def _maybe_purge(self, now: datetime) -> None:
        """Sweep expired sessions at most once per purge interval; caller holds the lock."""
        if now - self._last_purge < self._purge_interval:
            return
        self._last_purge = now
        removed = self._purge_locked(now)
        if removed:
            logger.info("Purged %d expired sessions", removed)

    def _create(self, session_id: str, now: datetime) -> Session:
        session = Session(id=session_id, created_at=now, expires_at=now + self._ttl)
        self._sessions[session_id] = session
        return session

    def load(self, session_id: str) -> Session:
        """Existing live session, or a fresh one under the same id."""
        self._require_id(session_id)
        now = self._clock()
        with self._lock:
            self._maybe_purge(now)
            session = self._live(session_id, now) or self._create(session_id, now)
            return session.model_copy(deep=True)

    def get(self, session_id: str) -> Session | None:
        if not session_id:
            return None
        with self._lock:
            session = self._live(session_id, self._clock())
            return session.model_copy(deep=True) if session is not None else None

    def append(self, session_id: str, message: Message, result: IntentResult) -> Session:
        """Record a turn: evict beyond the cap, merge entities, refresh expiry."""
        self._require_id(session_id)
        now = self._clock()
        with self._lock:
            self._maybe_purge(now)
            session = self._live(session_id, now) or self._create(session_id, now)
            history = [*session.history, Turn(message=message, result=result)][-self._history_limit:]
            session = session.model_copy(
                update={
                    "history": history,
                    "accumulated_entities": session.accumulated_entities.merged_with(result.entities),
                    "last_intent": result.intent,
                    "expires_at": now + self._ttl,
                }
            )
            self._sessions[session_id] = session
            return session.model_copy(deep=True)

    def expire(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def purge_expired(self) -> int:
        """Remove expired sessions and return how many were dropped."""
        now = self._clock()
        with self._lock:
            self._last_purge = now
            removed = self._purge_locked(now)
        if removed:
            logger.info("Purged %d expired sessions", removed)
        return removed

    def size(self) -> int:
        with self._lock:
            return len(self._sessions)

    @asynccontextmanager
    async def turn(self, session_id: str) -> AsyncIterator[None]:
        """Hold the per-session turn lock for the duration of the block."""
        self._require_id(session_id)
        with self._lock:
            entry = self._turn_locks.setdefault(session_id, _TurnLock())
            entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            with self._lock:
                entry.holders -= 1
                if entry.holders == 0:
                    self._turn_locks.pop(session_id, None)
