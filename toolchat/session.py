"""Per-session state and serialization."""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Callable

from toolchat.db import Database
from toolchat.models import ChatMessage, SessionState, now_ms

LOGGER = logging.getLogger(__name__)

HOUR_MS = 3_600_000


class SessionManager:
    """Owns every session's message log and settings.

    Each session id gets its own FIFO lock; callers hold it for the whole
    handling of one inbound frame, so a session processes frames one at a
    time in arrival order while different sessions proceed concurrently.
    Locks live only while some handler references them.
    """

    def __init__(
        self,
        db: Database,
        default_model: str,
        ttl_hours: int = 24,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._db = db
        self._default_model = default_model
        self._ttl_ms = ttl_hours * HOUR_MS
        self._clock = clock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def lock(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def _expiry(self, now: int) -> int:
        return now + self._ttl_ms

    def _ensure(self, session_id: str) -> dict[str, object]:
        now = self._clock()
        return self._db.get_or_create_session(session_id, self._default_model, now, self._expiry(now))

    def state(self, session_id: str) -> SessionState:
        """Consistent snapshot of the session, creating it on first contact."""

        row = self._ensure(session_id)
        return SessionState(
            session_id=session_id,
            model=str(row["model"]),
            created_at=int(row["created_at"]),  # type: ignore[arg-type]
            expires_at=int(row["expires_at"]),  # type: ignore[arg-type]
            messages=self._db.list_messages(session_id),
        )

    def model(self, session_id: str) -> str:
        return str(self._ensure(session_id)["model"])

    def append(self, session_id: str, role: str, content: str) -> ChatMessage:
        """Persist one message and extend the session's expiry."""

        self._ensure(session_id)
        now = self._clock()
        # Keep timestamps non-decreasing even if the wall clock steps back.
        ts = max(now, self._db.latest_ts(session_id) or 0)
        message = ChatMessage(role=role, content=content, ts=ts)
        self._db.add_message(session_id, message)
        self._db.touch(session_id, self._expiry(now))
        return message

    def recent(self, session_id: str, limit: int) -> list[ChatMessage]:
        return self._db.get_recent_messages(session_id, limit)

    def set_model(self, session_id: str, model: str) -> None:
        self._ensure(session_id)
        self._db.set_model(session_id, model, self._expiry(self._clock()))
        LOGGER.info("Session %s model set to %r", session_id, model)

    def reset(self, session_id: str) -> None:
        """Clear all messages and restart the session's timestamps."""

        self._ensure(session_id)
        now = self._clock()
        self._db.reset_session(session_id, now, self._expiry(now))
        LOGGER.info("Session %s reset", session_id)
