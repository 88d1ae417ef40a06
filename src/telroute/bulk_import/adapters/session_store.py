"""In-memory import session store.

Previewed files live here between the preview, edit and commit requests.
Sessions expire after ``ttl_seconds``; the oldest session is evicted when
``max_sessions`` is reached.
"""

import asyncio
import logging
import time
from typing import Optional

from ..domain.entities import ImportSession
from ..domain.ports import IImportSessionStore

logger = logging.getLogger(__name__)


class InMemoryImportSessionStore(IImportSessionStore):
    """Process-local session storage."""

    def __init__(self, ttl_seconds: int = 3600, max_sessions: int = 50):
        """Initialize the store.

        Args:
            ttl_seconds: Lifetime of an untouched session (default: 1 hour)
            max_sessions: Sessions kept at most
        """
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self._sessions: dict[str, tuple[float, ImportSession]] = {}
        self._lock = asyncio.Lock()

    async def save(self, session: ImportSession) -> None:
        async with self._lock:
            self._expire()
            if session.id not in self._sessions and len(self._sessions) >= self.max_sessions:
                oldest = min(self._sessions, key=lambda k: self._sessions[k][0])
                self._sessions.pop(oldest)
                logger.warning(f"Evicted import session {oldest} (limit {self.max_sessions})")
            self._sessions[session.id] = (time.monotonic(), session)

    async def get(self, session_id: str) -> Optional[ImportSession]:
        async with self._lock:
            self._expire()
            entry = self._sessions.get(session_id)
            if entry is None:
                return None
            self._sessions[session_id] = (time.monotonic(), entry[1])
            return entry[1]

    async def discard(self, session_id: str) -> None:
        async with self._lock:
            self._sessions.pop(session_id, None)

    def _expire(self) -> None:
        cutoff = time.monotonic() - self.ttl_seconds
        expired = [k for k, (touched, _) in self._sessions.items() if touched < cutoff]
        for key in expired:
            self._sessions.pop(key)
        if expired:
            logger.debug(f"Expired {len(expired)} import session(s)")
