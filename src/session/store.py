# src/session/store.py
"""In-memory session store with per-session locking and expiry.

Sessions are process-local and ephemeral. One run segment at a time may hold
a session: ``lock`` refuses a second holder instead of queueing it.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from docreview.core.models import AnalysisSession, ProviderConfig
from docreview.session.expiry import ExpiryPolicy, NoExpiry

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Base class for session store errors."""

    def __init__(self, session_id: str, message: str) -> None:
        self.session_id = session_id
        super().__init__(message)


class SessionNotFoundError(SessionError):
    """No live session has this id."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, f"Session not found: {session_id}")


class SessionBusyError(SessionError):
    """A run segment already holds this session."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, f"Session is already being processed: {session_id}")


class SessionStore:
    """Keyed map of live sessions.

    Args:
        expiry: Expiry policy applied by ``get`` and ``purge_expired``.
    """

    def __init__(self, expiry: ExpiryPolicy | None = None) -> None:
        self._sessions: dict[str, AnalysisSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._expiry = expiry or NoExpiry()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def create(
        self,
        document_text: str,
        file_name: str,
        provider_config: ProviderConfig,
    ) -> AnalysisSession:
        """Create and register a fresh session."""
        session = AnalysisSession(
            document_text=document_text,
            file_name=file_name,
            provider_config=provider_config,
        )
        self._sessions[session.id] = session
        logger.info(
            "Session created: id=%s, file=%s, chars=%d",
            session.id, file_name, len(document_text),
        )
        return session

    def get(self, session_id: str) -> AnalysisSession | None:
        """Live session by id, or None. Expired idle sessions are dropped."""
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if not self.is_locked(session_id) and self._is_expired(session):
            logger.info("Session expired: id=%s", session_id)
            self._remove(session_id)
            return None
        return session

    def require(self, session_id: str) -> AnalysisSession:
        """Like ``get`` but raises SessionNotFoundError."""
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def update(self, session: AnalysisSession) -> None:
        """Store ``session`` and refresh its last-access time."""
        session.touch()
        self._sessions[session.id] = session

    def delete(self, session_id: str) -> bool:
        """Remove a session. Returns False if it was absent."""
        existed = session_id in self._sessions
        self._remove(session_id)
        if existed:
            logger.info("Session deleted: id=%s", session_id)
        return existed

    def is_locked(self, session_id: str) -> bool:
        lock = self._locks.get(session_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        """Hold the session exclusively for one run segment.

        Raises:
            SessionBusyError: Another segment holds the session.
        """
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        if lock.locked():
            raise SessionBusyError(session_id)
        await lock.acquire()
        try:
            yield
        finally:
            lock.release()
            if session_id not in self._sessions:
                self._locks.pop(session_id, None)

    def purge_expired(self) -> int:
        """Drop every expired session not currently locked. Returns the count."""
        now = datetime.now(timezone.utc)
        expired = [
            sid for sid, session in self._sessions.items()
            if not self.is_locked(sid) and self._expiry.is_expired(session, now)
        ]
        for sid in expired:
            self._remove(sid)
        if expired:
            logger.info("Purged %d expired session(s)", len(expired))
        return len(expired)

    def _is_expired(self, session: AnalysisSession) -> bool:
        return self._expiry.is_expired(session, datetime.now(timezone.utc))

    def _remove(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        if not self.is_locked(session_id):
            self._locks.pop(session_id, None)
