"""
Session Store
=============

In-memory session records with one lock per session.

Records are replaced wholesale on every accepted operation; readers get
copies so nothing outside the state machine can mutate a stored session.

Version: 0.1.0
"""

import asyncio
from typing import Any

from zkarena.errors import SessionNotFound
from zkarena.ledger.models import Phase, Session
from zkarena.logging import get_logger

logger = get_logger(__name__)


class SessionStore:
    """
    In-memory session store.

    Data is stored in memory and lost on restart.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        logger.debug("session_store_initialized")

    def lock(self, session_id: str) -> asyncio.Lock:
        """
        The lock serializing all operations on one session.

        Locks exist only for stored sessions and go away with them.

        Raises:
            SessionNotFound: If no session has this id
        """
        if session_id not in self._sessions:
            raise SessionNotFound(session_id)
        if session_id not in self._locks:
            self._locks[session_id] = asyncio.Lock()
        return self._locks[session_id]

    async def get(self, session_id: str) -> Session:
        """
        Return a copy of a stored session.

        Raises:
            SessionNotFound: If no session has this id
        """
        try:
            return self._sessions[session_id].model_copy(deep=True)
        except KeyError as e:
            raise SessionNotFound(session_id) from e

    async def exists(self, session_id: str) -> bool:
        return session_id in self._sessions

    async def put(self, session: Session) -> None:
        """Replace the stored record."""
        self._sessions[session.session_id] = session.model_copy(deep=True)

    async def delete(self, session_id: str) -> None:
        """Drop a session record and its lock."""
        self._sessions.pop(session_id, None)
        self._locks.pop(session_id, None)

    async def session_ids(self) -> list[str]:
        return list(self._sessions)

    async def health_check(self) -> dict[str, Any]:
        """Store statistics."""
        by_phase: dict[str, int] = {}
        for session in self._sessions.values():
            by_phase[session.phase.value] = by_phase.get(session.phase.value, 0) + 1
        return {
            "status": "healthy",
            "sessions": len(self._sessions),
            "active": sum(
                1 for s in self._sessions.values() if s.phase not in (Phase.COMPLETE, Phase.ABANDONED)
            ),
            "by_phase": by_phase,
        }

    def clear_all(self) -> None:
        """Clear all data (for testing)."""
        self._sessions.clear()
        self._locks.clear()
