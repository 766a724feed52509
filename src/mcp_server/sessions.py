"""Session Registry for the MCP Server.

Tracks per-connection initialization state and the agent identity supplied
at ``initialize``. Sessions expire after a period of inactivity and the
registry holds at most ``max_sessions`` entries, evicting the least
recently seen first.
"""

import asyncio
import uuid
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Optional

from shared.logging import get_logger
from shared.models import SessionState

logger = get_logger(__name__)


def generate_session_id() -> str:
    """Create a new collision-resistant session identifier."""
    return f"mcp-session-{uuid.uuid4().hex}"


class SessionRegistry:
    """
    In-process store of MCP sessions.

    Responsibilities:
    - Create sessions lazily on first contact
    - Record initialization and the client-declared agent id
    - Expire idle sessions and bound total size
    """

    def __init__(
        self,
        ttl_minutes: int = 60,
        max_sessions: int = 10_000
    ) -> None:
        """
        Initialize the session registry.

        Args:
            ttl_minutes: Idle time after which a session is dropped
            max_sessions: Maximum number of sessions kept in memory
        """
        self.ttl = timedelta(minutes=ttl_minutes)
        self.max_sessions = max_sessions

        self._sessions: OrderedDict[str, SessionState] = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def _expired(self, session: SessionState, now: datetime) -> bool:
        return now - session.last_seen > self.ttl

    def _purge_stale(self, now: datetime) -> None:
        # Ordered by last contact, so stale sessions sit at the front.
        while self._sessions:
            session_id, oldest = next(iter(self._sessions.items()))
            if not self._expired(oldest, now):
                break
            del self._sessions[session_id]
            logger.info("Session expired", session_id=session_id)

    def _evict_overflow(self) -> None:
        while len(self._sessions) > self.max_sessions:
            session_id, _ = self._sessions.popitem(last=False)
            logger.info("Session evicted", session_id=session_id)

    async def get(self, session_id: str) -> Optional[SessionState]:
        """
        Get a session by ID.

        Args:
            session_id: Session identifier

        Returns:
            Session if found and not expired, None otherwise
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None

            if self._expired(session, datetime.utcnow()):
                del self._sessions[session_id]
                logger.info("Session expired", session_id=session_id)
                return None

            return session

    async def touch(self, session_id: str) -> SessionState:
        """
        Get or lazily create a session and mark it as recently seen.

        Args:
            session_id: Session identifier supplied by the transport

        Returns:
            Session state
        """
        now = datetime.utcnow()
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is not None and self._expired(session, now):
                del self._sessions[session_id]
                session = None

            if session is None:
                self._purge_stale(now)
                session = SessionState(session_id=session_id, created_at=now, last_seen=now)
                self._sessions[session_id] = session
                logger.debug("Session created", session_id=session_id)
            else:
                session.last_seen = now
                self._sessions.move_to_end(session_id)

            self._evict_overflow()
            return session

    async def initialize(
        self,
        session_id: str,
        agent_id: Optional[str] = None
    ) -> SessionState:
        """
        Mark a session initialized, overwriting any previous record.

        Args:
            session_id: Session identifier
            agent_id: Agent identity declared by the client, if any

        Returns:
            The new session state
        """
        now = datetime.utcnow()
        session = SessionState(
            session_id=session_id,
            initialized=True,
            agent_id=agent_id,
            created_at=now,
            last_seen=now,
        )
        async with self._lock:
            self._sessions[session_id] = session
            self._sessions.move_to_end(session_id)
            self._evict_overflow()

        logger.info("Session initialized", session_id=session_id, agent_id=agent_id)
        return session

    async def cleanup_expired(self) -> int:
        """
        Remove expired sessions.

        Returns:
            Number of sessions removed
        """
        now = datetime.utcnow()
        async with self._lock:
            expired = [
                session_id for session_id, session in self._sessions.items()
                if self._expired(session, now)
            ]
            for session_id in expired:
                del self._sessions[session_id]

        if expired:
            logger.info("Expired sessions cleaned up", count=len(expired))

        return len(expired)
