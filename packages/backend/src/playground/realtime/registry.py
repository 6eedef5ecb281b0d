"""Session registry — process-wide map from session id to event channel.

Learn: A session is created per page request, before its id is ever
shown to a client, and consumed once by the relay worker that the page
opens afterwards:

  create() → (page renders id) → bind(id) by relay → remove(id) on close

Sessions whose page never attaches are expired by the sweeper after a
TTL, so the map does not grow forever. Removing a session closes its
channel, which is the producer's signal to stop pushing.

All operations are synchronous and guarded by one lock: they are called
from request handlers, relay tasks and producer threads alike.
"""

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional

import structlog

from playground.config import settings
from playground.errors import SessionAlreadyBoundError, SessionNotFoundError
from playground.realtime.channel import EventChannel

logger = structlog.get_logger()


def new_session_id() -> str:
    """128-bit random UUID (v4) in canonical text form."""
    return str(uuid.uuid4())


@dataclass
class Session:
    """One registry entry."""

    id: str
    channel: EventChannel
    created_at: float = field(default_factory=time.monotonic)
    bound: bool = False

    @property
    def age(self) -> float:
        return time.monotonic() - self.created_at


class SessionRegistry:
    """Thread-safe map of live sessions."""

    # Attempts before giving up on finding an unused id (only a broken id factory gets here)
    MAX_ID_ATTEMPTS = 8

    def __init__(
        self,
        *,
        channel_maxsize: int = 0,
        id_factory: Callable[[], str] = new_session_id,
    ):
        self.channel_maxsize = channel_maxsize
        self._id_factory = id_factory
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    # ─── Create / read ────────────────────────────────────

    def create(self, maxsize: Optional[int] = None) -> Session:
        """Install a fresh session with an empty channel and return it."""
        channel = EventChannel(self.channel_maxsize if maxsize is None else maxsize)
        with self._lock:
            for _ in range(self.MAX_ID_ATTEMPTS):
                session_id = self._id_factory()
                if session_id not in self._sessions:
                    break
                logger.warning("registry.session_id_collision", session_id=session_id)
            else:
                raise RuntimeError("Could not generate an unused session id")

            session = Session(id=session_id, channel=channel)
            self._sessions[session_id] = session
            total = len(self._sessions)

        logger.info("registry.session_created", session_id=session_id, total=total)
        return session

    def lookup(self, session_id: str) -> Optional[Session]:
        """Return the session for an id, or None if unknown or already removed."""
        with self._lock:
            return self._sessions.get(session_id)

    def bind(self, session_id: str) -> Session:
        """Atomically look up a session and claim it for one relay worker.

        Raises SessionNotFoundError for unknown ids and
        SessionAlreadyBoundError when another worker holds the session.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(f"Session {session_id!r} not found")
            if session.bound:
                raise SessionAlreadyBoundError(f"Session {session_id!r} is already attached")
            session.bound = True
        return session

    # ─── Removal ──────────────────────────────────────────

    def remove(self, session_id: str) -> Optional[Session]:
        """Remove a session and close its channel. Idempotent."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return None
        session.channel.close()
        logger.info("registry.session_removed", session_id=session_id, bound=session.bound)
        return session

    def expire(self, ttl: float) -> list[str]:
        """Remove never-bound sessions older than ttl seconds; return their ids.

        Bound sessions belong to their relay worker, which removes them
        when the connection ends.
        """
        with self._lock:
            stale = [
                s for s in self._sessions.values()
                if not s.bound and s.age > ttl
            ]
            for s in stale:
                del self._sessions[s.id]

        for s in stale:
            s.channel.close()
        if stale:
            logger.info("registry.sessions_expired", count=len(stale), ttl=ttl)
        return [s.id for s in stale]

    def clear(self) -> int:
        """Remove every session (shutdown). Returns the number removed."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for s in sessions:
            s.channel.close()
        return len(sessions)


# Singleton — the app's registry
registry = SessionRegistry(channel_maxsize=settings.channel_maxsize)
