from __future__ import annotations

import threading
from datetime import datetime
from typing import Optional, Protocol

from .model import Session


class LiveSessionStore(Protocol):
    """Authoritative map of sessions currently accepting check-ins."""

    def get(self, session_id: str) -> Optional[Session]:
        raise NotImplementedError

    def put(self, session: Session) -> None:
        raise NotImplementedError

    def delete(self, session_id: str) -> bool:
        """Remove ``session_id``; absent keys are a no-op returning False."""

        raise NotImplementedError

    def sweep(self, now: datetime) -> list[str]:
        """Evict entries whose ``expires_at`` is before ``now``."""

        raise NotImplementedError


class InMemoryLiveSessionStore(LiveSessionStore):
    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def put(self, session: Session) -> None:
        with self._lock:
            self._sessions[session.session_id] = session

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def sweep(self, now: datetime) -> list[str]:
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.expires_at < now]
            for sid in expired:
                del self._sessions[sid]
            return expired

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
