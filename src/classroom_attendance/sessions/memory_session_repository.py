from __future__ import annotations

import threading
from datetime import datetime
from typing import Optional, Sequence

from .model import Session
from .repository import SessionRepository


class InMemorySessionRepository(SessionRepository):
    """Process-local durable record, used by the ``memory`` storage backend."""

    def __init__(self):
        self._by_id: dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self, session: Session) -> None:
        with self._lock:
            self._by_id[session.session_id] = session

    def get_by_id(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._by_id.get(session_id)

    def update_expiry(self, *, session_id: str, expires_at: datetime) -> bool:
        with self._lock:
            s = self._by_id.get(session_id)
            if not s or s.is_ended:
                return False
            self._by_id[session_id] = s.with_expiry(expires_at)
            return True

    def mark_ended(self, *, session_id: str, ended_at: datetime) -> bool:
        with self._lock:
            s = self._by_id.get(session_id)
            if not s or s.is_ended:
                return False
            self._by_id[session_id] = s.ended(ended_at)
            return True

    def list_for_faculty(self, faculty_id: str, limit: int) -> Sequence[Session]:
        with self._lock:
            items = [s for s in self._by_id.values() if s.faculty_id == faculty_id]
        items.sort(key=lambda s: s.created_at, reverse=True)
        return items[:limit]
