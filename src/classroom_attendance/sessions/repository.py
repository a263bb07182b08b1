from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Session


class SessionRepository(Protocol):
    """Durable session record; survives termination for reporting."""

    def create(self, session: Session) -> None:
        raise NotImplementedError

    def get_by_id(self, session_id: str) -> Optional[Session]:
        raise NotImplementedError

    def update_expiry(self, *, session_id: str, expires_at: datetime) -> bool:
        raise NotImplementedError

    def mark_ended(self, *, session_id: str, ended_at: datetime) -> bool:
        """Set ``ended_at`` only if it is still empty."""

        raise NotImplementedError

    def list_for_faculty(self, faculty_id: str, limit: int) -> Sequence[Session]:
        raise NotImplementedError
