from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceLedger(Protocol):
    """Durable one-record-per-(session, student) attendance store."""

    def get(self, session_id: str, student_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def insert(self, record: AttendanceRecord) -> None:
        """Persist ``record``.

        Raises ``DuplicateAttendanceError`` when a record for the same
        (session_id, student_id) pair already exists.
        """

        raise NotImplementedError

    def list_for_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_student(self, student_id: str, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
