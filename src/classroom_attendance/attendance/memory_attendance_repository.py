from __future__ import annotations

import threading
from typing import Optional, Sequence

from ..core.exceptions import DuplicateAttendanceError
from .model import AttendanceRecord
from .repository import AttendanceLedger


class InMemoryAttendanceLedger(AttendanceLedger):
    def __init__(self):
        self._by_pair: dict[tuple[str, str], AttendanceRecord] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str, student_id: str) -> Optional[AttendanceRecord]:
        with self._lock:
            return self._by_pair.get((session_id, student_id))

    def insert(self, record: AttendanceRecord) -> None:
        key = (record.session_id, record.student_id)
        with self._lock:
            if key in self._by_pair:
                raise DuplicateAttendanceError(key)
            self._by_pair[key] = record

    def list_for_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        with self._lock:
            items = [r for r in self._by_pair.values() if r.session_id == session_id]
        items.sort(key=lambda r: r.timestamp)
        return items

    def list_for_student(self, student_id: str, limit: int) -> Sequence[AttendanceRecord]:
        with self._lock:
            items = [r for r in self._by_pair.values() if r.student_id == student_id]
        items.sort(key=lambda r: r.timestamp, reverse=True)
        return items[:limit]

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_pair)
