from __future__ import annotations

import threading
from typing import Sequence

from .repository import EnrollmentRepository


class InMemoryEnrollmentRepository(EnrollmentRepository):
    def __init__(self):
        # (student_id, subject) is unique, matching the table constraint.
        self._rows: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def students_for_subject(self, *, subject: str, faculty_id: str) -> Sequence[str]:
        with self._lock:
            return sorted(s for (s, subj), fac in self._rows.items() if subj == subject and fac == faculty_id)

    def enroll(self, *, student_id: str, subject: str, faculty_id: str) -> bool:
        with self._lock:
            key = (student_id, subject)
            if key in self._rows:
                return False
            self._rows[key] = faculty_id
            return True
