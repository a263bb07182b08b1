from __future__ import annotations

from typing import Protocol, Sequence


class EnrollmentRepository(Protocol):
    """Which students take which subject with which faculty."""

    def students_for_subject(self, *, subject: str, faculty_id: str) -> Sequence[str]:
        raise NotImplementedError

    def enroll(self, *, student_id: str, subject: str, faculty_id: str) -> bool:
        """Returns False when the student was already enrolled."""

        raise NotImplementedError
