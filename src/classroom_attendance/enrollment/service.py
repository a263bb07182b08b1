from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..common.validators import require_non_empty
from ..core.exceptions import ValidationError
from .repository import EnrollmentRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssignmentResult:
    students: int
    subjects: int
    assigned: int
    already_enrolled: int


def _id_list(values: Any, field_name: str) -> list[str]:
    if not isinstance(values, list) or not values:
        raise ValidationError(f"{field_name} must be a non-empty array", field=field_name)
    out: list[str] = []
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (str, int)):
            raise ValidationError(f"{field_name} must contain strings", field=field_name)
        v = str(v).strip()
        if not v:
            raise ValidationError(f"{field_name} must not contain blank ids", field=field_name)
        if v not in out:
            out.append(v)
    return out


class EnrollmentService:
    """Links students to a faculty's subjects; enrolled students get ``qr_available``."""

    def __init__(self, enrollments: EnrollmentRepository):
        self._enrollments = enrollments

    def assign(self, faculty_id: str, student_ids: Any, subjects: Any) -> AssignmentResult:
        faculty_id = require_non_empty(faculty_id, "facultyId")
        students = _id_list(student_ids, "studentIds")
        subject_names = _id_list(subjects, "subjects")

        assigned = 0
        for student_id in students:
            for subject in subject_names:
                if self._enrollments.enroll(student_id=student_id, subject=subject, faculty_id=faculty_id):
                    assigned += 1

        total = len(students) * len(subject_names)
        logger.info("Faculty %s assigned %d subjects to %d students (%d new)", faculty_id, len(subject_names), len(students), assigned)
        return AssignmentResult(
            students=len(students),
            subjects=len(subject_names),
            assigned=assigned,
            already_enrolled=total - assigned,
        )

    def students_for_subject(self, faculty_id: str, subject: str) -> list[str]:
        subject = require_non_empty(subject, "subject")
        return list(self._enrollments.students_for_subject(subject=subject, faculty_id=faculty_id))
