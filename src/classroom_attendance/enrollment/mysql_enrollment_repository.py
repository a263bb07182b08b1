from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .repository import EnrollmentRepository


class MySQLEnrollmentRepository(EnrollmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def students_for_subject(self, *, subject: str, faculty_id: str) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id
                FROM student_subjects
                WHERE subject=%s AND faculty_id=%s
                ORDER BY student_id
                """,
                (subject, faculty_id),
            )
            return [r["student_id"] for r in fetchall(cur)]

    def enroll(self, *, student_id: str, subject: str, faculty_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO student_subjects(student_id, subject, faculty_id)
                VALUES(%s,%s,%s)
                """,
                (student_id, subject, faculty_id),
            )
            return cur.rowcount > 0
