from __future__ import annotations

from typing import Any, Optional, Sequence

import mysql.connector

from ..common.clock import as_utc
from ..core.enums import AttendanceStatus
from ..core.exceptions import DuplicateAttendanceError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, naive_utc
from .model import AttendanceRecord
from .repository import AttendanceLedger


def _to_record(r: dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        session_id=r["session_id"],
        student_id=r["student_id"],
        status=AttendanceStatus(r["status"]),
        timestamp=as_utc(r["timestamp"]),
    )


class MySQLAttendanceLedger(AttendanceLedger):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, session_id: str, student_id: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT session_id, student_id, status, timestamp
                FROM attendance
                WHERE session_id=%s AND student_id=%s
                """,
                (session_id, student_id),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def insert(self, record: AttendanceRecord) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance(session_id, student_id, status, timestamp)
                    VALUES(%s,%s,%s,%s)
                    """,
                    (record.session_id, record.student_id, record.status.value, naive_utc(record.timestamp)),
                )
        except mysql.connector.IntegrityError as exc:
            if is_duplicate_key(exc):
                raise DuplicateAttendanceError((record.session_id, record.student_id)) from exc
            raise

    def list_for_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT session_id, student_id, status, timestamp
                FROM attendance
                WHERE session_id=%s
                ORDER BY timestamp ASC, student_id ASC
                """,
                (session_id,),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_student(self, student_id: str, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT session_id, student_id, status, timestamp
                FROM attendance
                WHERE student_id=%s
                ORDER BY timestamp DESC
                LIMIT %s
                """,
                (student_id, int(limit)),
            )
            return [_to_record(r) for r in fetchall(cur)]
