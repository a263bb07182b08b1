from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..common.clock import to_iso
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceStatus
from ..sessions.model import Session
from ..sessions.repository import SessionRepository
from .repository import AttendanceLedger

CSV_FIELDS = ["Student ID", "Subject", "Status", "Timestamp", "Room", "Session Date"]


@dataclass(frozen=True)
class ReportData:
    session: Session
    rows: list[dict]
    summary: dict


class AttendanceReportService:
    def __init__(self, attendance: AttendanceLedger, sessions: SessionRepository):
        self._attendance = attendance
        self._sessions = sessions

    def build_session_report(self, session: Session) -> ReportData:
        records = self._attendance.list_for_session(session.session_id)

        rows: list[dict] = []
        counts = {AttendanceStatus.PRESENT: 0, AttendanceStatus.LATE: 0}
        for r in records:
            counts[r.status] += 1
            rows.append(
                {
                    "studentId": r.student_id,
                    "status": r.status.value,
                    "timestamp": to_iso(r.timestamp),
                }
            )

        summary = {
            "total": len(rows),
            "present": counts[AttendanceStatus.PRESENT],
            "late": counts[AttendanceStatus.LATE],
        }
        return ReportData(session=session, rows=rows, summary=summary)

    def csv_rows(self, report: ReportData) -> list[dict]:
        s = report.session
        session_date = s.created_at.strftime("%Y-%m-%d %H:%M:%S")
        return [
            {
                "Student ID": row["studentId"],
                "Subject": s.subject,
                "Status": row["status"].capitalize(),
                "Timestamp": row["timestamp"],
                "Room": s.room,
                "Session Date": session_date,
            }
            for row in report.rows
        ]

    def student_history(self, student_id: str, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[dict]:
        out: list[dict] = []
        cache: dict[str, Optional[Session]] = {}
        for r in self._attendance.list_for_student(student_id, limit):
            if r.session_id not in cache:
                cache[r.session_id] = self._sessions.get_by_id(r.session_id)
            s = cache[r.session_id]
            out.append(
                {
                    "sessionId": r.session_id,
                    "subject": s.subject if s else None,
                    "room": s.room if s else None,
                    "status": r.status.value,
                    "timestamp": to_iso(r.timestamp),
                }
            )
        return out

    def student_summary(self, history: list[dict]) -> dict:
        """Stats over ``history`` (newest first, as ``student_history`` returns it).

        The ledger only holds admitted check-ins, so ``attendanceRate`` is the
        on-time share and ``currentStreak`` counts consecutive on-time records.
        """
        present = sum(1 for h in history if h["status"] == AttendanceStatus.PRESENT.value)
        late = sum(1 for h in history if h["status"] == AttendanceStatus.LATE.value)

        streak = 0
        for h in history:
            if h["status"] != AttendanceStatus.PRESENT.value:
                break
            streak += 1

        return {
            "totalSessions": len(history),
            "presentCount": present,
            "lateCount": late,
            "attendanceRate": round(present * 100 / len(history)) if history else 0,
            "currentStreak": streak,
        }
