from __future__ import annotations

import csv
import io
import re

from flask import Flask, jsonify, request

from ..auth.decorators import current_identity, make_auth_required
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import Role
from ..core.exceptions import MissingRequiredFields
from .model import AdmissionRequest, Coordinates
from .report import CSV_FIELDS

_UNSAFE_FILENAME = re.compile(r"[^a-zA-Z0-9_-]")


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container.tokens)

    def _write_report_csv(*, rows: list[dict], filename: str):
        """Write report rows to a CSV download (header only when empty)."""

        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={
                "Content-Disposition": f"attachment; filename={filename}",
                "Cache-Control": "no-cache, no-store, must-revalidate",
            },
        )

    @app.route("/api/student/attendance", methods=["POST"], endpoint="mark_attendance")
    @auth_required(Role.STUDENT)
    def mark_attendance():
        data = request.get_json(silent=True) or {}
        session_id = data.get("sessionId")
        if not isinstance(session_id, str) or not session_id.strip():
            raise MissingRequiredFields("sessionId")

        result = container.admission.mark(
            AdmissionRequest(
                session_id=session_id.strip(),
                student_id=current_identity().user_id,
                face_verified=data.get("faceVerified"),
                face_distance=data.get("faceDistance"),
                location=Coordinates.from_payload(data.get("location")),
            )
        )
        body = result.to_dict()
        body["message"] = "Attendance already recorded" if result.already_marked else "Attendance marked successfully"
        return jsonify(body), 200

    @app.route("/api/student/attendance", methods=["GET"], endpoint="student_history")
    @auth_required(Role.STUDENT)
    def student_history():
        limit = request.args.get("limit", default=DEFAULT_HISTORY_LIMIT, type=int)
        history = container.reports.student_history(current_identity().user_id, limit=max(1, min(limit, 500)))
        stats = container.reports.student_summary(history)
        return jsonify({"success": True, "attendance": history, "stats": stats}), 200

    @app.route("/api/faculty/sessions/<session_id>/attendance", methods=["GET"], endpoint="session_attendance")
    @auth_required(Role.FACULTY)
    def session_attendance(session_id: str):
        session = container.lifecycle.get_owned(session_id, current_identity().user_id)
        report = container.reports.build_session_report(session)
        return jsonify({"success": True, "attendance": report.rows, "summary": report.summary}), 200

    @app.route("/api/faculty/sessions/<session_id>/attendance.csv", methods=["GET"], endpoint="session_attendance_csv")
    @auth_required(Role.FACULTY)
    def session_attendance_csv(session_id: str):
        session = container.lifecycle.get_owned(session_id, current_identity().user_id)
        report = container.reports.build_session_report(session)

        subject = _UNSAFE_FILENAME.sub("_", session.subject)
        filename = f"attendance_{subject}_{session.created_at.strftime('%Y%m%d')}.csv"
        return _write_report_csv(rows=container.reports.csv_rows(report), filename=filename)
