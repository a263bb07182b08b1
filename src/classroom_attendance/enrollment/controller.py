from __future__ import annotations

from flask import Flask, jsonify, request

from ..auth.decorators import current_identity, make_auth_required
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container.tokens)

    @app.route("/api/faculty/assign-subjects", methods=["POST"], endpoint="assign_subjects")
    @auth_required(Role.FACULTY)
    def assign_subjects():
        data = request.get_json(silent=True) or {}
        result = container.enrollment.assign(current_identity().user_id, data.get("studentIds"), data.get("subjects"))
        return jsonify(
            {
                "success": True,
                "message": f"Assigned {result.subjects} subjects to {result.students} students",
                "assigned": result.assigned,
                "alreadyEnrolled": result.already_enrolled,
            }
        ), 200

    @app.route("/api/faculty/subjects/<subject>/students", methods=["GET"], endpoint="subject_students")
    @auth_required(Role.FACULTY)
    def subject_students(subject: str):
        students = container.enrollment.students_for_subject(current_identity().user_id, subject)
        return jsonify({"success": True, "subject": subject, "studentIds": students}), 200
