import logging
from flask import Blueprint, jsonify, request

from utils.attendance_utils import attendance_score
from utils.auth_utils import ROLE_TEACHER, require_course, role_required
from utils.course_summary import compute_course_scores, load_course_snapshot, summary_payload
from utils.errors import ScoringError, error_response
from utils.grade_calculation import compute_course_total, marks_by_student
from utils.records import (
    AssessmentRecord,
    AttendanceSummaryRow,
    MarkRecord,
    StudentRecord,
    resolve_course_type,
)

logger = logging.getLogger(__name__)

compute_bp = Blueprint("compute", __name__)


def _rows(data: dict, key: str) -> list:
    rows = data.get(key) or []
    if not isinstance(rows, list):
        raise ValueError(f"{key} must be a list")
    return [r for r in rows if isinstance(r, dict)]


@compute_bp.route("/api/grade-entry/compute", methods=["POST"])
@role_required(ROLE_TEACHER)
def api_grade_entry_compute(caller):
    """
    Compute totals and grades for posted (not yet saved) grade-entry data.

    Expected JSON shape (camelCase or snake_case keys):
    {
      "courseType": "theory",
      "assessments": [{"id": 1, "name": "CT1", "fullMarks": 10, "order": 1}, ...],
      "students": [{"id": 7, "roll": "2101", "name": "..."}],
      "marks": [{"studentId": 7, "assessmentId": 1, "obtainedMarks": 8}, ...],
      "attendance": [{"studentId": 7, "totalClasses": 20, "attendedClasses": 19}]
    }

    Returns JSON:
    {
      "course_type": "theory",
      "results": [{"student_id": 7, "total": 85.75, "grade": "A+",
                   "component_breakdown": {...}, "attendance": {...}}, ...]
    }

    When "attendance" is omitted the attendance component is 0 and every
    result is flagged with attendance_available = false.
    """
    try:
        data = request.get_json(force=True) or {}
        if not isinstance(data, dict):
            return jsonify({"error": "invalid_payload", "message": "Expected a JSON object"}), 400

        try:
            course_type = resolve_course_type(data.get("courseType", data.get("course_type")))
            assessments = [AssessmentRecord.from_dict(r) for r in _rows(data, "assessments")]
            students = [StudentRecord.from_dict(r) for r in _rows(data, "students")]
            marks = [MarkRecord.from_dict(r) for r in _rows(data, "marks")]
            attendance_given = data.get("attendance") is not None
            summaries = [AttendanceSummaryRow.from_dict(r) for r in _rows(data, "attendance")]
        except ValueError as exc:
            return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

        table = marks_by_student(marks)
        if not students:
            # score whoever has marks when no roster is posted
            ids = list(table) + [s.student_id for s in summaries if s.student_id not in table]
            students = [StudentRecord(id=sid, roll="") for sid in ids]

        summary_by_student = {s.student_id: s for s in summaries}
        results = []
        for student in students:
            row = summary_by_student.get(student.id)
            attendance = attendance_score(row)
            marks_value = attendance.marks if attendance_given else None
            score = compute_course_total(
                course_type,
                assessments,
                table.get(student.id, {}),
                marks_value,
                student_id=student.id,
            )
            result = score.to_dict()
            result["attendance"] = attendance.to_dict() if attendance_given else None
            results.append(result)

        return jsonify({"course_type": course_type.value, "results": results}), 200
    except Exception as exc:
        logger.error(f"Grade-entry computation failed: {str(exc)}")
        return jsonify({"error": "failed_to_compute", "message": str(exc)}), 500


@compute_bp.route("/api/courses/<int:course_id>/summary", methods=["GET"])
@role_required(ROLE_TEACHER)
def api_course_summary(course_id, caller):
    """Totals, grades and breakdowns for every enrolled student of a course."""
    course, denied = require_course(course_id, caller)
    if denied:
        return denied

    try:
        snapshot = load_course_snapshot(course_id, course.course_type)
        scores = compute_course_scores(snapshot)
        payload = summary_payload(snapshot, scores)
        payload["course"] = course.to_dict()
        return jsonify(payload), 200
    except ScoringError as exc:
        logger.error(f"Course {course_id} summary unavailable: {exc.message}")
        return error_response(exc)
    except Exception as exc:
        logger.error(f"Course {course_id} summary failed: {str(exc)}")
        return jsonify({"error": "failed_to_compute", "message": str(exc)}), 500
