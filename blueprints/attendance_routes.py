import logging
from flask import Blueprint, jsonify, request

from utils import attendance_store
from utils.attendance_utils import summary_rows_from_matrix
from utils.auth_utils import ROLE_TEACHER, require_course, role_required
from utils.course_data import load_attendance_summary
from utils.course_summary import load_attendance_matrix
from utils.errors import ScoringError, error_response
from utils.export_utils import SORT_ENTERED, SORT_MODES, sort_students
from utils.live import emit_course_update
from utils.records import AttendanceSummaryRow

logger = logging.getLogger(__name__)

attendance_bp = Blueprint("attendance", __name__)


def _payload():
    data = request.get_json(silent=True) or {}
    return data if isinstance(data, dict) else {}


def _course_id_from(data):
    raw = data.get("course_id", data.get("courseId"))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _course_or_error(data, caller):
    course_id = _course_id_from(data)
    if course_id is None:
        return None, (jsonify({"error": "invalid_payload", "message": "course_id is required"}), 400)
    return require_course(course_id, caller)


@attendance_bp.route("/api/attendance", methods=["POST"])
@role_required(ROLE_TEACHER)
def create_attendance(caller):
    """Record one (date, period) session. 409 when it already exists."""
    data = _payload()
    course, denied = _course_or_error(data, caller)
    if denied:
        return denied

    try:
        session = attendance_store.create_session(
            course.id, data.get("date"), data.get("period"), data.get("records")
        )
        emit_course_update(course.id, "attendance")
        return (
            jsonify(
                {
                    "date": session.session_date.isoformat(),
                    "period": session.period,
                    "records": len(session.records),
                }
            ),
            201,
        )
    except ScoringError as exc:
        logger.info(f"Attendance create rejected for course {course.id}: {exc.message}")
        return error_response(exc)
    except Exception as e:
        logger.error(f"Error creating attendance for course {course.id}: {str(e)}")
        return jsonify({"error": "failed_to_save_attendance"}), 500


@attendance_bp.route("/api/attendance/bulk", methods=["POST"])
@role_required(ROLE_TEACHER)
def create_attendance_bulk(caller):
    """
    Record several consecutive periods on one date.

    Expected JSON: {"course_id", "date", "startPeriod", "numClasses", "records": [...]}
    Returns: {"created_periods": [...], "skipped_periods": [...]}
    """
    data = _payload()
    course, denied = _course_or_error(data, caller)
    if denied:
        return denied

    try:
        plan = attendance_store.create_sessions_bulk(
            course.id,
            data.get("date"),
            data.get("startPeriod", data.get("start_period")),
            data.get("numClasses", data.get("num_classes")),
            data.get("records"),
        )
        if plan.created_periods:
            emit_course_update(course.id, "attendance")
        return jsonify(plan.to_dict()), 200
    except ScoringError as exc:
        logger.info(f"Bulk attendance rejected for course {course.id}: {exc.message}")
        return error_response(exc)
    except Exception as e:
        logger.error(f"Error creating bulk attendance for course {course.id}: {str(e)}")
        return jsonify({"error": "failed_to_save_attendance"}), 500


@attendance_bp.route("/api/attendance/day", methods=["GET"])
@role_required(ROLE_TEACHER)
def get_attendance_day(caller):
    course, denied = _course_or_error(request.args, caller)
    if denied:
        return denied

    try:
        day = attendance_store.get_session_day(
            course.id, request.args.get("date"), request.args.get("period")
        )
        return jsonify(day), 200
    except ScoringError as exc:
        return error_response(exc)
    except Exception as e:
        logger.error(f"Error loading attendance day for course {course.id}: {str(e)}")
        return jsonify({"error": "failed_to_load_attendance"}), 500


@attendance_bp.route("/api/attendance", methods=["PUT"])
@role_required(ROLE_TEACHER)
def update_attendance(caller):
    """Replace the records of one existing session. 404 when it does not exist."""
    data = _payload()
    course, denied = _course_or_error(data, caller)
    if denied:
        return denied

    try:
        session = attendance_store.update_session(
            course.id, data.get("date"), data.get("period"), data.get("records")
        )
        emit_course_update(course.id, "attendance")
        return (
            jsonify(
                {
                    "date": session.session_date.isoformat(),
                    "period": session.period,
                    "records": len(session.records),
                }
            ),
            200,
        )
    except ScoringError as exc:
        return error_response(exc)
    except Exception as e:
        logger.error(f"Error updating attendance for course {course.id}: {str(e)}")
        return jsonify({"error": "failed_to_save_attendance"}), 500


@attendance_bp.route("/api/courses/<int:course_id>/attendance-sheet", methods=["GET"])
@role_required(ROLE_TEACHER)
def attendance_sheet(course_id, caller):
    """Session matrix with per-student totals; ``sort`` is entered, roll-asc or roll-desc."""
    course, denied = require_course(course_id, caller)
    if denied:
        return denied

    sort_mode = request.args.get("sort", SORT_ENTERED)
    if sort_mode not in SORT_MODES:
        return jsonify({"error": "invalid_sort", "message": f"sort must be one of {list(SORT_MODES)}"}), 400

    try:
        matrix = load_attendance_matrix(course_id)
        payload = matrix.to_dict()
        ordered = sort_students(matrix.students, sort_mode)
        rows = {row["student_id"]: row for row in payload["rows"]}
        payload["students"] = [s.to_dict() for s in ordered]
        payload["rows"] = [rows[s.id] for s in ordered]
        payload["sort"] = sort_mode
        return jsonify(payload), 200
    except ScoringError as exc:
        return error_response(exc)
    except Exception as e:
        logger.error(f"Error building attendance sheet for course {course_id}: {str(e)}")
        return jsonify({"error": "failed_to_load_attendance"}), 500


@attendance_bp.route("/api/courses/<int:course_id>/attendance-summary", methods=["GET"])
@role_required(ROLE_TEACHER)
def get_attendance_summary(course_id, caller):
    course, denied = require_course(course_id, caller)
    if denied:
        return denied

    try:
        rows = load_attendance_summary(course_id)
        return jsonify({"rows": attendance_store.summary_rows_payload(rows)}), 200
    except Exception as e:
        logger.error(f"Error loading attendance summary for course {course_id}: {str(e)}")
        return jsonify({"error": "failed_to_load_attendance"}), 500


@attendance_bp.route("/api/courses/<int:course_id>/attendance-summary", methods=["POST"])
@role_required(ROLE_TEACHER)
def save_attendance_summary(course_id, caller):
    """Save summary rows: {"rows": [{"studentId", "totalClasses", "attendedClasses"}]}."""
    course, denied = require_course(course_id, caller)
    if denied:
        return denied

    rows = _payload().get("rows")
    if not isinstance(rows, list):
        return jsonify({"error": "invalid_payload", "message": "rows must be a list"}), 400

    try:
        parsed = [AttendanceSummaryRow.from_dict(r) for r in rows if isinstance(r, dict)]
        written = attendance_store.save_attendance_summary(course_id, parsed)
        emit_course_update(course_id, "attendance_summary")
        return jsonify({"saved": written}), 200
    except Exception as e:
        logger.error(f"Error saving attendance summary for course {course_id}: {str(e)}")
        return jsonify({"error": "failed_to_save_attendance"}), 500


@attendance_bp.route(
    "/api/courses/<int:course_id>/attendance-summary/from-sheet", methods=["GET"]
)
@role_required(ROLE_TEACHER)
def attendance_summary_from_sheet(course_id, caller):
    """Summary rows derived from the recorded sessions, for syncing the summary."""
    course, denied = require_course(course_id, caller)
    if denied:
        return denied

    try:
        matrix = load_attendance_matrix(course_id)
        rows = summary_rows_from_matrix(matrix)
        return (
            jsonify(
                {
                    "total_classes": matrix.total_classes,
                    "rows": attendance_store.summary_rows_payload(rows),
                }
            ),
            200,
        )
    except ScoringError as exc:
        return error_response(exc)
    except Exception as e:
        logger.error(f"Error deriving attendance summary for course {course_id}: {str(e)}")
        return jsonify({"error": "failed_to_load_attendance"}), 500
