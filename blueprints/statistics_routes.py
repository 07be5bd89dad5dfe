import logging
from flask import Blueprint, jsonify

from utils.attendance_utils import attendance_score
from utils.auth_utils import ROLE_TEACHER, require_course, role_required
from utils.course_summary import compute_course_scores, load_course_snapshot
from utils.errors import ScoringError, error_response
from utils.statistics_utils import (
    calculate_attendance_statistics,
    calculate_course_statistics,
)

logger = logging.getLogger(__name__)

statistics_bp = Blueprint("statistics", __name__)


@statistics_bp.route("/api/courses/<int:course_id>/stats", methods=["GET"])
@role_required(ROLE_TEACHER)
def course_stats(course_id, caller):
    course, denied = require_course(course_id, caller)
    if denied:
        return denied

    try:
        snapshot = load_course_snapshot(course_id, course.course_type)
        scores = compute_course_scores(snapshot)

        attendance = None
        if snapshot.summaries is not None:
            by_student = {row.student_id: row for row in snapshot.summaries}
            attendance = calculate_attendance_statistics(
                [attendance_score(by_student.get(s.id)).percentage for s in snapshot.students]
            )

        return (
            jsonify(
                {
                    "course": course.to_dict(),
                    "scores": calculate_course_statistics(
                        [score.total for score in scores.values()]
                    ),
                    "attendance": attendance,
                    "unavailable": snapshot.unavailable,
                }
            ),
            200,
        )
    except ScoringError as exc:
        logger.error(f"Course {course_id} statistics unavailable: {exc.message}")
        return error_response(exc)
    except Exception as e:
        logger.error(f"Error computing statistics for course {course_id}: {str(e)}")
        return jsonify({"error": "failed_to_compute_statistics"}), 500
