import logging
from flask import Blueprint, jsonify

from utils.attendance_utils import attendance_score, student_attendance_view
from utils.auth_utils import ROLE_STUDENT, role_required
from utils.course_data import find_student_for_user, get_course, is_enrolled
from utils.course_summary import load_attendance_matrix, load_course_snapshot
from utils.errors import ScoringError, error_response
from utils.grade_calculation import a_plus_outlook, compute_course_total
from utils.structure_utils import category_for, order_assessments

logger = logging.getLogger(__name__)

student_bp = Blueprint("student", __name__)


def _require_enrolled_student(course_id, caller):
    """Return ``(student, course, None)`` or ``(None, None, error_response)``."""
    student = find_student_for_user(caller.user_id)
    if not student:
        return None, None, (jsonify({"error": "Student profile not found"}), 404)
    course = get_course(course_id)
    if course is None or not is_enrolled(course_id, student.id):
        return None, None, (jsonify({"error": "Course not found or not enrolled"}), 404)
    return student, course, None


@student_bp.route("/api/student/courses/<int:course_id>/marks", methods=["GET"])
@role_required(ROLE_STUDENT)
def get_my_marks(course_id, caller):
    """The caller's marks per assessment, computed total/grade and A+ outlook."""
    student, course, denied = _require_enrolled_student(course_id, caller)
    if denied:
        return denied

    try:
        snapshot = load_course_snapshot(course_id, course.course_type)
        obtained = snapshot.marks_table.get(student.id, {})
        attendance_marks = snapshot.attendance_marks_for(student.id)
        score = compute_course_total(
            course.course_type,
            snapshot.assessments,
            obtained,
            attendance_marks,
            student_id=student.id,
        )

        assessments = [
            {
                "assessment_id": a.id,
                "name": a.name,
                "full_marks": a.full_marks,
                "category": category_for(a, course.course_type).value,
                "obtained_marks": obtained.get(a.id),
            }
            for a in order_assessments(snapshot.assessments)
        ]

        attendance = None
        if snapshot.summaries is not None:
            row = next((r for r in snapshot.summaries if r.student_id == student.id), None)
            attendance = attendance_score(row).to_dict()

        return (
            jsonify(
                {
                    "course": course.to_dict(),
                    "student": {"id": student.id, "roll": student.roll, "name": student.name},
                    "assessments": assessments,
                    "score": score.to_dict(),
                    "attendance": attendance,
                    "a_plus": a_plus_outlook(
                        course.course_type, snapshot.assessments, obtained, attendance_marks
                    ),
                    "unavailable": snapshot.unavailable,
                }
            ),
            200,
        )
    except ScoringError as exc:
        return error_response(exc)
    except Exception as e:
        logger.error(f"Error loading marks of student {student.id} in course {course_id}: {str(e)}")
        return jsonify({"error": "failed_to_load_marks"}), 500


@student_bp.route("/api/student/courses/<int:course_id>/attendance", methods=["GET"])
@role_required(ROLE_STUDENT)
def get_my_attendance(course_id, caller):
    """Present/Absent per recorded session for the caller, with totals and marks."""
    student, course, denied = _require_enrolled_student(course_id, caller)
    if denied:
        return denied

    try:
        matrix = load_attendance_matrix(course_id)
        view = student_attendance_view(matrix, student.id)
        view["course"] = course.to_dict()
        return jsonify(view), 200
    except ScoringError as exc:
        return error_response(exc)
    except Exception as e:
        logger.error(
            f"Error loading attendance of student {student.id} in course {course_id}: {str(e)}"
        )
        return jsonify({"error": "failed_to_load_attendance"}), 500
