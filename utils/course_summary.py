import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from utils import course_data
from utils.attendance_utils import AttendanceMatrix, attendance_score, build_attendance_matrix
from utils.fetching import fetch_sources, require, unavailable
from utils.grade_calculation import CourseScore, compute_course_total, marks_by_student
from utils.records import (
    AssessmentRecord,
    AttendanceSummaryRow,
    MarkRecord,
    StudentRecord,
    resolve_course_type,
)

logger = logging.getLogger(__name__)

REQUIRED_SOURCES = ("students", "assessments")


@dataclass
class CourseSnapshot:
    """Everything the engine needs for one course, as loaded at request time."""

    course_type: Any
    students: List[StudentRecord] = field(default_factory=list)
    assessments: List[AssessmentRecord] = field(default_factory=list)
    marks: Optional[List[MarkRecord]] = None
    summaries: Optional[List[AttendanceSummaryRow]] = None
    unavailable: List[str] = field(default_factory=list)

    @property
    def marks_table(self) -> Dict[Any, Dict[Any, float]]:
        return marks_by_student(self.marks or [])

    def attendance_marks_for(self, student_id: Any) -> Optional[int]:
        """0-5 attendance score, or None when the summary source failed."""
        if self.summaries is None:
            return None
        row = next((r for r in self.summaries if r.student_id == student_id), None)
        return attendance_score(row).marks


def load_course_snapshot(course_id: int, course_type: Any) -> CourseSnapshot:
    """Fetch roster, assessments, marks and attendance summary concurrently.

    Roster and assessments are required; marks and the attendance summary are
    optional and reported in ``unavailable`` when their loader fails.
    """
    results = fetch_sources(
        {
            "students": lambda: course_data.load_students(course_id),
            "assessments": lambda: course_data.load_assessments(course_id),
            "marks": lambda: course_data.load_marks(course_id),
            "attendance": lambda: course_data.load_attendance_summary(course_id),
        }
    )
    require(results, *REQUIRED_SOURCES)

    missing = unavailable(results)
    if missing:
        logger.warning(f"Course {course_id}: computing without {', '.join(missing)}")

    return CourseSnapshot(
        course_type=course_type,
        students=results["students"].value,
        assessments=results["assessments"].value,
        marks=results["marks"].value if results["marks"].ok else None,
        summaries=results["attendance"].value if results["attendance"].ok else None,
        unavailable=missing,
    )


def compute_course_scores(snapshot: CourseSnapshot) -> Dict[Any, CourseScore]:
    """Score every rostered student; returns {student_id: CourseScore}."""
    table = snapshot.marks_table
    scores = {}
    for student in snapshot.students:
        scores[student.id] = compute_course_total(
            snapshot.course_type,
            snapshot.assessments,
            table.get(student.id, {}),
            snapshot.attendance_marks_for(student.id),
            student_id=student.id,
        )
    return scores


def summary_payload(snapshot: CourseSnapshot, scores: Dict[Any, CourseScore]) -> Dict[str, Any]:
    rows = []
    for student in snapshot.students:
        row = student.to_dict()
        row.update(scores[student.id].to_dict())
        rows.append(row)
    return {
        "course_type": resolve_course_type(snapshot.course_type).value,
        "students": rows,
        "unavailable": list(snapshot.unavailable),
    }


def load_attendance_matrix(course_id: int) -> AttendanceMatrix:
    """Roster, sessions and presence records loaded concurrently into a matrix."""
    results = fetch_sources(
        {
            "students": lambda: course_data.load_students(course_id),
            "sessions": lambda: course_data.load_sessions(course_id),
            "presence": lambda: course_data.load_presence(course_id),
        }
    )
    require(results, "students", "sessions", "presence")
    return build_attendance_matrix(
        results["sessions"].value, results["students"].value, results["presence"].value
    )
