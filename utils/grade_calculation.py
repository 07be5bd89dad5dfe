import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from utils.errors import InvalidMarksError
from utils.records import (
    AssessmentCategory,
    AssessmentRecord,
    CourseType,
    MarkRecord,
    resolve_course_type,
    to_float,
)
from utils.structure_utils import LAB_RESERVED, category_for, order_assessments

logger = logging.getLogger(__name__)

A_PLUS_THRESHOLD = 80.0
PASS_THRESHOLD = 40.0
ATTENDANCE_MAX = 5

GRADE_BANDS = [
    (80.0, "A+"),
    (75.0, "A"),
    (70.0, "A-"),
    (65.0, "B+"),
    (60.0, "B"),
    (55.0, "B-"),
    (50.0, "C+"),
    (45.0, "C"),
    (40.0, "D"),
]
FAILING_GRADE = "F"
GRADE_LABELS = [label for _, label in GRADE_BANDS] + [FAILING_GRADE]


def pct(obtained: Any, full: Any) -> float:
    """Return obtained/full as a ratio in [0, 1]; 0 when full is not positive."""
    full_marks = to_float(full)
    if full_marks <= 0:
        return 0.0
    value = min(max(to_float(obtained), 0.0), full_marks)
    return value / full_marks


def grade_from_total(total: Any) -> str:
    """Map a 100-point total to its letter grade (inclusive lower bounds)."""
    rounded = round(to_float(total), 2)
    for threshold, label in GRADE_BANDS:
        if rounded >= threshold:
            return label
    return FAILING_GRADE


def validate_full_marks(assessment: AssessmentRecord) -> None:
    if to_float(assessment.full_marks) <= 0:
        raise InvalidMarksError(
            f"Assessment '{assessment.name}' has non-positive full marks",
            details={"assessment_id": assessment.id, "full_marks": assessment.full_marks},
        )


@dataclass
class CourseScore:
    """Computed result for one student in one course."""

    student_id: Any
    total: float
    grade: str
    components: Dict[str, float] = field(default_factory=dict)
    attendance_available: bool = True
    invalid_assessments: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student_id": self.student_id,
            "total": self.total,
            "grade": self.grade,
            "component_breakdown": {k: round(v, 2) for k, v in self.components.items()},
            "attendance_available": self.attendance_available,
            "invalid_assessments": list(self.invalid_assessments),
        }


def marks_by_student(marks: Iterable[MarkRecord]) -> Dict[Any, Dict[Any, float]]:
    """Index marks as {student_id: {assessment_id: obtained}}."""
    table: Dict[Any, Dict[Any, float]] = defaultdict(dict)
    for mark in marks or []:
        if mark.student_id is None or mark.assessment_id is None:
            continue
        table[mark.student_id][mark.assessment_id] = mark.obtained_marks
    return dict(table)


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _theory_components(buckets, percents) -> Dict[str, float]:
    ct_percents = sorted(
        (percents[a.id] for a in buckets[AssessmentCategory.CLASS_TEST]), reverse=True
    )
    class_test = _mean(ct_percents[:2]) * 15

    def first_pct(category):
        items = buckets[category]
        return percents[items[0].id] if items else None

    midterm = first_pct(AssessmentCategory.MIDTERM)
    final = first_pct(AssessmentCategory.FINAL)
    presentation = first_pct(AssessmentCategory.PRESENTATION)
    assignment = first_pct(AssessmentCategory.ASSIGNMENT)

    if presentation is not None and assignment is not None:
        pres_assign = presentation * 5 + assignment * 5
    elif presentation is not None:
        pres_assign = presentation * 10
    elif assignment is not None:
        pres_assign = assignment * 10
    else:
        pres_assign = 0.0

    return {
        "class_test": class_test,
        "midterm": (midterm or 0.0) * 30,
        "final": (final or 0.0) * 40,
        "presentation_assignment": pres_assign,
    }


def _lab_components(buckets, percents) -> Dict[str, float]:
    lab_percents = [
        percents[a.id]
        for category, items in buckets.items()
        if category not in LAB_RESERVED
        for a in items
    ]
    midterm = buckets[AssessmentCategory.MIDTERM]
    final = buckets[AssessmentCategory.FINAL]
    return {
        "lab": _mean(lab_percents) * 25,
        "midterm": percents[midterm[0].id] * 30 if midterm else 0.0,
        "final": percents[final[0].id] * 40 if final else 0.0,
    }


def compute_course_total(
    course_type: Any,
    assessments: Iterable[AssessmentRecord],
    obtained: Optional[Mapping[Any, Any]] = None,
    attendance_marks: Optional[int] = None,
    student_id: Any = None,
) -> CourseScore:
    """Combine one student's marks into a 100-point total and grade.

    ``obtained`` maps assessment id to the raw obtained value; a missing entry
    counts as zero. ``attendance_marks`` is the 0-5 score from the attendance
    summary; ``None`` means the summary was unavailable, which contributes 0
    and is flagged on the result. Assessments classified as attendance never
    contribute through marks. An assessment with non-positive full marks is
    skipped and reported instead of failing the whole computation.
    """
    kind = resolve_course_type(course_type)
    obtained = obtained or {}

    buckets: Dict[AssessmentCategory, List[AssessmentRecord]] = defaultdict(list)
    percents: Dict[Any, float] = {}
    invalid: List[Any] = []
    for assessment in order_assessments(assessments):
        try:
            validate_full_marks(assessment)
        except InvalidMarksError as exc:
            logger.warning(f"Skipping assessment {assessment.id}: {exc.message}")
            invalid.append(assessment.id)
            continue
        percents[assessment.id] = pct(obtained.get(assessment.id), assessment.full_marks)
        buckets[category_for(assessment, kind)].append(assessment)

    if kind is CourseType.LAB:
        components = _lab_components(buckets, percents)
    else:
        components = _theory_components(buckets, percents)

    if attendance_marks is None:
        components["attendance"] = 0.0
    else:
        components["attendance"] = float(
            min(max(to_float(attendance_marks), 0.0), ATTENDANCE_MAX)
        )

    total = round(min(max(sum(components.values()), 0.0), 100.0), 2)
    return CourseScore(
        student_id=student_id,
        total=total,
        grade=grade_from_total(total),
        components=components,
        attendance_available=attendance_marks is not None,
        invalid_assessments=invalid,
    )


def a_plus_outlook(
    course_type: Any,
    assessments: Iterable[AssessmentRecord],
    obtained: Optional[Mapping[Any, Any]] = None,
    attendance_marks: Optional[int] = None,
) -> Dict[str, Any]:
    """Describe how far a student is from the A+ band.

    ``max_possible`` assumes full marks on every assessment that has no mark
    yet; the attendance component is taken as it currently stands.
    """
    assessments = list(assessments or [])
    obtained = dict(obtained or {})
    current = compute_course_total(course_type, assessments, obtained, attendance_marks).total

    filled = dict(obtained)
    for assessment in assessments:
        if obtained.get(assessment.id) in (None, ""):
            filled[assessment.id] = assessment.full_marks
    max_possible = compute_course_total(course_type, assessments, filled, attendance_marks).total

    needed = round(max(0.0, A_PLUS_THRESHOLD - current), 2)
    reachable = max_possible >= A_PLUS_THRESHOLD
    if needed <= 0:
        message = "You already meet the A+ threshold (80/100)."
    elif not reachable:
        message = (
            f"Even with full marks in remaining items, maximum possible is "
            f"{max_possible:.1f}/100, so A+ is not reachable."
        )
    else:
        message = (
            f"To reach A+, you need {needed:.1f} marks in the remaining assessments "
            f"(max possible: {max_possible:.1f}/100)."
        )
    return {
        "current_total": current,
        "needed": needed,
        "max_possible": max_possible,
        "reachable": reachable,
        "message": message,
    }
