"""Row shaping for marksheet and attendance-sheet tables.

Nothing here writes files: the functions return an :class:`ExportTable`
(column labels, flat rows and optional per-cell presence flags) that the
spreadsheet and PDF writers render.
"""

import math
import re
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Dict, Iterable, List, Mapping, Optional

from utils.attendance_utils import AttendanceMatrix
from utils.records import AssessmentRecord, StudentRecord
from utils.structure_utils import order_assessments

SORT_ENTERED = "entered"
SORT_ROLL_ASC = "roll-asc"
SORT_ROLL_DESC = "roll-desc"
SORT_MODES = (SORT_ENTERED, SORT_ROLL_ASC, SORT_ROLL_DESC)

PRESENT_MARK = "P"
ABSENT_MARK = "A"


@dataclass
class ExportTable:
    title: str
    columns: List[str]
    rows: List[List[Any]] = field(default_factory=list)
    # Parallel to rows; None where a cell carries no presence meaning.
    cell_flags: Optional[List[List[Optional[bool]]]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {"title": self.title, "columns": self.columns, "rows": self.rows}
        if self.cell_flags is not None:
            payload["cell_flags"] = self.cell_flags
        return payload


_PLAIN_NUMBER = re.compile(r"^\s*[+-]?\d+(\.\d+)?\s*$")


def _as_number(value: str) -> Optional[float]:
    # "nan", "inf" and "1_0" parse as floats but are not numeric rolls
    if not _PLAIN_NUMBER.match(value):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def compare_rolls(a: Any, b: Any) -> int:
    """Numeric comparison when both rolls parse as numbers, lexicographic otherwise."""
    left, right = str(a if a is not None else ""), str(b if b is not None else "")
    left_num, right_num = _as_number(left), _as_number(right)
    if left_num is not None and right_num is not None:
        if left_num != right_num:
            return -1 if left_num < right_num else 1
    if left == right:
        return 0
    return -1 if left < right else 1


def sort_students(students: Iterable[StudentRecord], mode: str = SORT_ENTERED) -> List[StudentRecord]:
    """Order a roster for display.

    ``entered`` keeps the load order verbatim; ``roll-asc``/``roll-desc`` sort
    by roll with :func:`compare_rolls`.
    """
    roster = list(students or [])
    if mode not in SORT_MODES:
        raise ValueError(f"Unknown sort mode: {mode}")
    if mode == SORT_ENTERED:
        return roster
    return sorted(
        roster,
        key=cmp_to_key(lambda x, y: compare_rolls(x.roll, y.roll)),
        reverse=mode == SORT_ROLL_DESC,
    )


def _format_marks(value: float) -> str:
    return f"{value:g}"


def assessment_column(assessment: AssessmentRecord) -> str:
    return f"{assessment.name} ({_format_marks(assessment.full_marks)})"


def shape_marksheet(
    students: Iterable[StudentRecord],
    assessments: Iterable[AssessmentRecord],
    marks: Mapping[Any, Mapping[Any, Any]],
    scores: Mapping[Any, Any],
    sort_mode: str = SORT_ENTERED,
    title: str = "Marksheet",
) -> ExportTable:
    """Build marksheet rows: roll, name, one raw cell per assessment, total, grade.

    ``marks`` is {student_id: {assessment_id: obtained}} and ``scores`` maps
    student id to a :class:`~utils.grade_calculation.CourseScore`. Missing marks
    are exported as empty cells, not zero.
    """
    ordered = order_assessments(assessments)
    columns = ["Roll", "Name"] + [assessment_column(a) for a in ordered] + ["Total (100)", "Grade"]

    rows = []
    for student in sort_students(students, sort_mode):
        row_marks = marks.get(student.id, {}) or {}
        cells: List[Any] = [student.roll, student.name]
        for assessment in ordered:
            value = row_marks.get(assessment.id)
            cells.append("" if value is None else value)
        score = scores.get(student.id)
        cells.append(score.total if score is not None else 0.0)
        cells.append(score.grade if score is not None else "F")
        rows.append(cells)

    return ExportTable(title=title, columns=columns, rows=rows)


def shape_attendance_sheet(
    matrix: AttendanceMatrix,
    sort_mode: str = SORT_ENTERED,
    title: str = "Attendance Sheet",
) -> ExportTable:
    """Build attendance rows with P/A cells and presence flags for styling."""
    columns = (
        ["Roll", "Name"]
        + [session.label for session in matrix.sessions]
        + ["Total Present", "Total Classes", "Percentage"]
    )
    meta = {row["student_id"]: row for row in matrix.rows}

    rows, flags = [], []
    for student in sort_students(matrix.students, sort_mode):
        presence = [matrix.is_present(student.id, s.key) for s in matrix.sessions]
        info = meta.get(student.id, {})
        rows.append(
            [student.roll, student.name]
            + [PRESENT_MARK if present else ABSENT_MARK for present in presence]
            + [
                info.get("present_count", 0),
                info.get("total_classes", matrix.total_classes),
                info.get("percentage", 0.0),
            ]
        )
        flags.append([None, None] + presence + [None, None, None])

    return ExportTable(title=title, columns=columns, rows=rows, cell_flags=flags)


def _safe_part(value: Any) -> str:
    return re.sub(r"[^\w-]+", "_", str(value if value is not None else ""))


def export_filename(course: Mapping[str, Any], kind: str, extension: str = "xlsx") -> str:
    """``{code}_Sec{section}_{semester}_{year}_{kind}.{ext}`` with unsafe characters replaced."""
    code = _safe_part(course.get("code") or "Course")
    return (
        f"{code}_Sec{_safe_part(course.get('section'))}_{_safe_part(course.get('semester'))}"
        f"_{_safe_part(course.get('year'))}_{_safe_part(kind)}.{extension}"
    )
