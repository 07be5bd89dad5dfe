import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from utils.errors import InvalidSessionError
from utils.records import (
    AttendanceSummaryRow,
    PresenceRecord,
    SessionRecord,
    StudentRecord,
    to_float,
)

# (lower bound, marks); a percentage must be strictly above the bound.
ATTENDANCE_BANDS = [(90, 5), (80, 4), (70, 3), (60, 2), (50, 1)]

MAX_PERIODS_PER_DAY = 12


def attendance_percentage(attended: Any, total: Any) -> float:
    total_classes = to_float(total)
    if total_classes <= 0:
        return 0.0
    attended_classes = min(max(to_float(attended), 0.0), total_classes)
    return attended_classes / total_classes * 100


def attendance_marks(percentage: Any) -> int:
    """Convert an attendance percentage to a 0-5 score.

    Comparisons are strict: exactly 90.0 earns 4, not 5.
    """
    value = to_float(percentage)
    for bound, marks in ATTENDANCE_BANDS:
        if value > bound:
            return marks
    return 0


@dataclass(frozen=True)
class AttendanceScore:
    percentage: float
    marks: int

    def to_dict(self) -> Dict[str, Any]:
        return {"percentage": round(self.percentage, 2), "marks": self.marks}


def attendance_score(row: Optional[AttendanceSummaryRow]) -> AttendanceScore:
    if row is None:
        return AttendanceScore(percentage=0.0, marks=0)
    percentage = attendance_percentage(row.attended_classes, row.total_classes)
    return AttendanceScore(percentage=percentage, marks=attendance_marks(percentage))


# ---------------------------------------------------------------------------
# Session validation
# ---------------------------------------------------------------------------


def parse_session_date(value: Any) -> date:
    """Accept a date, datetime or ``YYYY-MM-DD`` string; reject impossible days."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    try:
        return datetime.strptime(text[:10], "%Y-%m-%d").date()
    except ValueError:
        raise InvalidSessionError(
            f"Invalid session date: {value!r}", details={"date": value}
        ) from None


def validate_period(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidSessionError(f"Invalid period: {value!r}", details={"period": value})
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidSessionError(
            f"Invalid period: {value!r}", details={"period": value}
        ) from None
    if not math.isfinite(number) or number != int(number) or number < 1:
        raise InvalidSessionError(
            f"Period must be a positive integer, got {value!r}", details={"period": value}
        )
    return int(number)


def make_session(session_date: Any, period: Any) -> SessionRecord:
    return SessionRecord(date=parse_session_date(session_date), period=validate_period(period))


@dataclass
class BulkPlan:
    created_periods: List[int] = field(default_factory=list)
    skipped_periods: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created_periods": list(self.created_periods),
            "skipped_periods": list(self.skipped_periods),
        }


def plan_bulk_periods(existing_periods: Iterable[int], start_period: Any, num_classes: Any) -> BulkPlan:
    """Split ``num_classes`` consecutive periods into ones to create and ones to skip.

    Periods already present on the date are skipped so re-running a partially
    completed day never touches existing sessions.
    """
    start = validate_period(start_period)
    raw_count = to_float(num_classes)
    if not math.isfinite(raw_count) or raw_count < 1 or raw_count != int(raw_count):
        raise InvalidSessionError(
            f"Number of classes must be a positive integer, got {num_classes!r}",
            details={"num_classes": num_classes},
        )
    count = int(raw_count)
    if count > MAX_PERIODS_PER_DAY:
        raise InvalidSessionError(
            f"At most {MAX_PERIODS_PER_DAY} classes per day, got {count}",
            details={"num_classes": num_classes, "max": MAX_PERIODS_PER_DAY},
        )

    existing: Set[int] = {int(p) for p in existing_periods or []}
    plan = BulkPlan()
    for period in range(start, start + count):
        if period in existing:
            plan.skipped_periods.append(period)
        else:
            plan.created_periods.append(period)
    return plan


# ---------------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------------


@dataclass
class AttendanceMatrix:
    sessions: List[SessionRecord]
    students: List[StudentRecord]
    matrix: Dict[Any, Dict[str, bool]]
    rows: List[Dict[str, Any]]

    @property
    def total_classes(self) -> int:
        return len(self.sessions)

    def is_present(self, student_id: Any, session_key: str) -> bool:
        return bool(self.matrix.get(student_id, {}).get(session_key, False))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessions": [{"key": s.key, "label": s.label} for s in self.sessions],
            "students": [s.to_dict() for s in self.students],
            "matrix": {str(sid): dict(cells) for sid, cells in self.matrix.items()},
            "rows": list(self.rows),
            "total_classes": self.total_classes,
        }


def build_attendance_matrix(
    sessions: Iterable[SessionRecord],
    students: Iterable[StudentRecord],
    records: Iterable[PresenceRecord],
) -> AttendanceMatrix:
    """Aggregate per-session presence into per-student totals.

    Sessions are ordered by (date, period). Records for unknown sessions or
    students outside the roster are ignored. The matrix only holds recorded
    cells; a missing cell reads as absent.
    """
    ordered_sessions = sorted(set(sessions or []), key=lambda s: (s.date, s.period))
    session_keys = {s.key for s in ordered_sessions}
    roster = list(students or [])
    roster_ids = {s.id for s in roster}

    matrix: Dict[Any, Dict[str, bool]] = {}
    for record in records or []:
        if record.session_key not in session_keys or record.student_id not in roster_ids:
            continue
        matrix.setdefault(record.student_id, {})[record.session_key] = bool(record.present)

    total = len(ordered_sessions)
    rows = []
    for student in roster:
        cells = matrix.get(student.id, {})
        present_count = sum(1 for present in cells.values() if present)
        percentage = present_count / total * 100 if total > 0 else 0.0
        rows.append(
            {
                "student_id": student.id,
                "roll": student.roll,
                "name": student.name,
                "present_count": present_count,
                "total_classes": total,
                "percentage": round(percentage, 2),
            }
        )

    return AttendanceMatrix(
        sessions=ordered_sessions, students=roster, matrix=matrix, rows=rows
    )


def summary_rows_from_matrix(matrix: AttendanceMatrix) -> List[AttendanceSummaryRow]:
    """Derive attendance summary rows (one per rostered student) from the sheet."""
    return [
        AttendanceSummaryRow(
            student_id=row["student_id"],
            total_classes=row["total_classes"],
            attended_classes=row["present_count"],
        )
        for row in matrix.rows
    ]


def student_attendance_view(matrix: AttendanceMatrix, student_id: Any) -> Dict[str, Any]:
    """Per-session Present/Absent rows for one student, with totals and marks."""
    rows = [
        {
            "date": session.date.isoformat(),
            "period": session.period,
            "status": "Present" if matrix.is_present(student_id, session.key) else "Absent",
        }
        for session in matrix.sessions
    ]
    total_present = sum(1 for row in rows if row["status"] == "Present")
    percentage = attendance_percentage(total_present, matrix.total_classes)
    return {
        "rows": rows,
        "total_classes": matrix.total_classes,
        "total_present": total_present,
        "percentage": round(percentage, 2),
        "marks": attendance_marks(percentage),
    }
