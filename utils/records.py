"""Plain input records consumed by the scoring engine.

The engine never talks to the database. Routes and loaders turn ORM rows or
posted JSON into these immutable records and hand them over. Every record can
be built from a dict row using either the camelCase keys of the portal API
(``fullMarks``, ``obtainedMarks``) or snake_case column names.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional


class CourseType(str, Enum):
    THEORY = "theory"
    LAB = "lab"
    HYBRID = "hybrid"


class AssessmentCategory(str, Enum):
    CLASS_TEST = "class_test"
    MIDTERM = "midterm"
    FINAL = "final"
    ATTENDANCE = "attendance"
    ASSIGNMENT = "assignment"
    PRESENTATION = "presentation"
    LAB_ITEM = "lab_item"
    OTHER = "other"


def resolve_course_type(value: Any) -> CourseType:
    """Normalize a stored course type; anything unrecognised counts as theory."""
    if isinstance(value, CourseType):
        return value
    text = str(value or "").strip().lower()
    for course_type in CourseType:
        if text == course_type.value:
            return course_type
    if "lab" in text:
        return CourseType.LAB
    return CourseType.THEORY


def resolve_category(value: Any) -> Optional[AssessmentCategory]:
    """Return the explicit category of an assessment, or None when unset/unknown."""
    if value is None or value == "":
        return None
    if isinstance(value, AssessmentCategory):
        return value
    text = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return AssessmentCategory(text)
    except ValueError:
        return None


def to_float(value: Any, default: float = 0.0) -> float:
    """Coerce loosely typed numbers (``"8"``, ``None``, ``""``) to float."""
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return number


def _pick(row: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in row and row[key] is not None:
            return row[key]
    return default


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class AssessmentRecord:
    id: Any
    name: str
    full_marks: float
    order: Optional[int] = None
    category: Optional[AssessmentCategory] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "AssessmentRecord":
        order = _pick(row, "order", "sort_order")
        try:
            order = int(order) if order is not None else None
        except (TypeError, ValueError):
            order = None
        return cls(
            id=_pick(row, "id", "_id", "assessment_id", "assessmentId"),
            name=str(_pick(row, "name", default="")),
            full_marks=to_float(_pick(row, "fullMarks", "full_marks", "max_score")),
            order=order,
            category=resolve_category(_pick(row, "category")),
            created_at=_parse_datetime(_pick(row, "createdAt", "created_at")),
        )


@dataclass(frozen=True)
class MarkRecord:
    student_id: Any
    assessment_id: Any
    obtained_marks: float

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "MarkRecord":
        return cls(
            student_id=_pick(row, "studentId", "student_id", "student"),
            assessment_id=_pick(row, "assessmentId", "assessment_id", "assessment"),
            obtained_marks=to_float(_pick(row, "obtainedMarks", "obtained_marks", "score")),
        )


@dataclass(frozen=True)
class AttendanceSummaryRow:
    student_id: Any
    total_classes: int
    attended_classes: int

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "AttendanceSummaryRow":
        return cls(
            student_id=_pick(row, "studentId", "student_id", "student"),
            total_classes=int(to_float(_pick(row, "totalClasses", "total_classes"))),
            attended_classes=int(to_float(_pick(row, "attendedClasses", "attended_classes"))),
        )


@dataclass(frozen=True)
class StudentRecord:
    id: Any
    roll: str
    name: str = ""

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "StudentRecord":
        return cls(
            id=_pick(row, "id", "_id", "studentId", "student_id"),
            roll=str(_pick(row, "roll", default="")),
            name=str(_pick(row, "name", default="")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "roll": self.roll, "name": self.name}


@dataclass(frozen=True)
class SessionRecord:
    date: date
    period: int

    @property
    def key(self) -> str:
        return f"{self.date.isoformat()}_p{self.period}"

    @property
    def label(self) -> str:
        return f"{self.date.isoformat()} (P{self.period})"


@dataclass(frozen=True)
class PresenceRecord:
    student_id: Any
    session_key: str
    present: bool
