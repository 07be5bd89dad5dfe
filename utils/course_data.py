"""Loaders that turn stored rows into engine records.

Each loader opens its own query through ``db.session`` so it can run inside a
worker thread's application context (see ``utils.fetching``).
"""

from typing import Any, List, Optional

from models import (
    Assessment,
    AttendanceRecord,
    AttendanceSession,
    AttendanceSummary,
    Course,
    Enrollment,
    Mark,
    Student,
    db,
)
from utils.records import (
    AssessmentRecord,
    AttendanceSummaryRow,
    MarkRecord,
    PresenceRecord,
    SessionRecord,
    StudentRecord,
    resolve_category,
)


def get_course(course_id: int) -> Optional[Course]:
    return db.session.get(Course, course_id)


def load_students(course_id: int) -> List[StudentRecord]:
    """Enrolled students in enrollment (entry) order."""
    rows = (
        db.session.query(Student)
        .join(Enrollment, Enrollment.student_id == Student.id)
        .filter(Enrollment.course_id == course_id)
        .order_by(Enrollment.id)
        .all()
    )
    return [StudentRecord(id=s.id, roll=s.roll, name=s.name) for s in rows]


def load_assessments(course_id: int) -> List[AssessmentRecord]:
    rows = Assessment.query.filter_by(course_id=course_id).order_by(Assessment.id).all()
    return [
        AssessmentRecord(
            id=a.id,
            name=a.name,
            full_marks=float(a.full_marks or 0),
            order=a.order,
            category=resolve_category(a.category),
            created_at=a.created_at,
        )
        for a in rows
    ]


def load_marks(course_id: int) -> List[MarkRecord]:
    rows = (
        db.session.query(Mark)
        .join(Assessment, Assessment.id == Mark.assessment_id)
        .filter(Assessment.course_id == course_id)
        .all()
    )
    return [
        MarkRecord(
            student_id=m.student_id,
            assessment_id=m.assessment_id,
            obtained_marks=float(m.obtained_marks or 0),
        )
        for m in rows
    ]


def load_attendance_summary(course_id: int) -> List[AttendanceSummaryRow]:
    rows = AttendanceSummary.query.filter_by(course_id=course_id).all()
    return [
        AttendanceSummaryRow(
            student_id=r.student_id,
            total_classes=int(r.total_classes or 0),
            attended_classes=int(r.attended_classes or 0),
        )
        for r in rows
    ]


def load_sessions(course_id: int) -> List[SessionRecord]:
    rows = (
        AttendanceSession.query.filter_by(course_id=course_id)
        .order_by(AttendanceSession.session_date, AttendanceSession.period)
        .all()
    )
    return [SessionRecord(date=s.session_date, period=s.period) for s in rows]


def load_presence(course_id: int) -> List[PresenceRecord]:
    rows = (
        db.session.query(AttendanceRecord, AttendanceSession)
        .join(AttendanceSession, AttendanceSession.id == AttendanceRecord.session_id)
        .filter(AttendanceSession.course_id == course_id)
        .all()
    )
    return [
        PresenceRecord(
            student_id=record.student_id,
            session_key=SessionRecord(date=session.session_date, period=session.period).key,
            present=bool(record.present),
        )
        for record, session in rows
    ]


def find_student_for_user(user_id: Any) -> Optional[Student]:
    if user_id is None:
        return None
    return Student.query.filter_by(user_id=user_id).first()


def is_enrolled(course_id: int, student_id: int) -> bool:
    return (
        Enrollment.query.filter_by(course_id=course_id, student_id=student_id).first()
        is not None
    )
