import logging
from typing import Any, Dict, Iterable, List

from sqlalchemy.exc import IntegrityError

from models import AttendanceRecord, AttendanceSession, AttendanceSummary, Enrollment, Student, db
from utils.attendance_utils import (
    BulkPlan,
    attendance_score,
    make_session,
    parse_session_date,
    plan_bulk_periods,
)
from utils.errors import DuplicateSessionError, SessionNotFoundError
from utils.records import AttendanceSummaryRow

logger = logging.getLogger(__name__)

_PRESENT_WORDS = {"p", "present", "true", "yes", "1"}


def is_present(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value or "").strip().lower() in _PRESENT_WORDS


def _roster_index(course_id: int):
    rows = (
        db.session.query(Student.id, Student.roll)
        .join(Enrollment, Enrollment.student_id == Student.id)
        .filter(Enrollment.course_id == course_id)
        .all()
    )
    by_id = {sid for sid, _ in rows}
    by_roll = {str(roll): sid for sid, roll in rows}
    return by_id, by_roll


def resolve_presence(course_id: int, records: Iterable[Dict[str, Any]]) -> Dict[int, bool]:
    """Map posted records to {student_id: present}, keyed by id or roll.

    Entries for students outside the course roster are dropped.
    """
    by_id, by_roll = _roster_index(course_id)
    presence: Dict[int, bool] = {}
    for record in records or []:
        if not isinstance(record, dict):
            continue
        sid = record.get("student_id", record.get("studentId"))
        try:
            sid = int(sid) if sid is not None else None
        except (TypeError, ValueError):
            sid = None
        if sid is None and record.get("roll") is not None:
            sid = by_roll.get(str(record["roll"]))
        if sid not in by_id:
            logger.warning(f"Course {course_id}: ignoring attendance for unknown student {record}")
            continue
        presence[sid] = is_present(record.get("present", record.get("status")))
    return presence


def _find_session(course_id: int, session_date, period: int):
    return AttendanceSession.query.filter_by(
        course_id=course_id, session_date=session_date, period=period
    ).first()


def _add_records(session: AttendanceSession, presence: Dict[int, bool]) -> None:
    for sid, present in presence.items():
        session.records.append(AttendanceRecord(student_id=sid, present=present))


def create_session(course_id: int, session_date: Any, period: Any, records=None) -> AttendanceSession:
    """Create one (date, period) session with its records."""
    key = make_session(session_date, period)
    if _find_session(course_id, key.date, key.period) is not None:
        raise DuplicateSessionError(
            f"Attendance for {key.label} already exists",
            details={"date": key.date.isoformat(), "period": key.period},
        )

    presence = resolve_presence(course_id, records)
    session = AttendanceSession(course_id=course_id, session_date=key.date, period=key.period)
    _add_records(session, presence)
    db.session.add(session)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateSessionError(
            f"Attendance for {key.label} already exists",
            details={"date": key.date.isoformat(), "period": key.period},
        )
    logger.info(f"Course {course_id}: created session {key.key} with {len(presence)} records")
    return session


def create_sessions_bulk(
    course_id: int, session_date: Any, start_period: Any, num_classes: Any, records=None
) -> BulkPlan:
    """Create consecutive periods on one date, skipping the ones that exist.

    Existing sessions and their records are left untouched.
    """
    day = parse_session_date(session_date)
    existing = [
        s.period
        for s in AttendanceSession.query.filter_by(course_id=course_id, session_date=day).all()
    ]
    plan = plan_bulk_periods(existing, start_period, num_classes)

    presence = resolve_presence(course_id, records)
    for period in plan.created_periods:
        session = AttendanceSession(course_id=course_id, session_date=day, period=period)
        _add_records(session, presence)
        db.session.add(session)
    try:
        db.session.commit()
    except IntegrityError:
        # a concurrent request created one of the periods first
        db.session.rollback()
        raise DuplicateSessionError(
            f"Attendance for {day.isoformat()} changed while saving, retry the request",
            details={"date": day.isoformat(), "periods": plan.created_periods},
        )

    logger.info(
        f"Course {course_id}: bulk attendance {day.isoformat()} "
        f"created {plan.created_periods} skipped {plan.skipped_periods}"
    )
    return plan


def get_session(course_id: int, session_date: Any, period: Any) -> AttendanceSession:
    key = make_session(session_date, period)
    session = _find_session(course_id, key.date, key.period)
    if session is None:
        raise SessionNotFoundError(
            f"No attendance recorded for {key.label}",
            details={"date": key.date.isoformat(), "period": key.period},
        )
    return session


def get_session_day(course_id: int, session_date: Any, period: Any) -> Dict[str, Any]:
    """Records of one (date, period) session."""
    session = get_session(course_id, session_date, period)
    student_ids = [r.student_id for r in session.records]
    students = {}
    if student_ids:
        students = {s.id: s for s in Student.query.filter(Student.id.in_(student_ids)).all()}
    records = []
    for record in sorted(session.records, key=lambda r: r.student_id):
        student = students.get(record.student_id)
        records.append(
            {
                "student_id": record.student_id,
                "roll": student.roll if student else None,
                "name": student.name if student else None,
                "present": bool(record.present),
            }
        )
    return {
        "date": session.session_date.isoformat(),
        "period": session.period,
        "records": records,
    }


def update_session(course_id: int, session_date: Any, period: Any, records=None) -> AttendanceSession:
    """Replace the presence records of exactly one existing session."""
    session = get_session(course_id, session_date, period)
    presence = resolve_presence(course_id, records)
    session.records.clear()
    db.session.flush()
    _add_records(session, presence)
    db.session.commit()
    logger.info(
        f"Course {course_id}: updated session {session.session_date.isoformat()} "
        f"P{session.period} with {len(presence)} records"
    )
    return session


def save_attendance_summary(course_id: int, rows: Iterable[AttendanceSummaryRow]) -> int:
    """Upsert summary rows for enrolled students; returns how many were written."""
    by_id, _ = _roster_index(course_id)
    existing = {
        s.student_id: s for s in AttendanceSummary.query.filter_by(course_id=course_id).all()
    }
    written = 0
    for row in rows or []:
        try:
            sid = int(row.student_id)
        except (TypeError, ValueError):
            continue
        if sid not in by_id:
            continue
        total = max(int(row.total_classes or 0), 0)
        attended = min(max(int(row.attended_classes or 0), 0), total)
        summary = existing.get(sid)
        if summary is None:
            summary = AttendanceSummary(course_id=course_id, student_id=sid)
            db.session.add(summary)
            existing[sid] = summary
        summary.total_classes = total
        summary.attended_classes = attended
        written += 1
    db.session.commit()
    logger.info(f"Course {course_id}: saved {written} attendance summary rows")
    return written


def summary_rows_payload(rows: Iterable[AttendanceSummaryRow]) -> List[Dict[str, Any]]:
    payload = []
    for row in rows:
        score = attendance_score(row)
        payload.append(
            {
                "student_id": row.student_id,
                "total_classes": row.total_classes,
                "attended_classes": row.attended_classes,
                "percentage": round(score.percentage, 2),
                "marks": score.marks,
            }
        )
    return payload
