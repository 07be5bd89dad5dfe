import os
import sys
import tempfile
from datetime import date

import pytest

# Point the app at a throwaway SQLite file before app.py configures the database
_DB_DIR = tempfile.mkdtemp(prefix="course-portal-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_DB_DIR, "test.db")

# Ensure project root is on sys.path so tests can import app.py
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app import app as flask_app  # noqa: E402
from models import (  # noqa: E402
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

TEACHER_USER_ID = 100


@pytest.fixture()
def app():
    flask_app.config.update(TESTING=True, WTF_CSRF_ENABLED=False)
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def login(client, user_id, role):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role
    return client


@pytest.fixture()
def teacher(client):
    return login(client, TEACHER_USER_ID, "teacher")


def _add_students(course, rows):
    students = []
    for roll, name, user_id in rows:
        student = Student(roll=roll, name=name, user_id=user_id)
        db.session.add(student)
        db.session.flush()
        db.session.add(Enrollment(course_id=course.id, student_id=student.id))
        students.append(student)
    db.session.flush()
    return students


@pytest.fixture()
def theory_course(app):
    """Theory course; the first student totals 85.75 (A+)."""
    course = Course(
        code="CSE 3101",
        title="Databases",
        section="A",
        semester="Fall",
        year=2024,
        course_type="theory",
        teacher_id=TEACHER_USER_ID,
    )
    db.session.add(course)
    db.session.flush()

    alice, bob, carol = _add_students(
        course, [("10", "Alice", 1), ("2", "Bob", 2), ("1", "Carol", 3)]
    )
    specs = [
        ("CT1", 10, 1, {alice: 8, bob: 5}),
        ("CT2", 10, 2, {alice: 6, bob: 5}),
        ("CT3", 10, 3, {alice: 9}),
        ("Midterm", 30, 4, {alice: 25, bob: 10}),
        ("Final", 40, 5, {alice: 35, bob: 12}),
        ("Assignment", 10, 6, {alice: 8}),
        ("Presentation", 10, 7, {alice: 8}),
    ]
    for name, full, order, marks in specs:
        assessment = Assessment(course_id=course.id, name=name, full_marks=full, order=order)
        db.session.add(assessment)
        db.session.flush()
        for student, value in marks.items():
            db.session.add(
                Mark(student_id=student.id, assessment_id=assessment.id, obtained_marks=value)
            )

    db.session.add(
        AttendanceSummary(
            course_id=course.id, student_id=alice.id, total_classes=20, attended_classes=19
        )
    )
    db.session.add(
        AttendanceSummary(
            course_id=course.id, student_id=bob.id, total_classes=20, attended_classes=10
        )
    )
    db.session.commit()
    return course


@pytest.fixture()
def attendance_course(app):
    """Lab course with three students and two recorded sessions on 2024-03-01."""
    course = Course(
        code="CSE 3102",
        title="Databases Lab",
        section="B1",
        semester="Fall",
        year=2024,
        course_type="lab",
        teacher_id=TEACHER_USER_ID,
    )
    db.session.add(course)
    db.session.flush()
    s1, s2, s3 = _add_students(
        course, [("10", "Dana", 11), ("2", "Eli", 12), ("1", "Fay", 13)]
    )

    for period, present_ids in ((1, {s1.id, s2.id}), (2, {s1.id})):
        session = AttendanceSession(
            course_id=course.id, session_date=date(2024, 3, 1), period=period
        )
        for student in (s1, s2, s3):
            session.records.append(
                AttendanceRecord(student_id=student.id, present=student.id in present_ids)
            )
        db.session.add(session)
    db.session.commit()
    return course
