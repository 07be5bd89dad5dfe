"""List courses with their roster size and recorded sessions using the app's DB setup.
Run from the repo root:

    python scripts/list_courses.py

This uses the same DB configuration as the app (DATABASE_URL / ENVIRONMENT from .env).
"""

import sys
import traceback

# Ensure we can import app modules from the parent directory
sys.path.insert(0, ".")

from flask import Flask

from models import AttendanceSession, Course, Enrollment
from utils.db_conn import DatabaseConnection


def main() -> int:
    app = Flask(__name__)
    DatabaseConnection(app)
    try:
        with app.app_context():
            courses = Course.query.order_by(Course.id.desc()).limit(200).all()
            if not courses:
                print("No courses found in the database (empty result set).")
                return 0
            print(f"Found {len(courses)} courses (showing up to 200):\n")
            for course in courses:
                students = Enrollment.query.filter_by(course_id=course.id).count()
                sessions = AttendanceSession.query.filter_by(course_id=course.id).count()
                print(
                    f"{course.id:>5}  {course.code:<10} Sec {course.section or '-':<4} "
                    f"{course.course_type:<7} students={students} sessions={sessions}"
                )
    except Exception:
        print("Database query failed:")
        traceback.print_exc()
        return 2
    print("\nDone.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
