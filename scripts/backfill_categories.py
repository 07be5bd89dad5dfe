"""Store an explicit category on every assessment that has none yet.
Run from the repo root:

    python scripts/backfill_categories.py            # preview only
    python scripts/backfill_categories.py --apply    # write the categories

Categories are suggested from the assessment name and the course type, the same
rules the scoring engine falls back to when no category is stored.
"""

import argparse
import sys

# Ensure we can import app modules from the parent directory
sys.path.insert(0, ".")

from flask import Flask

from models import Assessment, Course, db
from utils.db_conn import DatabaseConnection
from utils.structure_utils import backfill_categories


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--apply", action="store_true", help="commit the suggested categories")
    args = parser.parse_args(argv)

    app = Flask(__name__)
    DatabaseConnection(app)
    with app.app_context():
        total = 0
        for course in Course.query.order_by(Course.id).all():
            assessments = Assessment.query.filter_by(course_id=course.id).all()
            changes = backfill_categories(assessments, course.course_type)
            for change in changes:
                print(f"course {course.id} {course.code}: {change['name']!r} -> {change['category']}")
            total += len(changes)

        if args.apply:
            db.session.commit()
            print(f"\nStored {total} categories.")
        else:
            db.session.rollback()
            print(f"\n{total} assessments would change. Re-run with --apply to store them.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
