from datetime import date

import pytest

from utils.attendance_utils import (
    MAX_PERIODS_PER_DAY,
    attendance_marks,
    attendance_percentage,
    attendance_score,
    build_attendance_matrix,
    make_session,
    parse_session_date,
    plan_bulk_periods,
    student_attendance_view,
    summary_rows_from_matrix,
    validate_period,
)
from utils.errors import InvalidSessionError
from utils.records import AttendanceSummaryRow, PresenceRecord, SessionRecord, StudentRecord


@pytest.mark.parametrize(
    "percentage,marks",
    [(100, 5), (90.01, 5), (90.0, 4), (80.5, 4), (80, 3), (70.1, 3), (65, 2), (55, 1), (50, 0), (0, 0)],
)
def test_marks_use_strict_bounds(percentage, marks):
    assert attendance_marks(percentage) == marks


def test_percentage_clamps_and_handles_zero_total():
    assert attendance_percentage(25, 20) == 100.0
    assert attendance_percentage(-2, 20) == 0.0
    assert attendance_percentage(5, 0) == 0.0


def test_attendance_score_from_summary_row():
    score = attendance_score(AttendanceSummaryRow(student_id=1, total_classes=20, attended_classes=19))
    assert score.percentage == pytest.approx(95.0)
    assert score.marks == 5
    assert attendance_score(None).marks == 0


@pytest.mark.parametrize("value", ["2024-02-30", "yesterday", "", None])
def test_invalid_dates_rejected(value):
    with pytest.raises(InvalidSessionError):
        parse_session_date(value)


def test_session_date_accepts_iso_timestamp():
    assert parse_session_date("2024-03-01T10:00:00Z") == date(2024, 3, 1)


@pytest.mark.parametrize("value", [0, -1, 1.5, "x", None, True, float("inf")])
def test_invalid_periods_rejected(value):
    with pytest.raises(InvalidSessionError):
        validate_period(value)


def test_session_key_and_label():
    session = make_session("2024-03-01", "2")
    assert session.key == "2024-03-01_p2"
    assert session.label == "2024-03-01 (P2)"


def test_bulk_plan_skips_existing_periods():
    plan = plan_bulk_periods([2], 1, 3)
    assert plan.created_periods == [1, 3]
    assert plan.skipped_periods == [2]
    assert plan.to_dict() == {"created_periods": [1, 3], "skipped_periods": [2]}


@pytest.mark.parametrize("count", [0, -2, 1.5, "many"])
def test_bulk_plan_rejects_bad_counts(count):
    with pytest.raises(InvalidSessionError):
        plan_bulk_periods([], 1, count)


def test_bulk_plan_caps_classes_per_day():
    plan = plan_bulk_periods([], 1, MAX_PERIODS_PER_DAY)
    assert plan.created_periods == list(range(1, MAX_PERIODS_PER_DAY + 1))
    with pytest.raises(InvalidSessionError):
        plan_bulk_periods([], 1, MAX_PERIODS_PER_DAY + 1)
    with pytest.raises(InvalidSessionError):
        plan_bulk_periods([], 1, 10**7)


def _matrix():
    day = date(2024, 3, 1)
    sessions = [SessionRecord(day, 2), SessionRecord(day, 1), SessionRecord(date(2024, 2, 28), 1)]
    students = [StudentRecord(1, "10", "A"), StudentRecord(2, "2", "B")]
    records = [
        PresenceRecord(1, "2024-03-01_p1", True),
        PresenceRecord(1, "2024-03-01_p2", True),
        PresenceRecord(2, "2024-03-01_p1", False),
        PresenceRecord(2, "2024-02-28_p1", True),
        PresenceRecord(99, "2024-03-01_p1", True),
        PresenceRecord(1, "2024-01-01_p9", True),
    ]
    return build_attendance_matrix(sessions, students, records)


def test_matrix_orders_sessions_and_counts_presence():
    matrix = _matrix()
    assert [s.key for s in matrix.sessions] == [
        "2024-02-28_p1",
        "2024-03-01_p1",
        "2024-03-01_p2",
    ]
    assert matrix.total_classes == 3
    assert matrix.rows[0]["present_count"] == 2
    assert matrix.rows[0]["percentage"] == pytest.approx(66.67)
    assert matrix.rows[1]["present_count"] == 1
    # unknown students and sessions are ignored
    assert 99 not in matrix.matrix
    assert "2024-01-01_p9" not in matrix.matrix[1]


def test_matrix_is_sparse():
    matrix = _matrix()
    assert matrix.is_present(2, "2024-03-01_p2") is False
    assert "2024-03-01_p2" not in matrix.matrix[2]
    payload = matrix.to_dict()
    assert payload["matrix"]["1"]["2024-03-01_p1"] is True
    assert payload["sessions"][0] == {"key": "2024-02-28_p1", "label": "2024-02-28 (P1)"}


def test_matrix_without_sessions():
    matrix = build_attendance_matrix([], [StudentRecord(1, "1")], [])
    assert matrix.total_classes == 0
    assert matrix.rows[0]["percentage"] == 0.0


def test_summary_rows_from_matrix():
    rows = summary_rows_from_matrix(_matrix())
    assert rows[0] == AttendanceSummaryRow(student_id=1, total_classes=3, attended_classes=2)


def test_student_attendance_view():
    view = student_attendance_view(_matrix(), 2)
    assert [r["status"] for r in view["rows"]] == ["Present", "Absent", "Absent"]
    assert view["total_present"] == 1
    assert view["total_classes"] == 3
    assert view["marks"] == 0
