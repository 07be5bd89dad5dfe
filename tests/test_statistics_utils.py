import pytest

from utils.statistics_utils import calculate_attendance_statistics, calculate_course_statistics


def test_course_statistics():
    stats = calculate_course_statistics([85.75, 71.5, 30.0, 40.0])
    assert stats["count"] == 4
    assert stats["top"] == 85.75
    assert stats["lowest"] == 30.0
    assert stats["average"] == pytest.approx(56.81, abs=0.01)
    assert stats["median"] == pytest.approx(55.75)
    assert stats["pass_count"] == 3
    assert stats["pass_rate"] == 75.0
    assert stats["grade_distribution"]["A+"] == 1
    assert stats["grade_distribution"]["A-"] == 1
    assert stats["grade_distribution"]["D"] == 1
    assert stats["grade_distribution"]["F"] == 1
    assert stats["skewness"] is not None


def test_course_statistics_empty_and_constant():
    empty = calculate_course_statistics([])
    assert empty["count"] == 0
    assert empty["skewness"] is None
    assert sum(empty["grade_distribution"].values()) == 0

    flat = calculate_course_statistics([50, 50, 50])
    assert flat["std_dev"] == 0.0
    assert flat["skewness"] is None


def test_attendance_statistics():
    stats = calculate_attendance_statistics([95.0, 90.0, 40.0])
    assert stats["count"] == 3
    assert stats["average_percentage"] == pytest.approx(75.0)
    assert stats["marks_distribution"] == {"5": 1, "4": 1, "3": 0, "2": 0, "1": 0, "0": 1}
