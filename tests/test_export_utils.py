from datetime import date

import pytest
from openpyxl import load_workbook

from utils.attendance_utils import build_attendance_matrix
from utils.export_utils import (
    ExportTable,
    SORT_ENTERED,
    SORT_ROLL_ASC,
    SORT_ROLL_DESC,
    assessment_column,
    compare_rolls,
    export_filename,
    shape_attendance_sheet,
    shape_marksheet,
    sort_students,
)
from utils.grade_calculation import compute_course_total
from utils.records import AssessmentRecord, PresenceRecord, SessionRecord, StudentRecord
from utils.spreadsheet import write_workbook

STUDENTS = [StudentRecord(1, "10", "Ten"), StudentRecord(2, "2", "Two"), StudentRecord(3, "1", "One")]


def _rolls(students):
    return [s.roll for s in students]


def test_roll_sort_is_numeric():
    assert _rolls(sort_students(STUDENTS, SORT_ROLL_ASC)) == ["1", "2", "10"]
    assert _rolls(sort_students(STUDENTS, SORT_ROLL_DESC)) == ["10", "2", "1"]


def test_entered_order_is_verbatim():
    assert _rolls(sort_students(STUDENTS, SORT_ENTERED)) == ["10", "2", "1"]


def test_mixed_rolls_fall_back_to_text():
    assert compare_rolls("A-2", "A-10") > 0
    assert compare_rolls("2", "10") < 0


def test_float_like_rolls_sort_as_text():
    rolls = ["nan", "3", "1", "2"]
    first = sort_students([StudentRecord(i, r, r) for i, r in enumerate(rolls)], SORT_ROLL_ASC)
    reordered = ["3", "1", "nan", "2"]
    second = sort_students([StudentRecord(i, r, r) for i, r in enumerate(reordered)], SORT_ROLL_ASC)
    assert _rolls(first) == _rolls(second) == ["1", "2", "3", "nan"]
    assert compare_rolls("nan", "1") == -compare_rolls("1", "nan")
    assert compare_rolls("inf", "5") > 0
    assert compare_rolls("1_0", "9") < 0


def test_unknown_sort_mode():
    with pytest.raises(ValueError):
        sort_students(STUDENTS, "by-name")


def test_marksheet_shape():
    assessments = [
        AssessmentRecord(2, "Midterm", 30, order=2),
        AssessmentRecord(1, "CT1", 10, order=1),
    ]
    marks = {1: {1: 8, 2: 25}, 2: {1: 5}}
    scores = {
        sid: compute_course_total("theory", assessments, marks.get(sid, {}), 5, student_id=sid)
        for sid in (1, 2)
    }
    table = shape_marksheet(STUDENTS, assessments, marks, scores, SORT_ROLL_ASC)
    assert table.columns == ["Roll", "Name", "CT1 (10)", "Midterm (30)", "Total (100)", "Grade"]
    assert table.rows[0] == ["1", "One", "", "", 0.0, "F"]
    assert table.rows[1][:4] == ["2", "Two", 5, ""]
    assert table.rows[2][-2:] == [scores[1].total, scores[1].grade]
    assert table.cell_flags is None


def test_assessment_column_formats_fractional_marks():
    assert assessment_column(AssessmentRecord(1, "Quiz", 7.5)) == "Quiz (7.5)"


def test_attendance_sheet_shape():
    day = date(2024, 3, 1)
    matrix = build_attendance_matrix(
        [SessionRecord(day, 1), SessionRecord(day, 2)],
        STUDENTS,
        [PresenceRecord(1, "2024-03-01_p1", True), PresenceRecord(3, "2024-03-01_p2", True)],
    )
    table = shape_attendance_sheet(matrix, SORT_ROLL_ASC)
    assert table.columns == [
        "Roll",
        "Name",
        "2024-03-01 (P1)",
        "2024-03-01 (P2)",
        "Total Present",
        "Total Classes",
        "Percentage",
    ]
    assert table.rows[0] == ["1", "One", "A", "P", 1, 2, 50.0]
    assert table.cell_flags[0] == [None, None, False, True, None, None, None]


def test_export_filename():
    course = {"code": "CSE 3101", "section": "A", "semester": "Fall", "year": 2024}
    assert export_filename(course, "Marksheet") == "CSE_3101_SecA_Fall_2024_Marksheet.xlsx"
    assert export_filename(course, "Attendance", "pdf").endswith("_Attendance.pdf")


def test_workbook_keeps_formula_like_text_as_text():
    table = ExportTable(title="t", columns=["Roll", "Name", "=SUM(A1)"], rows=[["1", "=1+2", 7]])
    ws = load_workbook(write_workbook(table)).active
    assert ws["C1"].data_type == "s"
    assert ws["C1"].value == "=SUM(A1)"
    assert ws["B2"].data_type == "s"
    assert ws["B2"].value == "=1+2"
    assert ws["C2"].value == 7
