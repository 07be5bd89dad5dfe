from io import BytesIO

from openpyxl import load_workbook

from models import db


def test_marksheet_xlsx(teacher, theory_course):
    resp = teacher.get(f"/api/export/courses/{theory_course.id}/marksheet.xlsx?sort=roll-asc")
    assert resp.status_code == 200
    assert "CSE_3101_SecA_Fall_2024_Marksheet.xlsx" in resp.headers["Content-Disposition"]

    ws = load_workbook(BytesIO(resp.data)).active
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0][:3] == ("Roll", "Name", "CT1 (10)")
    assert rows[0][-2:] == ("Total (100)", "Grade")
    assert [r[0] for r in rows[1:]] == ["1", "2", "10"]
    assert rows[3][-2:] == (85.75, "A+")


def test_marksheet_pdf(teacher, theory_course):
    resp = teacher.get(f"/api/export/courses/{theory_course.id}/marksheet.pdf")
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert resp.data.startswith(b"%PDF")


def test_marksheet_pdf_escapes_course_type(teacher, theory_course):
    theory_course.course_type = "theory <b"
    db.session.commit()
    resp = teacher.get(f"/api/export/courses/{theory_course.id}/marksheet.pdf")
    assert resp.status_code == 200
    assert resp.data.startswith(b"%PDF")


def test_attendance_xlsx(teacher, attendance_course):
    resp = teacher.get(f"/api/export/courses/{attendance_course.id}/attendance.xlsx?sort=entered")
    assert resp.status_code == 200
    assert "_Attendance.xlsx" in resp.headers["Content-Disposition"]

    ws = load_workbook(BytesIO(resp.data)).active
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0] == (
        "Roll",
        "Name",
        "2024-03-01 (P1)",
        "2024-03-01 (P2)",
        "Total Present",
        "Total Classes",
        "Percentage",
    )
    assert rows[1] == ("10", "Dana", "P", "P", 2, 2, 100)
    assert rows[3][2:4] == ("A", "A")


def test_export_rejects_unknown_sort(teacher, theory_course):
    resp = teacher.get(f"/api/export/courses/{theory_course.id}/marksheet.xlsx?sort=grade")
    assert resp.status_code == 400


def test_export_requires_teacher(client, theory_course):
    assert client.get(f"/api/export/courses/{theory_course.id}/marksheet.pdf").status_code == 401
