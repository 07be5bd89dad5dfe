from conftest import login
from models import Student, db


def test_student_marks_view(client, theory_course):
    login(client, 1, "student")  # Alice
    resp = client.get(f"/api/student/courses/{theory_course.id}/marks")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["student"]["roll"] == "10"
    assert data["score"]["total"] == 85.75
    assert data["score"]["grade"] == "A+"
    assert data["attendance"] == {"percentage": 95.0, "marks": 5}
    assert [a["name"] for a in data["assessments"]][:2] == ["CT1", "CT2"]
    assert data["assessments"][0]["category"] == "class_test"
    assert data["a_plus"]["needed"] == 0


def test_student_marks_outlook_for_partial_marks(client, theory_course):
    login(client, 2, "student")  # Bob: no assignment/presentation/CT3 yet
    data = client.get(f"/api/student/courses/{theory_course.id}/marks").get_json()
    assert data["score"]["total"] == 29.5
    outlook = data["a_plus"]
    assert outlook["current_total"] == 29.5
    assert outlook["needed"] == 50.5
    assert outlook["reachable"] is False


def test_student_not_enrolled(client, theory_course):
    db.session.add(Student(roll="99", name="Guest", user_id=50))
    db.session.commit()
    login(client, 50, "student")
    assert client.get(f"/api/student/courses/{theory_course.id}/marks").status_code == 404


def test_student_route_rejects_teacher(teacher, theory_course):
    assert teacher.get(f"/api/student/courses/{theory_course.id}/marks").status_code == 403


def test_student_attendance_view(client, attendance_course):
    login(client, 12, "student")  # Eli: present in P1 only
    resp = client.get(f"/api/student/courses/{attendance_course.id}/attendance")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["rows"] == [
        {"date": "2024-03-01", "period": 1, "status": "Present"},
        {"date": "2024-03-01", "period": 2, "status": "Absent"},
    ]
    assert data["total_present"] == 1
    assert data["percentage"] == 50.0
    assert data["marks"] == 0
