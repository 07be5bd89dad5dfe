from app import socketio


def _events(sio, name):
    return [e["args"][0] for e in sio.get_received() if e["name"] == name]


def test_subscriber_is_notified_of_attendance_changes(app, teacher, attendance_course):
    sio = socketio.test_client(app, flask_test_client=teacher)
    assert sio.is_connected()
    sio.emit("subscribe_course", {"course_id": attendance_course.id})
    sio.get_received()

    resp = teacher.post(
        "/api/attendance/bulk",
        json={"course_id": attendance_course.id, "date": "2024-03-08", "startPeriod": 1, "numClasses": 1},
    )
    assert resp.status_code == 200
    assert _events(sio, "course_updated") == [
        {"course_id": attendance_course.id, "kind": "attendance"}
    ]
    sio.disconnect()


def test_invalid_subscription_reports_error(app):
    sio = socketio.test_client(app)
    sio.emit("subscribe_course", {"course_id": "abc"})
    assert _events(sio, "error") == [{"message": "invalid course_id"}]
    sio.disconnect()


def test_other_rooms_are_not_notified(app, teacher, attendance_course):
    sio = socketio.test_client(app, flask_test_client=teacher)
    sio.emit("subscribe_course", {"course_id": attendance_course.id + 1})
    sio.get_received()
    teacher.post(
        "/api/attendance",
        json={"course_id": attendance_course.id, "date": "2024-03-08", "period": 1, "records": []},
    )
    assert _events(sio, "course_updated") == []
    sio.disconnect()
