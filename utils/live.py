import logging
from flask_socketio import emit, join_room, leave_room, SocketIO


_socketio: SocketIO | None = None
_logger = logging.getLogger(__name__)


def course_room(course_id: int) -> str:
    return f"course-{course_id}"


def initialize_live(socketio: SocketIO, logger: logging.Logger | None = None):
    """Provide socketio and optional logger to this module."""
    global _socketio, _logger
    _socketio = socketio
    if logger is not None:
        _logger = logger


def _course_id_from(data):
    try:
        return int((data or {}).get("course_id"))
    except (TypeError, ValueError):
        return None


def register_socketio_handlers(socketio: SocketIO):
    """Register Socket.IO event handlers. Call this after SocketIO(app) in app.py."""

    @socketio.on("connect")
    def _on_connect():
        emit("connected", {"message": "connected"})

    @socketio.on("subscribe_course")
    def _on_subscribe_course(data):
        course_id = _course_id_from(data)
        if course_id is None:
            emit("error", {"message": "invalid course_id"})
            return
        join_room(course_room(course_id))
        emit("subscribed", {"course_id": course_id})

    @socketio.on("unsubscribe_course")
    def _on_unsubscribe_course(data):
        course_id = _course_id_from(data)
        if course_id is None:
            return
        leave_room(course_room(course_id))


def emit_course_update(course_id: int, kind: str, **extra):
    """Tell subscribers of a course that its attendance or scores changed."""
    if _socketio is None:
        return
    payload = {"course_id": course_id, "kind": kind}
    payload.update(extra)
    try:
        _socketio.emit("course_updated", payload, room=course_room(course_id))
    except Exception as e:
        # a failed broadcast never fails the write that triggered it
        _logger.error(f"Failed to emit course update for course {course_id}: {str(e)}")
