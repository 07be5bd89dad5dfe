import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Optional

from flask import jsonify, session

from utils.course_data import get_course

logger = logging.getLogger(__name__)

ROLE_TEACHER = "teacher"
ROLE_STUDENT = "student"


@dataclass(frozen=True)
class CallerContext:
    """Who is calling: the logged-in user id and role from the Flask session."""

    user_id: Any
    role: Optional[str] = None

    @property
    def is_teacher(self) -> bool:
        return self.role == ROLE_TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == ROLE_STUDENT

    def owns(self, course) -> bool:
        """Teachers may act on courses without a recorded owner or on their own."""
        owner = getattr(course, "teacher_id", None)
        return owner is None or str(owner) == str(self.user_id)


def current_caller() -> Optional[CallerContext]:
    if "user_id" not in session:
        return None
    return CallerContext(user_id=session.get("user_id"), role=session.get("role"))


def login_required(f):
    """Ensure a session exists and pass the caller to the view as ``caller``.

    API clients get a 401 JSON body instead of a redirect.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        caller = current_caller()
        if caller is None:
            return jsonify({"error": "unauthorized", "message": "Please log in"}), 401
        kwargs["caller"] = caller
        return f(*args, **kwargs)

    return decorated_function


def role_required(role: str):
    """Like :func:`login_required`, but also require a session role."""

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            caller = current_caller()
            if caller is None:
                return jsonify({"error": "unauthorized", "message": "Please log in"}), 401
            if caller.role != role:
                logger.warning(f"User {caller.user_id} ({caller.role}) denied {role} route")
                return (
                    jsonify(
                        {
                            "error": "forbidden",
                            "message": f"Access denied. {role.capitalize()} privileges required.",
                        }
                    ),
                    403,
                )
            kwargs["caller"] = caller
            return f(*args, **kwargs)

        return decorated_function

    return decorator


def require_course(course_id: int, caller: CallerContext):
    """Return ``(course, None)`` or ``(None, error_response)`` for a teacher route."""
    course = get_course(course_id)
    if course is None or not caller.owns(course):
        return None, (jsonify({"error": "not_found", "message": "Course not found or access denied"}), 404)
    return course, None
