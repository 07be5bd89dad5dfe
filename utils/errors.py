"""Errors raised by the scoring and attendance engine."""

from typing import Any, Dict, Optional

from flask import jsonify


class ScoringError(Exception):
    """Base class for engine errors; carries a message and optional details."""

    code = "scoring_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidMarksError(ScoringError, ValueError):
    """An assessment has a non-positive full mark."""

    code = "invalid_marks"
    status_code = 400


class InvalidSessionError(ScoringError, ValueError):
    """A session date, period or bulk count failed validation."""

    code = "invalid_session"
    status_code = 400


class DuplicateSessionError(ScoringError):
    """A single session was created for a (date, period) that already exists."""

    code = "duplicate_session"
    status_code = 409


class SessionNotFoundError(ScoringError, LookupError):
    """No session exists for the requested (date, period)."""

    code = "session_not_found"
    status_code = 404


class SourceUnavailableError(ScoringError):
    """A required input source could not be loaded."""

    code = "source_unavailable"
    status_code = 503


def error_response(exc: ScoringError):
    """JSON body and status code for an engine error."""
    return jsonify(exc.to_dict()), exc.status_code
