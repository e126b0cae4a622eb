"""
Domain errors raised by the services and rendered by the API layer
"""
from typing import Any, Dict, Optional


class LearningEngineError(Exception):
    """Base class; subclasses fix the HTTP status and error code"""

    status_code = 500
    error = "internal_server_error"
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None, **extra: Any):
        self.message = message or self.default_message
        self.headers = headers
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "error": self.error,
            "message": self.message,
            "status_code": self.status_code,
        }
        body.update(self.extra)
        return body


class Unauthenticated(LearningEngineError):
    status_code = 401
    error = "unauthenticated"
    default_message = "Authentication required"


class Unauthorized(LearningEngineError):
    status_code = 403
    error = "unauthorized"
    default_message = "You are not allowed to access this resource"


class NotFound(LearningEngineError):
    status_code = 404
    error = "not_found"
    default_message = "Resource not found"


class InvalidInput(LearningEngineError):
    status_code = 400
    error = "invalid_input"
    default_message = "Invalid input"


class InvalidOption(LearningEngineError):
    status_code = 400
    error = "invalid_option"
    default_message = "Answer index is out of range for this question"


class AlreadyAnswered(LearningEngineError):
    status_code = 400
    error = "already_answered"
    default_message = "This question has already been answered"


class AlreadyPassed(LearningEngineError):
    status_code = 400
    error = "already_passed"
    default_message = "You have already passed this quiz"


class AttemptsExhausted(LearningEngineError):
    status_code = 400
    error = "attempts_exhausted"
    default_message = "No quiz attempts remaining"


class SubmissionConflict(LearningEngineError):
    status_code = 409
    error = "submission_conflict"
    default_message = "Another submission for this quiz is in progress"


class RateLimited(LearningEngineError):
    status_code = 429
    error = "rate_limit_exceeded"
    default_message = "Too many requests"


class AccountLocked(LearningEngineError):
    status_code = 429
    error = "account_locked"
    default_message = "Too many failed login attempts"
