from typing import Any, Dict, Optional
from fastapi import status


class ExamError(Exception):
    """Base class for expected, caller-facing failures of the exam engine.

    Each subclass carries a stable ``code`` that clients can branch on and the
    HTTP status the API layer renders it with. Storage failures are never
    wrapped in an ``ExamError``.
    """
    code: str = "EXAM_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SessionNotFound(ExamError):
    code = "SESSION_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class RecordNotFound(ExamError):
    code = "RECORD_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class SessionNotJoinable(ExamError):
    code = "SESSION_NOT_JOINABLE"
    status_code = status.HTTP_409_CONFLICT


class AttemptLimitExceeded(ExamError):
    code = "ATTEMPT_LIMIT_EXCEEDED"
    status_code = status.HTTP_409_CONFLICT


class AttemptExpiredBeforeStart(ExamError):
    code = "ATTEMPT_EXPIRED_BEFORE_START"
    status_code = status.HTTP_409_CONFLICT


class AttemptExpired(ExamError):
    code = "ATTEMPT_EXPIRED"
    status_code = status.HTTP_409_CONFLICT


class AttemptNotInProgress(ExamError):
    code = "ATTEMPT_NOT_IN_PROGRESS"
    status_code = status.HTTP_409_CONFLICT


class AttemptConflict(ExamError):
    code = "ATTEMPT_CONFLICT"
    status_code = status.HTTP_409_CONFLICT


class InvalidStatusTransition(ExamError):
    code = "INVALID_STATUS_TRANSITION"
    status_code = status.HTTP_409_CONFLICT


class SessionLocked(ExamError):
    code = "SESSION_LOCKED"
    status_code = status.HTTP_409_CONFLICT


class SessionHasAttempts(ExamError):
    code = "SESSION_HAS_ATTEMPTS"
    status_code = status.HTTP_409_CONFLICT


class ReviewNotAllowed(ExamError):
    code = "REVIEW_NOT_ALLOWED"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidSessionWindow(ExamError):
    code = "INVALID_SESSION_WINDOW"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
