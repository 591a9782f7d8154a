"""Application-specific exceptions for consistent error handling.

Every failure the session engine can report is a subclass of ``QuizSessionError``
with a stable ``code``. Callers branch on the class (or the code), never on the
message text.
"""

from enum import Enum
from typing import Any

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Application error with standardized error code."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | list[Any] | None = None,
    ):
        """Initialize application error."""
        super().__init__(
            status_code=status_code,
            detail={
                "code": code,
                "message": message,
                "details": details,
            },
        )
        self.code = code
        self.message = message
        self.details = details


class ErrorCode(str, Enum):
    """Stable error codes returned by the session engine."""

    NOT_FOUND = "NOT_FOUND"
    NOT_AVAILABLE = "NOT_AVAILABLE"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    EMPTY_QUIZ = "EMPTY_QUIZ"
    INVALID_QUESTION = "INVALID_QUESTION"
    INVALID_SESSION = "INVALID_SESSION"
    AT_FIRST_QUESTION = "AT_FIRST_QUESTION"
    AT_LAST_QUESTION = "AT_LAST_QUESTION"
    NO_TIME_LIMIT = "NO_TIME_LIMIT"
    INVALID_EXTENSION = "INVALID_EXTENSION"


class QuizSessionError(AppError):
    """Base class for session engine errors; subclasses fix code and status."""

    code_value: ErrorCode
    status_code_value: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Quiz session error"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=self.status_code_value,
            code=self.code_value.value,
            message=message or self.default_message,
            details=details,
        )


class NotFound(QuizSessionError):
    code_value = ErrorCode.NOT_FOUND
    status_code_value = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class NotAvailable(QuizSessionError):
    code_value = ErrorCode.NOT_AVAILABLE
    status_code_value = status.HTTP_403_FORBIDDEN
    default_message = "Quiz is not available at this time"


class AlreadyCompleted(QuizSessionError):
    code_value = ErrorCode.ALREADY_COMPLETED
    status_code_value = status.HTTP_409_CONFLICT
    default_message = "Quiz already completed"


class SessionExpired(QuizSessionError):
    """The session's time ran out; a submission scored from saved answers exists."""

    code_value = ErrorCode.SESSION_EXPIRED
    status_code_value = status.HTTP_410_GONE
    default_message = (
        "Quiz session has expired and has been auto-submitted. "
        "Your previous answers have been saved and scored."
    )


class EmptyQuiz(QuizSessionError):
    code_value = ErrorCode.EMPTY_QUIZ
    status_code_value = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Quiz has no questions"


class InvalidQuestion(QuizSessionError):
    code_value = ErrorCode.INVALID_QUESTION
    status_code_value = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid question for this quiz"


class InvalidSession(QuizSessionError):
    code_value = ErrorCode.INVALID_SESSION
    status_code_value = status.HTTP_404_NOT_FOUND
    default_message = "Invalid session"


class AtFirstQuestion(QuizSessionError):
    code_value = ErrorCode.AT_FIRST_QUESTION
    status_code_value = status.HTTP_409_CONFLICT
    default_message = "Already at the first question"


class AtLastQuestion(QuizSessionError):
    code_value = ErrorCode.AT_LAST_QUESTION
    status_code_value = status.HTTP_409_CONFLICT
    default_message = "Already at the last question"


class NoTimeLimit(QuizSessionError):
    code_value = ErrorCode.NO_TIME_LIMIT
    status_code_value = status.HTTP_409_CONFLICT
    default_message = "This quiz does not have a time limit"


class InvalidExtension(QuizSessionError):
    code_value = ErrorCode.INVALID_EXTENSION
    status_code_value = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid extension"
