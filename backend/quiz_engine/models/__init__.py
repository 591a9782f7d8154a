"""Database models."""

from quiz_engine.models.quiz import Quiz, QuizQuestion
from quiz_engine.models.session import (
    QuizAttempt,
    QuizSession,
    QuizSubmission,
    SessionStatus,
)

__all__ = [
    "Quiz",
    "QuizQuestion",
    "QuizSession",
    "QuizAttempt",
    "QuizSubmission",
    "SessionStatus",
]
