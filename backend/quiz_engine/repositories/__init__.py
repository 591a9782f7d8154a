"""Repositories for the session engine's entities."""

from quiz_engine.repositories.attempt import AttemptRepository
from quiz_engine.repositories.quiz import QuizRepository
from quiz_engine.repositories.session import SessionRepository
from quiz_engine.repositories.submission import SubmissionRepository

__all__ = [
    "AttemptRepository",
    "QuizRepository",
    "SessionRepository",
    "SubmissionRepository",
]
