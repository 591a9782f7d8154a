"""Quiz session, attempt and submission models."""

from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from quiz_engine.db.base import Base
from quiz_engine.models.types import JSONType, new_id
from quiz_engine.schemas.quiz_settings import SubmissionMeta


class SessionStatus(str, PyEnum):
    """Quiz session status."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    EXPIRED = "expired"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self is not SessionStatus.IN_PROGRESS


class QuizSession(Base):
    """One learner's attempt at a quiz, from start to a terminal state."""

    __tablename__ = "quiz_sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    quiz_id = Column(
        String(36),
        ForeignKey("quizzes.id", onupdate="CASCADE"),
        nullable=False,
    )
    user_id = Column(String(64), nullable=False)
    session_token = Column(String(128), nullable=False, unique=True)

    status = Column(
        Enum(
            SessionStatus,
            name="quiz_session_status",
            native_enum=False,
            length=20,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=SessionStatus.IN_PROGRESS,
    )

    # Timing
    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    time_limit_minutes = Column(Integer, nullable=True)  # null = untimed
    expires_at = Column(DateTime, nullable=True)  # started_at + time limit
    last_activity_at = Column(DateTime, nullable=False)

    # Progress
    current_question_index = Column(Integer, nullable=False, default=0)  # 0-based
    total_questions = Column(Integer, nullable=False)
    answers_count = Column(Integer, nullable=False, default=0)

    # Snapshots captured at start, stable across resumes
    question_order = Column(JSONType, nullable=False, default=list)  # [question_id, ...]
    settings_snapshot = Column(JSONType, nullable=False, default=dict)  # QuizSettings dump

    auto_submitted = Column(Boolean, nullable=False, default=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, onupdate=func.now(), nullable=True)

    quiz = relationship("Quiz")
    attempts = relationship("QuizAttempt", back_populates="session", cascade="all, delete-orphan")
    submission = relationship("QuizSubmission", back_populates="session", uselist=False)

    __table_args__ = (
        # At most one in-progress session per (quiz, user)
        Index(
            "uq_quiz_sessions_active_owner",
            "quiz_id",
            "user_id",
            unique=True,
            sqlite_where=text("status = 'in_progress'"),
            postgresql_where=text("status = 'in_progress'"),
        ),
        Index("ix_quiz_sessions_user_created", "user_id", "created_at"),
        Index("ix_quiz_sessions_status_expires", "status", "expires_at"),
    )


class QuizAttempt(Base):
    """Latest answer a learner gave for one question within a session."""

    __tablename__ = "quiz_attempts"

    id = Column(String(36), primary_key=True, default=new_id)
    session_id = Column(
        String(36),
        ForeignKey("quiz_sessions.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    quiz_id = Column(String(36), nullable=False)
    user_id = Column(String(64), nullable=False)
    question_id = Column(
        String(36),
        ForeignKey("quiz_questions.id", onupdate="CASCADE"),
        nullable=False,
    )

    answer = Column(Text, nullable=False)
    changed_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    session = relationship("QuizSession", back_populates="attempts")

    __table_args__ = (
        UniqueConstraint("session_id", "question_id", name="uq_quiz_attempt_question"),
        Index("ix_quiz_attempts_quiz_user", "quiz_id", "user_id"),
    )


class QuizSubmission(Base):
    """Immutable scored outcome of a completed or expired session.

    Written in the same transaction as the session's terminal transition, so a
    submission never exists for an in-progress session.
    """

    __tablename__ = "quiz_submissions"

    id = Column(String(36), primary_key=True, default=new_id)
    session_id = Column(
        String(36),
        ForeignKey("quiz_sessions.id", onupdate="CASCADE"),
        nullable=False,
        unique=True,  # exactly one submission per session
    )
    quiz_id = Column(String(36), nullable=False)
    user_id = Column(String(64), nullable=False)

    submission_date = Column(DateTime, nullable=False)
    score = Column(Integer, nullable=False)
    correct_answers = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    percentage = Column(Float, nullable=False)
    feedback = Column(Text, nullable=True)
    meta_json = Column(JSONType, nullable=False, default=dict)  # SubmissionMeta dump

    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    session = relationship("QuizSession", back_populates="submission")

    __table_args__ = (Index("ix_quiz_submissions_quiz_user", "quiz_id", "user_id"),)

    @property
    def meta(self) -> SubmissionMeta:
        return SubmissionMeta.model_validate(self.meta_json or {})
