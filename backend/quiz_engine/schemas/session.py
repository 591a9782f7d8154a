"""Pydantic schemas for quiz sessions."""

import math
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from quiz_engine.models.quiz import Quiz, QuizQuestion
from quiz_engine.models.session import QuizSession, QuizSubmission, SessionStatus
from quiz_engine.schemas.quiz_settings import QuizSettings, SubmissionMeta

# ============================================================================
# Requests
# ============================================================================


class AnswerSubmit(BaseModel):
    """Submit (or overwrite) the answer for one question."""

    question_id: str = Field(..., min_length=1)
    answer: str = Field(..., description="Compared verbatim to the correct answer")


class ExtendRequest(BaseModel):
    """Extend a timed session."""

    additional_minutes: int = Field(..., ge=1)


# ============================================================================
# Snapshot
# ============================================================================


class QuizOut(BaseModel):
    id: str
    title: str
    description: str | None
    settings: QuizSettings

    @classmethod
    def from_quiz(cls, quiz: Quiz) -> "QuizOut":
        return cls(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            settings=quiz.settings,
        )


class QuestionOut(BaseModel):
    """Question content shown to the learner (no correct answer)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    question_text: str
    question_type: str
    options: list[str]


class SessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    quiz_id: str
    user_id: str
    session_token: str
    status: SessionStatus
    started_at: datetime
    completed_at: datetime | None
    expires_at: datetime | None
    time_limit_minutes: int | None
    last_activity_at: datetime
    current_question_index: int
    total_questions: int
    answers_count: int
    question_order: list[str]
    auto_submitted: bool


class NavigationState(BaseModel):
    position: int  # 1-based
    has_previous: bool
    has_next: bool

    @classmethod
    def for_session(cls, session: QuizSession) -> "NavigationState":
        index = session.current_question_index
        return cls(
            position=index + 1,
            has_previous=index > 0,
            has_next=index < session.total_questions - 1,
        )


class SessionSnapshotOut(BaseModel):
    """Session + quiz + current question, as returned by every session operation."""

    session: SessionOut
    quiz: QuizOut
    current_question: QuestionOut | None
    current_answer: str | None
    questions_count: int
    time_remaining_seconds: int | None
    navigation: NavigationState


def remaining_seconds(session: QuizSession, now: datetime) -> int | None:
    """Whole seconds left before ``expires_at``; None for untimed sessions."""
    if session.expires_at is None:
        return None
    return max(0, math.floor((session.expires_at - now).total_seconds()))


def build_snapshot(
    session: QuizSession,
    quiz: Quiz,
    current_question: QuizQuestion | None,
    current_answer: str | None,
    now: datetime,
) -> SessionSnapshotOut:
    return SessionSnapshotOut(
        session=SessionOut.model_validate(session),
        quiz=QuizOut.from_quiz(quiz),
        current_question=QuestionOut.model_validate(current_question) if current_question else None,
        current_answer=current_answer,
        questions_count=session.total_questions,
        time_remaining_seconds=remaining_seconds(session, now),
        navigation=NavigationState.for_session(session),
    )


# ============================================================================
# Results
# ============================================================================


class SubmissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    session_id: str
    quiz_id: str
    user_id: str
    submission_date: datetime
    score: int
    correct_answers: int
    total_questions: int
    percentage: float
    feedback: str | None
    meta: SubmissionMeta


class QuizResultOut(BaseModel):
    """Final score of a completed or expired session."""

    session_id: str
    status: SessionStatus
    score: int
    total_questions: int
    correct_answers: int
    incorrect_answers: int
    percentage: float
    time_taken_seconds: int
    auto_submitted: bool
    submission: SubmissionOut

    @classmethod
    def build(cls, session: QuizSession, submission: QuizSubmission) -> "QuizResultOut":
        meta = submission.meta
        return cls(
            session_id=session.id,
            status=session.status,
            score=submission.score,
            total_questions=submission.total_questions,
            correct_answers=submission.correct_answers,
            incorrect_answers=submission.total_questions - submission.correct_answers,
            percentage=submission.percentage,
            time_taken_seconds=meta.time_taken_seconds,
            auto_submitted=meta.auto_submitted,
            submission=SubmissionOut.model_validate(submission),
        )


class SweepOutcome(BaseModel):
    """One session finalized by the expiry sweep."""

    session_id: str
    user_id: str
    quiz_id: str
    already_finalized: bool  # another path finalized it first
    result: QuizResultOut


# ============================================================================
# History and monitoring
# ============================================================================


class SessionSummaryOut(BaseModel):
    """Session listing entry (no token, no question order)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    quiz_id: str
    user_id: str
    status: SessionStatus
    started_at: datetime
    completed_at: datetime | None
    expires_at: datetime | None
    last_activity_at: datetime
    answers_count: int
    total_questions: int
    auto_submitted: bool


class QuizStatisticsOut(BaseModel):
    quiz_id: str
    total_submissions: int
    average_score: float
    highest_score: int
    lowest_score: int
    average_percentage: float
    auto_submitted_count: int
