"""Quiz session endpoints."""

from fastapi import APIRouter, Query

from quiz_engine.core.dependencies import CurrentUserId, SessionService
from quiz_engine.schemas.session import (
    AnswerSubmit,
    ExtendRequest,
    QuizResultOut,
    QuizStatisticsOut,
    SessionSnapshotOut,
    SessionSummaryOut,
    SweepOutcome,
)

router = APIRouter()


# ============================================================================
# Start / resume
# ============================================================================


@router.post("/quizzes/{quiz_id}/sessions", response_model=SessionSnapshotOut)
async def start_quiz_session(quiz_id: str, user_id: CurrentUserId, service: SessionService):
    """
    Start a quiz session, or resume the caller's in-progress one.

    Question order is fixed here (shuffled if the quiz asks for it) and the
    deadline is set from the quiz's time limit.
    """
    return service.start(quiz_id, user_id)


# ============================================================================
# Monitoring
# ============================================================================
# Declared before /sessions/{session_token} so "active" is not taken as a token.


@router.get("/sessions/active", response_model=list[SessionSummaryOut])
async def list_active_sessions(
    user_id: CurrentUserId,
    service: SessionService,
    quiz_id: str | None = Query(None),
):
    return service.list_active_sessions(quiz_id)


@router.post("/sessions/sweep", response_model=list[SweepOutcome])
async def sweep_expired_sessions(user_id: CurrentUserId, service: SessionService):
    """Auto-submit every overdue in-progress session."""
    return service.sweep_expired()


@router.get("/users/me/sessions", response_model=list[SessionSummaryOut])
async def my_session_history(
    user_id: CurrentUserId,
    service: SessionService,
    quiz_id: str | None = Query(None),
):
    return service.get_session_history(user_id, quiz_id)


@router.get("/quizzes/{quiz_id}/statistics", response_model=QuizStatisticsOut)
async def quiz_statistics(quiz_id: str, user_id: CurrentUserId, service: SessionService):
    return service.get_quiz_statistics(quiz_id)


# ============================================================================
# Session operations
# ============================================================================


@router.get("/sessions/{session_token}", response_model=SessionSnapshotOut)
async def get_quiz_session(session_token: str, user_id: CurrentUserId, service: SessionService):
    return service.get_session(session_token, user_id)


@router.post("/sessions/{session_token}/answers", response_model=SessionSnapshotOut)
async def submit_answer(
    session_token: str,
    payload: AnswerSubmit,
    user_id: CurrentUserId,
    service: SessionService,
):
    """Save (or overwrite) the answer to one question."""
    return service.submit_answer(session_token, user_id, payload.question_id, payload.answer)


@router.post("/sessions/{session_token}/next", response_model=SessionSnapshotOut)
async def next_question(session_token: str, user_id: CurrentUserId, service: SessionService):
    return service.next_question(session_token, user_id)


@router.post("/sessions/{session_token}/previous", response_model=SessionSnapshotOut)
async def previous_question(session_token: str, user_id: CurrentUserId, service: SessionService):
    return service.previous_question(session_token, user_id)


@router.post("/sessions/{session_token}/complete", response_model=QuizResultOut)
async def complete_quiz_session(session_token: str, user_id: CurrentUserId, service: SessionService):
    return service.complete(session_token, user_id)


@router.post("/sessions/{session_token}/abandon", response_model=SessionSnapshotOut)
async def abandon_quiz_session(session_token: str, user_id: CurrentUserId, service: SessionService):
    return service.abandon(session_token, user_id)


@router.post("/sessions/{session_token}/extend", response_model=SessionSnapshotOut)
async def extend_quiz_session(
    session_token: str,
    payload: ExtendRequest,
    user_id: CurrentUserId,
    service: SessionService,
):
    return service.extend(session_token, user_id, payload.additional_minutes)


@router.get("/sessions/{session_token}/results", response_model=QuizResultOut)
async def quiz_session_results(session_token: str, user_id: CurrentUserId, service: SessionService):
    return service.get_results(session_token, user_id)
