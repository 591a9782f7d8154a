"""Terminal-state checks shared by every session operation."""

from sqlalchemy import select
from sqlalchemy.orm import object_session

from quiz_engine.core.app_exceptions import AlreadyCompleted, SessionExpired
from quiz_engine.models.session import QuizSession, QuizSubmission, SessionStatus


def expired_error(session: QuizSession, submission: QuizSubmission | None) -> SessionExpired:
    """SessionExpired carrying the auto-submitted result, so callers can show it."""
    details = {"session_id": session.id, "status": SessionStatus.EXPIRED.value}
    if submission is not None:
        details.update(
            {
                "submission_id": submission.id,
                "score": submission.score,
                "total_questions": submission.total_questions,
                "percentage": submission.percentage,
                "auto_submitted": submission.meta.auto_submitted,
            }
        )
    return SessionExpired(details=details)


def raise_for_terminal(session: QuizSession) -> None:
    """Raise the matching error if the session is no longer in progress."""
    status = SessionStatus(session.status)
    if not status.is_terminal:
        return

    details = {"session_id": session.id, "status": status.value}
    if status is SessionStatus.COMPLETED:
        raise AlreadyCompleted(details=details)
    if status is SessionStatus.ABANDONED:
        raise AlreadyCompleted("Quiz session was abandoned", details=details)

    db = object_session(session)
    submission = None
    if db is not None:
        submission = db.execute(
            select(QuizSubmission).where(QuizSubmission.session_id == session.id)
        ).scalar_one_or_none()
    raise expired_error(session, submission)
