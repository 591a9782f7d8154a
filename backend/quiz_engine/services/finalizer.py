"""Single path that moves a session to a scored terminal state.

Both explicit completion and timeout go through ``SessionFinalizer.finalize``:

1. re-read the session; if it is no longer in progress, return what exists
2. score the attempts saved so far
3. guarded ``UPDATE ... WHERE status = 'in_progress'`` to the terminal status
4. insert the submission and commit both together

A caller that loses step 3 (or trips the unique index on the submission) rolls
back and returns the winner's submission instead of writing a second one.
"""

from dataclasses import dataclass
from typing import NamedTuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quiz_engine.common.clock import Clock
from quiz_engine.core.logging import get_logger
from quiz_engine.models.quiz import QuizQuestion
from quiz_engine.models.session import QuizSession, QuizSubmission, SessionStatus
from quiz_engine.repositories.attempt import AttemptRepository
from quiz_engine.repositories.session import SessionRepository
from quiz_engine.repositories.submission import SubmissionRepository
from quiz_engine.schemas.quiz_settings import SubmissionMeta
from quiz_engine.services.scoring import score_attempts

logger = get_logger(__name__)

COMPLETED_FEEDBACK = "Quiz submitted successfully"
TIMEOUT_FEEDBACK = "Quiz auto-submitted due to timeout"


class ScoredQuestion(NamedTuple):
    id: str
    correct_answer: str | None  # None when the question no longer exists


@dataclass
class FinalizeOutcome:
    session: QuizSession
    submission: QuizSubmission | None  # None if no score exists (abandoned, or not yet overdue)
    created: bool


class SessionFinalizer:
    def __init__(
        self,
        db: Session,
        sessions: SessionRepository,
        attempts: AttemptRepository,
        submissions: SubmissionRepository,
        clock: Clock,
    ):
        self.db = db
        self.sessions = sessions
        self.attempts = attempts
        self.submissions = submissions
        self.clock = clock

    def finalize(self, session: QuizSession, status: SessionStatus) -> FinalizeOutcome:
        """
        Score the session and move it to ``status`` (COMPLETED or EXPIRED).

        Commits on success. Idempotent: a session that is already terminal is
        returned with its existing submission and ``created=False``.
        A timeout finalize is a no-op (``submission=None``) while the session's
        deadline has not passed, even if the caller selected it as overdue earlier.
        """
        if status not in (SessionStatus.COMPLETED, SessionStatus.EXPIRED):
            raise ValueError(f"Cannot finalize a session to {status}")

        self.db.refresh(session)
        if session.status != SessionStatus.IN_PROGRESS:
            return self._existing(session)

        now = self.clock()
        auto_submitted = status is SessionStatus.EXPIRED
        conditions = ()
        if auto_submitted:
            if session.expires_at is None or now <= session.expires_at:
                # Deadline moved (extended) after the caller decided it had passed
                return FinalizeOutcome(session=session, submission=None, created=False)
            conditions = (QuizSession.expires_at.is_not(None), QuizSession.expires_at < now)
        answers = self.attempts.answers_map(session.id)
        result = score_attempts(self._scored_questions(session), answers)
        time_taken = max(0, int((now - session.started_at).total_seconds()))

        won = self.sessions.guarded_update(
            session.id,
            {
                "status": status,
                "completed_at": now,
                "last_activity_at": now,
                "auto_submitted": auto_submitted,
            },
            conditions=conditions,
        )
        if not won:
            self.db.rollback()
            logger.info(
                "Session already finalized by a concurrent caller",
                extra={"session_id": session.id, "requested_status": status.value},
            )
            return self._existing(session)

        meta = SubmissionMeta(
            time_taken_seconds=time_taken,
            auto_submitted=auto_submitted,
            timeout_submission=auto_submitted,
            answered_questions=len(answers),
        )
        try:
            submission = self.submissions.create(
                QuizSubmission(
                    session_id=session.id,
                    quiz_id=session.quiz_id,
                    user_id=session.user_id,
                    submission_date=now,
                    score=result.score,
                    correct_answers=result.correct_answers,
                    total_questions=result.total_questions,
                    percentage=result.percentage,
                    feedback=TIMEOUT_FEEDBACK if auto_submitted else COMPLETED_FEEDBACK,
                    meta_json=meta.model_dump(),
                )
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return self._existing(session)

        logger.info(
            "Quiz session finalized",
            extra={
                "session_id": session.id,
                "quiz_id": session.quiz_id,
                "user_id": session.user_id,
                "status": status.value,
                "score": result.score,
                "total_questions": result.total_questions,
                "auto_submitted": auto_submitted,
            },
        )
        return FinalizeOutcome(session=session, submission=submission, created=True)

    def _existing(self, session: QuizSession) -> FinalizeOutcome:
        self.db.refresh(session)
        return FinalizeOutcome(
            session=session,
            submission=self.submissions.find_by_session(session.id),
            created=False,
        )

    def _scored_questions(self, session: QuizSession) -> list[ScoredQuestion]:
        """The questions captured at start, in session order."""
        order = list(session.question_order or [])
        if not order:
            return []
        rows = self.db.query(QuizQuestion).filter(QuizQuestion.id.in_(order)).all()
        by_id = {row.id: row.correct_answer for row in rows}
        return [ScoredQuestion(id=qid, correct_answer=by_id.get(qid)) for qid in order]
