"""Timeout enforcement: lazy expiry on access plus a batch sweep.

There is no timer. A session's deadline is only noticed when something touches the
session (``check``) or when the host runs ``sweep``. Both paths are kept: without
the sweep, a session nobody opens again would stay in progress forever.
"""

from datetime import datetime

from sqlalchemy.orm import Session

from quiz_engine.common.clock import Clock
from quiz_engine.core.logging import get_logger
from quiz_engine.models.session import QuizSession, QuizSubmission, SessionStatus
from quiz_engine.repositories.session import SessionRepository
from quiz_engine.schemas.session import QuizResultOut, SweepOutcome
from quiz_engine.services.finalizer import FinalizeOutcome, SessionFinalizer

logger = get_logger(__name__)


def is_overdue(session: QuizSession, now: datetime) -> bool:
    return (
        session.status == SessionStatus.IN_PROGRESS
        and session.expires_at is not None
        and now > session.expires_at
    )


class TimeoutEnforcer:
    def __init__(
        self,
        db: Session,
        sessions: SessionRepository,
        finalizer: SessionFinalizer,
        clock: Clock,
        batch_size: int = 200,
    ):
        self.db = db
        self.sessions = sessions
        self.finalizer = finalizer
        self.clock = clock
        self.batch_size = batch_size

    def check(self, session: QuizSession) -> QuizSubmission | None:
        """
        Lazy expiry check, run before any operation reads or mutates the session.

        Returns:
            The auto-submitted submission if the deadline has passed (the caller
            must then reject its request), otherwise None
        """
        if not is_overdue(session, self.clock()):
            return None

        logger.info(
            "Session deadline passed, auto-submitting",
            extra={"session_id": session.id, "expires_at": session.expires_at.isoformat()},
        )
        outcome = self.finalize_on_timeout(session)
        return outcome.submission

    def finalize_on_timeout(self, session: QuizSession) -> FinalizeOutcome:
        """Score whatever is saved and expire the session (no-op if already terminal)."""
        return self.finalizer.finalize(session, SessionStatus.EXPIRED)

    def sweep(self) -> list[SweepOutcome]:
        """
        Finalize every in-progress session whose deadline has passed.

        Each session is finalized in its own transaction. A failure is rolled back,
        logged and left out of the result; the sweep carries on with the rest.
        """
        now = self.clock()
        outcomes: list[SweepOutcome] = []
        failures = 0
        cursor: str | None = None

        while True:
            batch = self.sessions.find_overdue(now, limit=self.batch_size, after_id=cursor)
            if not batch:
                break
            batch_ids = [session.id for session in batch]
            cursor = batch_ids[-1]

            for session_id in batch_ids:
                try:
                    outcome = self._sweep_one(session_id)
                except Exception:
                    self.db.rollback()
                    failures += 1
                    logger.error(
                        "Failed to auto-submit expired session",
                        extra={"session_id": session_id},
                        exc_info=True,
                    )
                    continue
                if outcome is not None:
                    outcomes.append(outcome)

        logger.info(
            "Expired session sweep finished",
            extra={"finalized": len(outcomes), "failed": failures},
        )
        return outcomes

    def _sweep_one(self, session_id: str) -> SweepOutcome | None:
        session = self.sessions.find_by_id(session_id)
        if session is None:
            return None
        outcome = self.finalize_on_timeout(session)
        if outcome.submission is None:
            # Abandoned or extended concurrently: nothing to report
            return None
        return SweepOutcome(
            session_id=session.id,
            user_id=session.user_id,
            quiz_id=session.quiz_id,
            already_finalized=not outcome.created,
            result=QuizResultOut.build(outcome.session, outcome.submission),
        )
