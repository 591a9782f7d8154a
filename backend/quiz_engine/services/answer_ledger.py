"""Answer ledger: one attempt row per (session, question), latest answer wins."""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quiz_engine.common.clock import Clock
from quiz_engine.core.app_exceptions import InvalidQuestion
from quiz_engine.core.logging import get_logger
from quiz_engine.models.session import QuizAttempt, QuizSession
from quiz_engine.repositories.attempt import AttemptRepository
from quiz_engine.repositories.quiz import QuizRepository
from quiz_engine.repositories.session import SessionRepository
from quiz_engine.services.guards import raise_for_terminal

logger = get_logger(__name__)


class AnswerLedger:
    """Upserts answers and keeps ``answers_count`` equal to distinct answered questions.

    Writes are flushed, not committed; the caller owns the transaction.
    """

    def __init__(
        self,
        db: Session,
        quizzes: QuizRepository,
        sessions: SessionRepository,
        attempts: AttemptRepository,
        clock: Clock,
    ):
        self.db = db
        self.quizzes = quizzes
        self.sessions = sessions
        self.attempts = attempts
        self.clock = clock

    def submit(self, session: QuizSession, question_id: str, answer: str) -> QuizAttempt:
        """
        Save the learner's answer for one question.

        Args:
            session: In-progress session (the timeout check has already run)
            question_id: Question being answered
            answer: Raw answer string, stored verbatim

        Returns:
            The created or updated attempt

        Raises:
            InvalidQuestion: If the question is not part of this session's quiz
            AlreadyCompleted / SessionExpired: If the session was finalized concurrently
        """
        raise_for_terminal(session)

        question = self.quizzes.find_question(question_id)
        if (
            question is None
            or question.quiz_id != session.quiz_id
            or question_id not in (session.question_order or [])
        ):
            raise InvalidQuestion(details={"question_id": question_id, "quiz_id": session.quiz_id})

        now = self.clock()
        attempt = self.attempts.find_for_question(session.id, question_id)
        if attempt is not None:
            return self._overwrite(session, attempt, answer)

        try:
            with self.db.begin_nested():
                attempt = self.attempts.create(
                    QuizAttempt(
                        session_id=session.id,
                        quiz_id=session.quiz_id,
                        user_id=session.user_id,
                        question_id=question_id,
                        answer=answer,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except IntegrityError:
            # A concurrent first answer for this question won the insert
            attempt = self.attempts.find_for_question(session.id, question_id)
            if attempt is None:
                raise
            return self._overwrite(session, attempt, answer)

        counted = self.sessions.guarded_update(
            session.id,
            {
                "answers_count": QuizSession.answers_count + 1,
                "last_activity_at": now,
            },
        )
        if not counted:
            raise_for_terminal(session)

        logger.debug(
            "Answer recorded",
            extra={"session_id": session.id, "question_id": question_id, "first_answer": True},
        )
        return attempt

    def _overwrite(self, session: QuizSession, attempt: QuizAttempt, answer: str) -> QuizAttempt:
        now = self.clock()
        touched = self.sessions.guarded_update(session.id, {"last_activity_at": now})
        if not touched:
            raise_for_terminal(session)

        if attempt.answer != answer:
            attempt.changed_count = (attempt.changed_count or 0) + 1
        attempt.answer = answer
        attempt.updated_at = now
        self.db.flush()

        logger.debug(
            "Answer recorded",
            extra={"session_id": session.id, "question_id": attempt.question_id, "first_answer": False},
        )
        return attempt
