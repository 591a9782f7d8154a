"""Session engine service: start, resume, answer, navigate, finalize."""

import random
from contextlib import contextmanager
from datetime import timedelta
from typing import Callable, Iterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quiz_engine.common.clock import Clock, utcnow
from quiz_engine.common.tokens import generate_session_token
from quiz_engine.core.app_exceptions import (
    AlreadyCompleted,
    EmptyQuiz,
    InvalidExtension,
    InvalidSession,
    NoTimeLimit,
    NotAvailable,
    NotFound,
)
from quiz_engine.core.config import settings
from quiz_engine.core.logging import get_logger
from quiz_engine.models.quiz import Quiz
from quiz_engine.models.session import QuizSession, SessionStatus
from quiz_engine.repositories import (
    AttemptRepository,
    QuizRepository,
    SessionRepository,
    SubmissionRepository,
)
from quiz_engine.schemas.session import (
    QuizResultOut,
    QuizStatisticsOut,
    SessionSnapshotOut,
    SessionSummaryOut,
    SweepOutcome,
    build_snapshot,
)
from quiz_engine.services.answer_ledger import AnswerLedger
from quiz_engine.services.finalizer import SessionFinalizer
from quiz_engine.services.guards import expired_error, raise_for_terminal
from quiz_engine.services.navigation import NavigationController
from quiz_engine.services.timeout_enforcer import TimeoutEnforcer

logger = get_logger(__name__)


class QuizSessionService:
    """
    Public surface of the session engine.

    Every operation on an existing session runs the timeout check first. If the
    deadline has passed, the session is scored from the answers already saved,
    moved to ``expired``, and the request fails with ``SessionExpired``; the
    request's own change is never applied.

    Args:
        db: Database session (the service owns commit/rollback)
        clock: Returns the current naive-UTC time
        rng: Source for question shuffling
        token_factory: Mints opaque session tokens
    """

    def __init__(
        self,
        db: Session,
        clock: Clock = utcnow,
        rng: random.Random | None = None,
        token_factory: Callable[[], str] = generate_session_token,
    ):
        self.db = db
        self.clock = clock
        self.rng = rng or random.SystemRandom()
        self.token_factory = token_factory

        self.quizzes = QuizRepository(db)
        self.sessions = SessionRepository(db)
        self.attempts = AttemptRepository(db)
        self.submissions = SubmissionRepository(db)

        self.finalizer = SessionFinalizer(db, self.sessions, self.attempts, self.submissions, clock)
        self.enforcer = TimeoutEnforcer(
            db, self.sessions, self.finalizer, clock, batch_size=settings.SWEEP_BATCH_SIZE
        )
        self.ledger = AnswerLedger(db, self.quizzes, self.sessions, self.attempts, clock)
        self.navigation = NavigationController(self.sessions, clock)

    # ------------------------------------------------------------------
    # Start / resume
    # ------------------------------------------------------------------

    def start(self, quiz_id: str, user_id: str) -> SessionSnapshotOut:
        """
        Start a quiz, or resume the learner's in-progress session for it.

        Raises:
            NotFound: Quiz missing or deleted
            NotAvailable: Outside the availability window
            AlreadyCompleted: No attempts left
            EmptyQuiz: Quiz has no questions
        """
        quiz = self.quizzes.find_live(quiz_id)
        if quiz is None:
            raise NotFound("Quiz not found", details={"quiz_id": quiz_id})

        quiz_settings = quiz.settings
        now = self.clock()
        if not quiz_settings.is_open_at(now):
            not_yet = quiz_settings.available_from is not None and now < quiz_settings.available_from
            raise NotAvailable(
                "Quiz is not yet available" if not_yet else "Quiz is no longer available",
                details=quiz_settings.model_dump(
                    mode="json", include={"available_from", "available_until"}
                ),
            )

        existing = self.sessions.find_active(quiz_id, user_id)
        if existing is not None:
            # An overdue session is finalized here and counts as a used attempt
            self.enforcer.check(existing)

        used = self.submissions.count_for_owner(quiz_id, user_id)
        if used and (quiz_settings.max_attempts <= 1 or used >= quiz_settings.max_attempts):
            raise AlreadyCompleted(
                details={"attempts_used": used, "max_attempts": quiz_settings.max_attempts}
            )

        if existing is not None and existing.status == SessionStatus.IN_PROGRESS:
            logger.info(
                "Resuming quiz session",
                extra={"session_id": existing.id, "quiz_id": quiz_id, "user_id": user_id},
            )
            return self._snapshot(existing, quiz)

        return self._create_session(quiz, user_id)

    def _create_session(self, quiz: Quiz, user_id: str) -> SessionSnapshotOut:
        questions = self.quizzes.questions(quiz.id)
        if not questions:
            raise EmptyQuiz(details={"quiz_id": quiz.id})

        quiz_settings = quiz.settings
        question_order = [question.id for question in questions]
        if quiz_settings.shuffle_questions:
            self.rng.shuffle(question_order)

        now = self.clock()
        expires_at = None
        if quiz_settings.time_limit_minutes:
            expires_at = now + timedelta(minutes=quiz_settings.time_limit_minutes)

        session = QuizSession(
            quiz_id=quiz.id,
            user_id=user_id,
            session_token=self.token_factory(),
            status=SessionStatus.IN_PROGRESS,
            started_at=now,
            completed_at=None,
            time_limit_minutes=quiz_settings.time_limit_minutes,
            expires_at=expires_at,
            last_activity_at=now,
            current_question_index=0,
            total_questions=len(question_order),
            answers_count=0,
            question_order=question_order,
            settings_snapshot=quiz_settings.model_dump(mode="json"),
        )
        try:
            self.sessions.create(session)
            self.db.commit()
        except IntegrityError:
            # Concurrent start for the same (quiz, user): return the winner's session
            self.db.rollback()
            winner = self.sessions.find_active(quiz.id, user_id)
            if winner is None:
                raise
            return self._snapshot(winner, quiz)

        logger.info(
            "Quiz session started",
            extra={
                "session_id": session.id,
                "quiz_id": quiz.id,
                "user_id": user_id,
                "total_questions": session.total_questions,
                "expires_at": expires_at.isoformat() if expires_at else None,
                "shuffled": quiz_settings.shuffle_questions,
            },
        )
        return self._snapshot(session, quiz)

    def get_session(self, session_token: str, user_id: str) -> SessionSnapshotOut:
        """Resume: the current snapshot of an in-progress session."""
        session = self._load_active(session_token, user_id)
        with self._transaction():
            if not self.sessions.guarded_update(session.id, {"last_activity_at": self.clock()}):
                raise_for_terminal(session)
        return self._snapshot(session)

    resume = get_session

    # ------------------------------------------------------------------
    # Answers and navigation
    # ------------------------------------------------------------------

    def submit_answer(
        self,
        session_token: str,
        user_id: str,
        question_id: str,
        answer: str,
    ) -> SessionSnapshotOut:
        session = self._load_active(session_token, user_id)
        with self._transaction():
            self.ledger.submit(session, question_id, answer)
        return self._snapshot(session)

    def next_question(self, session_token: str, user_id: str) -> SessionSnapshotOut:
        session = self._load_active(session_token, user_id)
        with self._transaction():
            self.navigation.next(session)
        return self._snapshot(session)

    def previous_question(self, session_token: str, user_id: str) -> SessionSnapshotOut:
        session = self._load_active(session_token, user_id)
        with self._transaction():
            self.navigation.previous(session)
        return self._snapshot(session)

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------

    def complete(self, session_token: str, user_id: str) -> QuizResultOut:
        """
        Finish the session explicitly and score it.

        Raises:
            SessionExpired: The deadline passed first; the session was auto-submitted
            AlreadyCompleted: The session is already terminal
        """
        session = self._load_active(session_token, user_id)
        outcome = self.finalizer.finalize(session, SessionStatus.COMPLETED)
        if not outcome.created:
            # Another caller finalized it between our read and the write
            raise_for_terminal(outcome.session)
        return QuizResultOut.build(outcome.session, outcome.submission)

    def abandon(self, session_token: str, user_id: str) -> SessionSnapshotOut:
        """Give up the attempt. No submission is written and it cannot be resumed."""
        session = self._load_active(session_token, user_id)
        with self._transaction():
            abandoned = self.sessions.guarded_update(
                session.id,
                {"status": SessionStatus.ABANDONED, "last_activity_at": self.clock()},
            )
            if not abandoned:
                raise_for_terminal(session)

        logger.info(
            "Quiz session abandoned",
            extra={"session_id": session.id, "quiz_id": session.quiz_id, "user_id": user_id},
        )
        return self._snapshot(session)

    def extend(self, session_token: str, user_id: str, additional_minutes: int) -> SessionSnapshotOut:
        """
        Push a timed session's deadline back.

        Raises:
            NoTimeLimit: The session is untimed
            InvalidExtension: ``additional_minutes`` outside 1..MAX_EXTENSION_MINUTES
        """
        session = self._load_active(session_token, user_id)
        if session.expires_at is None:
            raise NoTimeLimit(details={"session_id": session.id})
        if not 1 <= additional_minutes <= settings.MAX_EXTENSION_MINUTES:
            raise InvalidExtension(
                f"additional_minutes must be between 1 and {settings.MAX_EXTENSION_MINUTES}",
                details={"additional_minutes": additional_minutes},
            )

        new_expires_at = session.expires_at + timedelta(minutes=additional_minutes)
        with self._transaction():
            extended = self.sessions.guarded_update(
                session.id,
                {
                    "expires_at": new_expires_at,
                    "time_limit_minutes": (session.time_limit_minutes or 0) + additional_minutes,
                    "last_activity_at": self.clock(),
                },
            )
            if not extended:
                raise_for_terminal(session)

        logger.info(
            "Quiz session extended",
            extra={
                "session_id": session.id,
                "additional_minutes": additional_minutes,
                "expires_at": new_expires_at.isoformat(),
            },
        )
        return self._snapshot(session)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def get_results(self, session_token: str, user_id: str) -> QuizResultOut:
        """
        Result of a finished session. An overdue session is finalized first, so its
        auto-submitted result is returned instead of an error.
        """
        session = self._load(session_token, user_id)
        self.enforcer.check(session)

        if session.status == SessionStatus.IN_PROGRESS:
            raise NotFound(
                "Quiz session has not been submitted yet",
                details={"session_id": session.id, "status": session.status.value},
            )
        if session.status == SessionStatus.ABANDONED:
            raise NotFound(
                "Abandoned quiz sessions have no result",
                details={"session_id": session.id, "status": session.status.value},
            )

        submission = self.submissions.find_by_session(session.id)
        if submission is None:
            raise NotFound("Submission not found", details={"session_id": session.id})
        return QuizResultOut.build(session, submission)

    def sweep_expired(self) -> list[SweepOutcome]:
        """Batch-finalize overdue sessions nobody has touched."""
        return self.enforcer.sweep()

    # ------------------------------------------------------------------
    # History and monitoring
    # ------------------------------------------------------------------

    def get_session_history(self, user_id: str, quiz_id: str | None = None) -> list[SessionSummaryOut]:
        return [SessionSummaryOut.model_validate(s) for s in self.sessions.history(user_id, quiz_id)]

    def list_active_sessions(self, quiz_id: str | None = None) -> list[SessionSummaryOut]:
        return [SessionSummaryOut.model_validate(s) for s in self.sessions.list_active(quiz_id)]

    def get_quiz_statistics(self, quiz_id: str) -> QuizStatisticsOut:
        if self.quizzes.find_live(quiz_id) is None:
            raise NotFound("Quiz not found", details={"quiz_id": quiz_id})

        submissions = self.submissions.for_quiz(quiz_id)
        if not submissions:
            return QuizStatisticsOut(
                quiz_id=quiz_id,
                total_submissions=0,
                average_score=0.0,
                highest_score=0,
                lowest_score=0,
                average_percentage=0.0,
                auto_submitted_count=0,
            )

        scores = [s.score for s in submissions]
        return QuizStatisticsOut(
            quiz_id=quiz_id,
            total_submissions=len(submissions),
            average_score=round(sum(scores) / len(scores), 2),
            highest_score=max(scores),
            lowest_score=min(scores),
            average_percentage=round(sum(s.percentage for s in submissions) / len(submissions), 2),
            auto_submitted_count=sum(1 for s in submissions if s.meta.auto_submitted),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(self, session_token: str, user_id: str) -> QuizSession:
        session = self.sessions.find_by_token(session_token, user_id)
        if session is None:
            raise InvalidSession()
        return session

    def _load_active(self, session_token: str, user_id: str) -> QuizSession:
        """Load, run the timeout check, and reject terminal sessions."""
        session = self._load(session_token, user_id)
        submission = self.enforcer.check(session)
        # The check may lose to a concurrent complete, so trust the reloaded status
        if session.status == SessionStatus.EXPIRED:
            if submission is None:
                submission = self.submissions.find_by_session(session.id)
            raise expired_error(session, submission)
        raise_for_terminal(session)
        return session

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _snapshot(self, session: QuizSession, quiz: Quiz | None = None) -> SessionSnapshotOut:
        self.db.refresh(session)
        quiz = quiz or self.quizzes.find_by_id(session.quiz_id)
        order = session.question_order or []

        current_question = None
        current_answer = None
        if 0 <= session.current_question_index < len(order):
            question_id = order[session.current_question_index]
            current_question = self.quizzes.get_question(question_id)
            attempt = self.attempts.find_for_question(session.id, question_id)
            current_answer = attempt.answer if attempt else None

        return build_snapshot(session, quiz, current_question, current_answer, self.clock())
