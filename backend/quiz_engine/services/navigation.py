"""Bounds-checked cursor movement over a session's captured question order."""

from quiz_engine.common.clock import Clock
from quiz_engine.core.app_exceptions import AtFirstQuestion, AtLastQuestion
from quiz_engine.models.session import QuizSession
from quiz_engine.repositories.session import SessionRepository
from quiz_engine.services.guards import raise_for_terminal


class NavigationController:
    """Moves ``current_question_index`` within ``[0, total_questions - 1]``.

    A rejected move never writes. Accepted moves are guarded on the session still
    being in progress, so a move cannot land on a session finalized concurrently.
    """

    def __init__(self, sessions: SessionRepository, clock: Clock):
        self.sessions = sessions
        self.clock = clock

    def next(self, session: QuizSession) -> QuizSession:
        raise_for_terminal(session)
        if session.current_question_index >= session.total_questions - 1:
            raise AtLastQuestion(
                details={
                    "current_question_index": session.current_question_index,
                    "total_questions": session.total_questions,
                }
            )
        return self._move(session, session.current_question_index + 1)

    def previous(self, session: QuizSession) -> QuizSession:
        raise_for_terminal(session)
        if session.current_question_index <= 0:
            raise AtFirstQuestion(details={"current_question_index": session.current_question_index})
        return self._move(session, session.current_question_index - 1)

    def _move(self, session: QuizSession, index: int) -> QuizSession:
        moved = self.sessions.guarded_update(
            session.id,
            {"current_question_index": index, "last_activity_at": self.clock()},
        )
        if not moved:
            # Finalized between our read and the write
            raise_for_terminal(session)
        return session
