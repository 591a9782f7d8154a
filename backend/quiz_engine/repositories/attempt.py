"""Repository for per-question attempts."""

from sqlalchemy import func, select

from quiz_engine.models.session import QuizAttempt
from quiz_engine.repositories.base import DocumentRepository


class AttemptRepository(DocumentRepository[QuizAttempt]):
    model = QuizAttempt

    def find_for_question(self, session_id: str, question_id: str) -> QuizAttempt | None:
        return self.find_one({"session_id": session_id, "question_id": question_id})

    def answers_map(self, session_id: str) -> dict[str, str]:
        """question_id -> latest answer for the session."""
        stmt = select(QuizAttempt.question_id, QuizAttempt.answer).where(
            QuizAttempt.session_id == session_id
        )
        return {row.question_id: row.answer for row in self.db.execute(stmt).all()}

    def count_distinct_questions(self, session_id: str) -> int:
        stmt = select(func.count(func.distinct(QuizAttempt.question_id))).where(
            QuizAttempt.session_id == session_id
        )
        return int(self.db.execute(stmt).scalar_one())
