"""Repository for scored submissions."""

from sqlalchemy import func, select

from quiz_engine.models.session import QuizSubmission
from quiz_engine.repositories.base import DocumentRepository


class SubmissionRepository(DocumentRepository[QuizSubmission]):
    model = QuizSubmission

    def find_by_session(self, session_id: str) -> QuizSubmission | None:
        return self.find_one({"session_id": session_id})

    def count_for_owner(self, quiz_id: str, user_id: str) -> int:
        stmt = select(func.count(QuizSubmission.id)).where(
            QuizSubmission.quiz_id == quiz_id,
            QuizSubmission.user_id == user_id,
        )
        return int(self.db.execute(stmt).scalar_one())

    def for_quiz(self, quiz_id: str) -> list[QuizSubmission]:
        return self.find({"quiz_id": quiz_id}, sort={"submission_date": "DESC"})
