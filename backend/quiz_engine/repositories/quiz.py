"""Read access to authored quizzes and their questions."""

from sqlalchemy import select

from quiz_engine.models.quiz import Quiz, QuizQuestion
from quiz_engine.repositories.base import DocumentRepository


class QuizRepository(DocumentRepository[Quiz]):
    model = Quiz

    def find_live(self, quiz_id: str) -> Quiz | None:
        quiz = self.find_by_id(quiz_id)
        if quiz is None or quiz.is_deleted:
            return None
        return quiz

    def questions(self, quiz_id: str) -> list[QuizQuestion]:
        """Live questions in authoring order."""
        stmt = (
            select(QuizQuestion)
            .where(QuizQuestion.quiz_id == quiz_id, QuizQuestion.is_deleted.is_(False))
            .order_by(QuizQuestion.position, QuizQuestion.created_at)
        )
        return list(self.db.execute(stmt).scalars().all())

    def find_question(self, question_id: str) -> QuizQuestion | None:
        question = self.db.get(QuizQuestion, question_id)
        if question is None or question.is_deleted:
            return None
        return question

    def get_question(self, question_id: str) -> QuizQuestion | None:
        """Question by id, including soft-deleted ones captured in a session's order."""
        return self.db.get(QuizQuestion, question_id)
