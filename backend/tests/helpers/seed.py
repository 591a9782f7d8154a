"""Test seed helpers for creating quizzes."""

from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from quiz_engine.models.quiz import Quiz, QuizQuestion

# Frozen clock start used across the suite
START = datetime(2024, 3, 1, 9, 0, 0)


def create_test_quiz(
    db: Session,
    correct_answers: list[str] | None = None,
    title: str = "Test Quiz",
    **settings: Any,
) -> Quiz:
    """
    Create a quiz whose questions have the given correct answers.

    Args:
        db: Database session
        correct_answers: One entry per question, in authoring order (default: A, B, C)
        title: Quiz title
        **settings: QuizSettings fields (time_limit_minutes, shuffle_questions, ...)

    Returns:
        Created Quiz with questions loaded
    """
    if correct_answers is None:
        correct_answers = ["A", "B", "C"]

    quiz = Quiz(title=title, description=f"{title} description", settings_json={"schema_version": 1, **settings})
    db.add(quiz)
    db.flush()

    for position, correct in enumerate(correct_answers):
        db.add(
            QuizQuestion(
                quiz_id=quiz.id,
                question_text=f"Question {position + 1}",
                question_type="multiple_choice",
                options=["A", "B", "C", "D"],
                correct_answer=correct,
                position=position,
            )
        )
    db.commit()
    db.refresh(quiz)
    return quiz


def question_ids(quiz: Quiz) -> list[str]:
    """Question ids in authoring order."""
    return [question.id for question in sorted(quiz.questions, key=lambda q: q.position)]
