"""Scoring for finished quiz sessions.

One point per question, no partial credit. Answers are compared to the canonical
``correct_answer`` with exact string equality: no case folding, no whitespace
trimming.
"""

from dataclasses import dataclass
from typing import Iterable, Mapping, Protocol


class ScorableQuestion(Protocol):
    id: str
    correct_answer: str


@dataclass(frozen=True)
class ScoreResult:
    score: int
    correct_answers: int
    incorrect_answers: int
    total_questions: int
    percentage: float


def compute_percentage(correct_answers: int, total_questions: int) -> float:
    """Percentage rounded to 2 decimals; 0 for an empty question set."""
    if total_questions <= 0:
        return 0.0
    return round((correct_answers / total_questions) * 100, 2)


def score_attempts(
    questions: Iterable[ScorableQuestion],
    attempts: Mapping[str, str],
) -> ScoreResult:
    """
    Score a question set against the learner's latest answers.

    Args:
        questions: Questions of the quiz (any order)
        attempts: question_id -> latest answer; missing ids count as incorrect

    Returns:
        ScoreResult with score == correct_answers
    """
    total = 0
    correct = 0
    for question in questions:
        total += 1
        answer = attempts.get(question.id)
        if answer is not None and answer == question.correct_answer:
            correct += 1

    return ScoreResult(
        score=correct,
        correct_answers=correct,
        incorrect_answers=total - correct,
        total_questions=total,
        percentage=compute_percentage(correct, total),
    )
