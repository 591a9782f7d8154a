"""Tests for the scorer."""

from dataclasses import dataclass

from quiz_engine.services.scoring import compute_percentage, score_attempts


@dataclass
class Question:
    id: str
    correct_answer: str


QUESTIONS = [Question("q1", "A"), Question("q2", "B"), Question("q3", "C")]


def test_one_of_three_correct_scores_33_33():
    result = score_attempts(QUESTIONS, {"q1": "A", "q2": "X"})

    assert result.score == 1
    assert result.correct_answers == 1
    assert result.incorrect_answers == 2
    assert result.total_questions == 3
    assert result.percentage == 33.33


def test_unanswered_questions_count_as_incorrect():
    result = score_attempts(QUESTIONS, {})

    assert result.score == 0
    assert result.incorrect_answers == 3
    assert result.percentage == 0.0


def test_all_correct_scores_100():
    result = score_attempts(QUESTIONS, {"q1": "A", "q2": "B", "q3": "C"})

    assert result.score == 3
    assert result.percentage == 100.0


def test_comparison_is_exact():
    """No case folding and no whitespace trimming."""
    result = score_attempts(QUESTIONS, {"q1": "a", "q2": " B", "q3": "C "})

    assert result.score == 0


def test_answers_for_unknown_questions_are_ignored():
    result = score_attempts(QUESTIONS[:1], {"q1": "A", "other": "B"})

    assert result.score == 1
    assert result.total_questions == 1
    assert result.percentage == 100.0


def test_empty_question_set_scores_zero_percent():
    result = score_attempts([], {})

    assert result.total_questions == 0
    assert result.percentage == 0.0


def test_compute_percentage_rounds_to_two_decimals():
    assert compute_percentage(2, 3) == 66.67
    assert compute_percentage(1, 8) == 12.5
    assert compute_percentage(0, 0) == 0.0
