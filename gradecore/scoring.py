"""
Scoring for declarative (multiple choice / short answer) questions.
"""

import math
from dataclasses import replace
from typing import Dict, Iterable, Optional, Union

from .models import QuizQuestion, ScoreResult


def _as_quiz_question(question: Union[QuizQuestion, dict]) -> QuizQuestion:
    if isinstance(question, QuizQuestion):
        return question
    return QuizQuestion.from_dict(question)


def _normalize_answer(text) -> str:
    return str(text).strip().casefold()


def percentage_of(earned: float, total: float) -> int:
    """Whole-number percentage, halves rounded up; 0 when total is 0."""
    if total <= 0:
        return 0
    value = math.floor(100 * earned / total + 0.5)
    return max(0, min(100, int(value)))


def score_answers(
    questions: Iterable[Union[QuizQuestion, dict]],
    answers: Dict[str, Optional[str]]
) -> ScoreResult:
    """
    Score an answer set against declarative questions.

    A question earns its full points when the answer, trimmed and compared
    case-insensitively, equals the correct answer. There is no partial credit;
    blank answers earn nothing. The result is threshold-agnostic: passed is
    False until apply_passing_score() is used.
    """
    quiz = [_as_quiz_question(q) for q in questions]
    total_points = sum(q.points for q in quiz)

    earned = 0
    for question in quiz:
        answer = answers.get(question.id)
        if answer is None:
            continue
        normalized = _normalize_answer(answer)
        if not normalized:
            continue
        if normalized == _normalize_answer(question.correct_answer):
            earned += question.points

    return ScoreResult(
        score=earned,
        total_points=total_points,
        percentage=percentage_of(earned, total_points)
    )


def apply_passing_score(result: ScoreResult, passing_score: float) -> ScoreResult:
    """Return a copy of result judged against a passing percentage."""
    return replace(result, passed=result.percentage >= passing_score, passing_score=passing_score)
