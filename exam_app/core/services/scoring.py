"""Scoring of finalized answer sets.

Only single-choice, multi-choice and short-answer questions with a canonical
answer are assessable. Essays always need a human and never affect the score.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from exam_app.core.errors import GradingPreconditionError
from exam_app.core.models import (
    Question,
    QuestionReview,
    QuestionType,
    ReviewStatus,
    Score,
    StudentAnswer,
)


@dataclass(frozen=True, slots=True)
class GradingResult:
    """Explicit success-or-failure wrapper around :func:`score_exam`."""

    score: Score | None = None
    error: GradingPreconditionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def score_exam(
    questions: Sequence[Question] | None,
    answers: Mapping[str, StudentAnswer],
) -> Score:
    """Compute the score for ``answers`` against ``questions``.

    Questions without an entry in ``answers`` count as unanswered.
    """
    if questions is None:
        raise GradingPreconditionError("Cannot score an exam without a question bank.")

    assessable = 0
    correct = 0
    for question in questions:
        outcome = grade_question(question, answers.get(question.id))
        if outcome is None:
            continue
        assessable += 1
        if outcome:
            correct += 1

    return Score(
        assessable_count=assessable,
        correct_count=correct,
        percentage=_percentage(correct, assessable),
    )


def try_score_exam(
    questions: Sequence[Question] | None,
    answers: Mapping[str, StudentAnswer],
) -> GradingResult:
    try:
        return GradingResult(score=score_exam(questions, answers))
    except GradingPreconditionError as exc:
        return GradingResult(error=exc)


def grade_question(question: Question, answer: StudentAnswer | None) -> bool | None:
    """Return whether ``answer`` is correct, or ``None`` if not assessable."""
    if not is_assessable(question):
        return None
    selected = list(answer.selected_option_ids) if answer else []
    text = answer.answer_text if answer else None

    if question.type is QuestionType.SINGLE_CHOICE:
        correct_ids = question.correct_option_ids()
        if not correct_ids or not selected:
            return False
        return selected[0] == correct_ids[0]

    if question.type is QuestionType.MULTI_CHOICE:
        return set(selected) == set(question.correct_option_ids())

    # short answer with a canonical answer
    return _normalize_text(text) == _normalize_text(question.answer)


def is_assessable(question: Question) -> bool:
    if question.type is QuestionType.ESSAY:
        return False
    if question.type is QuestionType.SHORT_ANSWER:
        return bool(_normalize_text(question.answer))
    return True


def review_answers(
    questions: Sequence[Question],
    answers: Mapping[str, StudentAnswer],
) -> list[QuestionReview]:
    """Per-question outcome for the read-only review shown after submission."""
    reviews: list[QuestionReview] = []
    for question in questions:
        if question.type is QuestionType.ESSAY:
            reviews.append(QuestionReview(question.id, ReviewStatus.MANUAL_REVIEW))
            continue
        outcome = grade_question(question, answers.get(question.id))
        if outcome is None:
            status = ReviewStatus.UNGRADED
        elif outcome:
            status = ReviewStatus.CORRECT
        else:
            status = ReviewStatus.INCORRECT
        reviews.append(
            QuestionReview(
                question_id=question.id,
                status=status,
                correct_answer_text=_correct_answer_text(question),
            )
        )
    return reviews


def _correct_answer_text(question: Question) -> str | None:
    if question.type is QuestionType.SHORT_ANSWER:
        return question.answer
    correct = [option.text for option in question.options if option.is_correct]
    if not correct:
        return None
    return ", ".join(correct)


def _normalize_text(value: str | None) -> str:
    return (value or "").strip().casefold()


def _percentage(correct: int, assessable: int) -> int:
    if assessable <= 0:
        return 0
    # round half up without going through floats
    return (200 * correct + assessable) // (2 * assessable)
