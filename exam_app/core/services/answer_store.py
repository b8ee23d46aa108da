"""Service holding a student's in-progress answers."""

from __future__ import annotations

from collections.abc import Iterable

from exam_app.core.errors import InvalidSessionStateError
from exam_app.core.models import QuestionType, StudentAnswer


class AnswerStore:
    """Keeps one :class:`StudentAnswer` per question id."""

    def __init__(self, question_ids: Iterable[str] = ()) -> None:
        self._answers: dict[str, StudentAnswer] = {}
        self._frozen: bool = False
        self.initialize(question_ids)

    def initialize(self, question_ids: Iterable[str]) -> None:
        """Create an empty answer for every question in the bank."""
        self._ensure_mutable()
        for question_id in question_ids:
            self._answers.setdefault(question_id, StudentAnswer(question_id=question_id))

    def set_answer_text(self, question_id: str, text: str) -> None:
        """Replace the free-text answer of a short-answer or essay question."""
        self._ensure_mutable()
        self._entry(question_id).answer_text = text

    def toggle_option(self, question_id: str, option_id: str, question_type: QuestionType) -> None:
        self._ensure_mutable()
        entry = self._entry(question_id)

        if question_type is QuestionType.SINGLE_CHOICE:
            entry.selected_option_ids = [option_id]
        elif question_type is QuestionType.MULTI_CHOICE:
            if option_id in entry.selected_option_ids:
                entry.selected_option_ids = [
                    selected for selected in entry.selected_option_ids if selected != option_id
                ]
            else:
                entry.selected_option_ids.append(option_id)
        else:
            raise ValueError(f"Cannot select options on a {question_type.value} question.")

    def get(self, question_id: str) -> StudentAnswer:
        """Return a copy of the current answer, or an empty one if untouched."""
        entry = self._answers.get(question_id)
        if entry is None:
            return StudentAnswer(question_id=question_id)
        return entry.copy()

    def snapshot(self) -> dict[str, StudentAnswer]:
        return {question_id: answer.copy() for question_id, answer in self._answers.items()}

    def freeze(self) -> None:
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def _entry(self, question_id: str) -> StudentAnswer:
        entry = self._answers.get(question_id)
        if entry is None:
            entry = StudentAnswer(question_id=question_id)
            self._answers[question_id] = entry
        return entry

    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise InvalidSessionStateError("Answers can no longer be changed after submission.")
