"""Service for reviewing and editing an exam's question bank."""

from __future__ import annotations

from dataclasses import replace

from exam_app.core.models import Exam, Question, QuestionType


class ExamRepository:
    """Manages the ordered questions of one exam before it is published."""

    def __init__(self, exam: Exam | None = None) -> None:
        self._exam_id: str | None = None
        self._title: str = ""
        self._description: str | None = None
        self._questions: list[Question] = []
        self._question_counter: int = 0
        if exam is not None:
            self.load_exam(exam)

    def load_exam(self, exam: Exam) -> None:
        """Replace the current bank with the questions of ``exam``."""
        if not exam.questions:
            raise ValueError("Exam must contain at least one question.")
        self._exam_id = exam.id
        self._title = exam.title
        self._description = exam.description
        self._questions = [self._prepare_question(q) for q in exam.questions]
        self._question_counter = len(self._questions)

    def to_exam(self) -> Exam:
        if self._exam_id is None:
            raise ValueError("No exam has been loaded.")
        return Exam(
            id=self._exam_id,
            title=self._title,
            questions=self.get_questions(),
            description=self._description,
        )

    def get_questions(self) -> list[Question]:
        """Return a copy of all questions in order."""
        return list(self._questions)

    def get_question_count(self) -> int:
        return len(self._questions)

    def get_question_at_index(self, index: int) -> Question:
        self._check_index(index)
        return self._questions[index]

    def add_question(self, question: Question) -> Question:
        prepared = self._prepare_question(question)
        if not prepared.id or any(q.id == prepared.id for q in self._questions):
            prepared = replace(prepared, id=self._next_question_id())
        self._questions.append(prepared)
        return prepared

    def update_question(self, index: int, question: Question) -> Question:
        self._check_index(index)
        # Preserve the original ID
        prepared = replace(self._prepare_question(question), id=self._questions[index].id)
        self._questions[index] = prepared
        return prepared

    def delete_question(self, index: int) -> None:
        self._check_index(index)
        self._questions.pop(index)

    def set_title(self, title: str) -> None:
        cleaned = title.strip()
        if not cleaned:
            raise ValueError("Exam title must not be empty.")
        self._title = cleaned

    def validate_for_publish(self) -> None:
        """Raise ``ValueError`` unless every question satisfies the publish invariants."""
        if not self._questions:
            raise ValueError("Exam must contain at least one question.")
        for position, question in enumerate(self._questions, start=1):
            if question.type.is_choice:
                self._validate_options(question, position)

    def _next_question_id(self) -> str:
        existing = {q.id for q in self._questions}
        while True:
            self._question_counter += 1
            candidate = str(self._question_counter)
            if candidate not in existing:
                return candidate

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._questions):
            raise IndexError(f"Question index {index} out of range")

    @staticmethod
    def _prepare_question(question: Question) -> Question:
        """Normalize text fields and reject empty questions."""
        cleaned_text = question.text.strip()
        if not cleaned_text:
            raise ValueError("Question text must not be empty.")
        options = tuple(replace(option, text=option.text.strip()) for option in question.options)
        if not question.type.is_choice:
            options = ()
        return replace(
            question,
            text=cleaned_text,
            options=options,
            answer=(question.answer or "").strip() or None,
            instruction=(question.instruction or "").strip() or None,
        )

    @staticmethod
    def _validate_options(question: Question, position: int) -> None:
        if not question.options:
            raise ValueError(f"Question {position} must have at least one option.")
        if any(not option.text for option in question.options):
            raise ValueError(f"Question {position} has an option without text.")
        option_ids = [option.id for option in question.options]
        if len(set(option_ids)) != len(option_ids):
            raise ValueError(f"Question {position} has duplicate option ids.")
        if question.type is QuestionType.SINGLE_CHOICE:
            correct = sum(1 for option in question.options if option.is_correct)
            if correct != 1:
                raise ValueError(
                    f"Single-choice question {position} must have exactly one correct option."
                )
