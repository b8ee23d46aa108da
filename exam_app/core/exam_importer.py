"""Ingestion of exam data produced by the question-extraction model.

The extraction prompt asks for a JSON document shaped like:

    {
      "title": "Exam Title",
      "questions": [
        {
          "text": "Question text here",
          "type": "MCQ",            // or "multiple-choice", "short-answer", "essay"
          "options": [
            {"text": "Option A", "isCorrect": false},
            {"text": "Option B", "isCorrect": true}
          ],
          "answer": "Optional answer for short-answer",
          "instruction": "Optional instruction text"
        }
      ]
    }

Model output often wraps that object in prose or markdown fences, so the
first ``{...}`` span is extracted before parsing. Type names are normalized
once here: the legacy ``MCQ`` label means single choice and
``multiple-choice`` means multi choice. Nothing downstream sees the raw
strings.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from exam_app.constants.exam_constants import UNTITLED_EXAM_TITLE
from exam_app.core.errors import ExamImportError
from exam_app.core.link_codec import generate_exam_id
from exam_app.core.models import Exam, Question, QuestionOption, QuestionType

logger = logging.getLogger(__name__)

_JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

_TYPE_ALIASES: dict[str, QuestionType] = {
    "mcq": QuestionType.SINGLE_CHOICE,
    "single-choice": QuestionType.SINGLE_CHOICE,
    "single_choice": QuestionType.SINGLE_CHOICE,
    "multiple-choice": QuestionType.MULTI_CHOICE,
    "multi-choice": QuestionType.MULTI_CHOICE,
    "multi_choice": QuestionType.MULTI_CHOICE,
    "short-answer": QuestionType.SHORT_ANSWER,
    "short_answer": QuestionType.SHORT_ANSWER,
    "essay": QuestionType.ESSAY,
}


class RawOption(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | int | None = None
    text: str = ""
    is_correct: bool = Field(default=False, alias="isCorrect")


class RawQuestion(BaseModel):
    id: str | int | None = None
    text: str = ""
    type: str
    options: list[RawOption] | None = None
    answer: str | None = None
    instruction: str | None = None


class RawExam(BaseModel):
    id: str | None = None
    title: str | None = None
    description: str | None = None
    questions: list[RawQuestion] = Field(default_factory=list)


def extract_exam_payload(text: str) -> dict[str, Any]:
    """Pull the JSON object out of a model response."""
    match = _JSON_OBJECT_PATTERN.search(text)
    candidate = match.group(0) if match else text
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as exc:
        preview = text[:200]
        logger.warning("Could not parse extracted exam JSON: %s", preview)
        raise ExamImportError(f"Extracted exam is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise ExamImportError("Extracted exam must be a JSON object.")
    return payload


def load_exam_from_text(text: str) -> Exam:
    return load_exam(extract_exam_payload(text))


def load_exam(payload: dict[str, Any]) -> Exam:
    """Validate a raw payload and normalize it into an :class:`Exam`."""
    try:
        raw = RawExam.model_validate(payload)
    except ValidationError as exc:
        raise ExamImportError(f"Extracted exam has an unexpected shape: {exc}") from exc

    if not raw.questions:
        raise ExamImportError("Extracted exam did not contain any questions.")

    questions = [_normalize_question(item, position) for position, item in enumerate(raw.questions, start=1)]
    _ensure_unique_question_ids(questions)

    title = (raw.title or "").strip() or UNTITLED_EXAM_TITLE
    logger.info("Imported exam '%s' with %d question(s)", title, len(questions))
    return Exam(
        id=raw.id or generate_exam_id(),
        title=title,
        questions=questions,
        description=raw.description,
    )


def normalize_question_type(raw_type: str) -> QuestionType:
    key = raw_type.strip().lower().replace(" ", "-")
    try:
        return _TYPE_ALIASES[key]
    except KeyError as exc:
        raise ExamImportError(f"Unknown question type: '{raw_type}'.") from exc


def _normalize_question(raw: RawQuestion, position: int) -> Question:
    text = raw.text.strip()
    if not text:
        raise ExamImportError(f"Question {position} has no text.")

    question_type = normalize_question_type(raw.type)
    options: tuple[QuestionOption, ...] = ()
    if question_type.is_choice:
        options = _normalize_options(raw.options or [], position)
        if not options:
            raise ExamImportError(f"Choice question {position} has no options.")
        if question_type is QuestionType.SINGLE_CHOICE and len([o for o in options if o.is_correct]) > 1:
            raise ExamImportError(f"Single-choice question {position} marks more than one correct option.")

    answer = (raw.answer or "").strip() or None
    instruction = (raw.instruction or "").strip() or None
    question_id = str(raw.id).strip() if raw.id is not None else ""

    return Question(
        id=question_id or str(position),
        text=text,
        type=question_type,
        options=options,
        answer=answer,
        instruction=instruction,
    )


def _normalize_options(raw_options: list[RawOption], position: int) -> tuple[QuestionOption, ...]:
    options: list[QuestionOption] = []
    seen: set[str] = set()
    for index, raw in enumerate(raw_options):
        text = raw.text.strip()
        if not text:
            raise ExamImportError(f"Question {position} has an option without text.")
        option_id = str(raw.id).strip() if raw.id is not None else ""
        option_id = option_id or _option_letter(index)
        if option_id in seen:
            raise ExamImportError(f"Question {position} repeats option id '{option_id}'.")
        seen.add(option_id)
        options.append(QuestionOption(id=option_id, text=text, is_correct=raw.is_correct))
    return tuple(options)


def _option_letter(index: int) -> str:
    # a..z, then aa, ab, ...
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("a") + remainder) + letters
    return letters


def _ensure_unique_question_ids(questions: list[Question]) -> None:
    seen: set[str] = set()
    for question in questions:
        if question.id in seen:
            raise ExamImportError(f"Duplicate question id '{question.id}'.")
        seen.add(question.id)
