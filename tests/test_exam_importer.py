import pytest

from exam_app.core.errors import ExamImportError
from exam_app.core.exam_importer import (
    extract_exam_payload,
    load_exam,
    load_exam_from_text,
    normalize_question_type,
)
from exam_app.core.models import QuestionType


def test_load_exam_normalizes_types_and_ids(raw_exam_payload):
    exam = load_exam(raw_exam_payload)

    assert exam.title == "General Knowledge"
    assert [q.id for q in exam.questions] == ["1", "2", "3"]
    assert [q.type for q in exam.questions] == [
        QuestionType.SINGLE_CHOICE,
        QuestionType.SHORT_ANSWER,
        QuestionType.ESSAY,
    ]
    france = exam.questions[0]
    assert [option.id for option in france.options] == ["a", "b", "c"]
    assert france.correct_option_ids() == ["b"]
    assert france.instruction == "Choose the correct answer."
    assert exam.questions[1].answer == "Solid, liquid, gas"
    assert exam.questions[2].options == ()


@pytest.mark.parametrize(
    "raw_type, expected",
    [
        ("MCQ", QuestionType.SINGLE_CHOICE),
        ("mcq", QuestionType.SINGLE_CHOICE),
        ("multiple-choice", QuestionType.MULTI_CHOICE),
        ("Multiple Choice", QuestionType.MULTI_CHOICE),
        ("short_answer", QuestionType.SHORT_ANSWER),
        ("essay", QuestionType.ESSAY),
    ],
)
def test_type_aliases_collapse_to_one_case(raw_type, expected):
    assert normalize_question_type(raw_type) is expected


def test_unknown_type_is_rejected():
    with pytest.raises(ExamImportError):
        normalize_question_type("true-false")


def test_extract_payload_from_wrapped_model_output():
    text = 'Here is the exam:\n```json\n{"title": "T", "questions": [{"text": "Q?", "type": "essay"}]}\n```\nDone.'
    exam = load_exam_from_text(text)
    assert exam.title == "T"
    assert exam.questions[0].type is QuestionType.ESSAY


def test_extract_payload_rejects_non_json():
    with pytest.raises(ExamImportError):
        extract_exam_payload("I could not find any questions.")


def test_missing_title_defaults():
    exam = load_exam({"questions": [{"text": "Why?", "type": "essay"}]})
    assert exam.title == "Untitled Exam"
    assert exam.id


@pytest.mark.parametrize(
    "payload",
    [
        {"questions": []},
        {"questions": [{"text": "   ", "type": "essay"}]},
        {"questions": [{"text": "Pick", "type": "MCQ", "options": []}]},
        {"questions": [{"text": "Pick", "type": "MCQ", "options": [{"text": "x", "isCorrect": True}, {"text": "y", "isCorrect": True}]}]},
        {"questions": [{"text": "Pick", "type": "multiple-choice", "options": [{"id": "a", "text": "x"}, {"id": "a", "text": "y"}]}]},
        {"questions": [{"text": "No type"}]},
        {"questions": [{"id": "1", "text": "A", "type": "essay"}, {"id": "1", "text": "B", "type": "essay"}]},
        {"questions": "not a list"},
    ],
)
def test_invalid_payloads_raise(payload):
    with pytest.raises(ExamImportError):
        load_exam(payload)


def test_existing_ids_are_kept():
    exam = load_exam(
        {
            "questions": [
                {
                    "id": 7,
                    "text": "Primes?",
                    "type": "multiple-choice",
                    "options": [{"id": "x", "text": "2", "isCorrect": True}, {"text": "4"}],
                }
            ]
        }
    )
    question = exam.questions[0]
    assert question.id == "7"
    assert [option.id for option in question.options] == ["x", "b"]
