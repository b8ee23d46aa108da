import pytest

from exam_app.core.models import Question, QuestionOption, QuestionType

from tests.helpers import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def france_question():
    return Question(
        id="1",
        text="Capital of France?",
        type=QuestionType.SINGLE_CHOICE,
        options=(
            QuestionOption("a", "London", False),
            QuestionOption("b", "Paris", True),
            QuestionOption("c", "Berlin", False),
        ),
    )


@pytest.fixture
def matter_question():
    return Question(
        id="2",
        text="3 states of matter?",
        type=QuestionType.SHORT_ANSWER,
        answer="Solid, liquid, gas",
    )


@pytest.fixture
def essay_question():
    return Question(id="3", text="Describe photosynthesis", type=QuestionType.ESSAY)


@pytest.fixture
def multi_question():
    return Question(
        id="4",
        text="Which are prime?",
        type=QuestionType.MULTI_CHOICE,
        options=(
            QuestionOption("A", "2", True),
            QuestionOption("B", "3", True),
            QuestionOption("C", "4", False),
        ),
    )


@pytest.fixture
def question_bank(france_question, matter_question, essay_question):
    return [france_question, matter_question, essay_question]


@pytest.fixture
def raw_exam_payload():
    return {
        "title": "General Knowledge",
        "questions": [
            {
                "text": "Capital of France?",
                "type": "MCQ",
                "options": [
                    {"text": "London", "isCorrect": False},
                    {"text": "Paris", "isCorrect": True},
                    {"text": "Berlin", "isCorrect": False},
                ],
                "instruction": "Choose the correct answer.",
            },
            {"text": "3 states of matter?", "type": "short-answer", "answer": "Solid, liquid, gas"},
            {"text": "Describe photosynthesis", "type": "essay"},
        ],
    }
