from dataclasses import replace

import pytest

from exam_app.core.models import Exam, Question, QuestionOption, QuestionType
from exam_app.core.services.exam_repository import ExamRepository


@pytest.fixture
def repository(question_bank):
    return ExamRepository(Exam(id="exam-1", title="Midterm", questions=question_bank))


def test_load_requires_questions():
    with pytest.raises(ValueError):
        ExamRepository(Exam(id="e", title="Empty", questions=[]))


def test_update_preserves_id(repository, matter_question):
    updated = repository.update_question(1, replace(matter_question, id="other", text="  Name three states  "))
    assert updated.id == "2"
    assert updated.text == "Name three states"
    assert repository.get_question_at_index(1) == updated


def test_add_assigns_fresh_id_on_collision(repository, essay_question):
    added = repository.add_question(essay_question)
    assert added.id not in {"1", "2", "3"}
    assert repository.get_question_count() == 4


def test_delete_and_index_errors(repository):
    repository.delete_question(0)
    assert [q.id for q in repository.get_questions()] == ["2", "3"]
    with pytest.raises(IndexError):
        repository.delete_question(5)


def test_empty_question_text_rejected(repository, essay_question):
    with pytest.raises(ValueError):
        repository.add_question(replace(essay_question, text="   "))


def test_validate_for_publish_accepts_valid_bank(repository):
    repository.validate_for_publish()
    assert repository.to_exam().title == "Midterm"


def test_single_choice_needs_exactly_one_correct(repository, france_question):
    unmarked = replace(
        france_question,
        options=tuple(replace(option, is_correct=False) for option in france_question.options),
    )
    repository.update_question(0, unmarked)
    with pytest.raises(ValueError):
        repository.validate_for_publish()


def test_duplicate_option_ids_rejected(repository):
    repository.add_question(
        Question(
            id="",
            text="Pick",
            type=QuestionType.MULTI_CHOICE,
            options=(QuestionOption("a", "x", True), QuestionOption("a", "y")),
        )
    )
    with pytest.raises(ValueError):
        repository.validate_for_publish()


def test_choice_question_without_options_rejected(repository):
    repository.add_question(Question(id="", text="Pick", type=QuestionType.MULTI_CHOICE))
    with pytest.raises(ValueError):
        repository.validate_for_publish()
