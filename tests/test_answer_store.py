import pytest

from exam_app.core.errors import InvalidSessionStateError
from exam_app.core.models import QuestionType, StudentAnswer
from exam_app.core.services.answer_store import AnswerStore


def test_untouched_question_returns_empty_answer():
    store = AnswerStore(["1"])
    assert store.get("1") == StudentAnswer(question_id="1")
    assert store.get("unknown") == StudentAnswer(question_id="unknown")


def test_single_choice_keeps_only_latest_selection():
    store = AnswerStore(["1"])
    store.toggle_option("1", "a", QuestionType.SINGLE_CHOICE)
    store.toggle_option("1", "b", QuestionType.SINGLE_CHOICE)
    store.toggle_option("1", "b", QuestionType.SINGLE_CHOICE)
    assert store.get("1").selected_option_ids == ["b"]


def test_multi_choice_toggles_membership_preserving_order():
    store = AnswerStore(["4"])
    for option_id in ["A", "B", "C"]:
        store.toggle_option("4", option_id, QuestionType.MULTI_CHOICE)
    store.toggle_option("4", "B", QuestionType.MULTI_CHOICE)
    assert store.get("4").selected_option_ids == ["A", "C"]
    store.toggle_option("4", "B", QuestionType.MULTI_CHOICE)
    assert store.get("4").selected_option_ids == ["A", "C", "B"]


def test_text_answers_are_replaced():
    store = AnswerStore(["2"])
    store.set_answer_text("2", "solid")
    store.set_answer_text("2", "solid, liquid, gas")
    assert store.get("2").answer_text == "solid, liquid, gas"


def test_options_cannot_be_toggled_on_free_text_questions():
    store = AnswerStore(["3"])
    with pytest.raises(ValueError):
        store.toggle_option("3", "a", QuestionType.ESSAY)


def test_get_returns_a_copy():
    store = AnswerStore(["4"])
    store.toggle_option("4", "A", QuestionType.MULTI_CHOICE)
    store.get("4").selected_option_ids.append("Z")
    assert store.get("4").selected_option_ids == ["A"]


def test_frozen_store_rejects_mutation():
    store = AnswerStore(["1", "2"])
    store.set_answer_text("2", "gas")
    store.freeze()
    with pytest.raises(InvalidSessionStateError):
        store.set_answer_text("2", "liquid")
    with pytest.raises(InvalidSessionStateError):
        store.toggle_option("1", "a", QuestionType.SINGLE_CHOICE)
    assert store.snapshot()["2"].answer_text == "gas"
