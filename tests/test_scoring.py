import pytest

from exam_app.core.errors import GradingPreconditionError
from exam_app.core.models import (
    Question,
    QuestionOption,
    QuestionType,
    ReviewStatus,
    Score,
    StudentAnswer,
)
from exam_app.core.services.scoring import (
    grade_question,
    is_assessable,
    review_answers,
    score_exam,
    try_score_exam,
)


def _answers(*answers):
    return {answer.question_id: answer for answer in answers}


def test_mixed_bank_scores_only_assessable_questions(question_bank):
    answers = _answers(
        StudentAnswer("1", selected_option_ids=["b"]),
        StudentAnswer("2", answer_text=" solid, liquid, gas "),
        StudentAnswer("3", answer_text=""),
    )
    assert score_exam(question_bank, answers) == Score(assessable_count=2, correct_count=2, percentage=100)


def test_scoring_is_deterministic(question_bank):
    answers = _answers(StudentAnswer("1", selected_option_ids=["a"]), StudentAnswer("2", answer_text="gas"))
    results = {score_exam(question_bank, answers) for _ in range(5)}
    assert results == {Score(assessable_count=2, correct_count=0, percentage=0)}


@pytest.mark.parametrize(
    "selected, expected",
    [(["A"], False), (["A", "B"], True), (["B", "A"], True), (["A", "B", "C"], False), ([], False)],
)
def test_multi_choice_requires_exact_set(multi_question, selected, expected):
    assert grade_question(multi_question, StudentAnswer("4", selected_option_ids=selected)) is expected


def test_single_choice_without_correct_option_is_never_correct():
    question = Question(
        id="q",
        text="Unmarked",
        type=QuestionType.SINGLE_CHOICE,
        options=(QuestionOption("a", "x"), QuestionOption("b", "y")),
    )
    assert grade_question(question, StudentAnswer("q", selected_option_ids=["a"])) is False
    assert score_exam([question], {}) == Score(assessable_count=1, correct_count=0, percentage=0)


def test_short_answer_without_canonical_answer_is_not_assessable():
    question = Question(id="q", text="Name a colour", type=QuestionType.SHORT_ANSWER)
    assert grade_question(question, StudentAnswer("q", answer_text="red")) is None
    assert score_exam([question], {}) == Score(assessable_count=0, correct_count=0, percentage=0)


def test_whitespace_canonical_answer_is_not_assessable():
    question = Question(id="q", text="Name a colour", type=QuestionType.SHORT_ANSWER, answer="   ")
    assert not is_assessable(question)
    assert grade_question(question, None) is None
    assert score_exam([question], {}) == Score(assessable_count=0, correct_count=0, percentage=0)


def test_short_answer_is_case_insensitive(matter_question):
    answer = StudentAnswer("2", answer_text="SOLID, Liquid, GAS\n")
    assert grade_question(matter_question, answer) is True


def test_missing_answers_count_as_unanswered(question_bank, multi_question):
    score = score_exam(question_bank + [multi_question], {})
    assert score == Score(assessable_count=3, correct_count=0, percentage=0)


@pytest.mark.parametrize(
    "correct, total, expected",
    [(1, 8, 13), (1, 3, 33), (2, 3, 67), (1, 2, 50), (3, 8, 38)],
)
def test_percentage_rounds_half_up(correct, total, expected):
    questions = [
        Question(id=str(i), text=f"Q{i}", type=QuestionType.SHORT_ANSWER, answer="yes") for i in range(total)
    ]
    answers = {str(i): StudentAnswer(str(i), answer_text="yes") for i in range(correct)}
    assert score_exam(questions, answers).percentage == expected


def test_missing_question_bank_raises():
    with pytest.raises(GradingPreconditionError):
        score_exam(None, {})


def test_try_score_exam_returns_explicit_result(question_bank):
    failed = try_score_exam(None, {})
    assert not failed.ok
    assert failed.score is None

    succeeded = try_score_exam(question_bank, {})
    assert succeeded.ok
    assert succeeded.score.assessable_count == 2


def test_review_reports_status_and_correct_answer(question_bank):
    answers = _answers(StudentAnswer("1", selected_option_ids=["c"]), StudentAnswer("2", answer_text="solid, liquid, gas"))
    reviews = {review.question_id: review for review in review_answers(question_bank, answers)}

    assert reviews["1"].status is ReviewStatus.INCORRECT
    assert reviews["1"].correct_answer_text == "Paris"
    assert reviews["2"].status is ReviewStatus.CORRECT
    assert reviews["2"].correct_answer_text == "Solid, liquid, gas"
    assert reviews["3"].status is ReviewStatus.MANUAL_REVIEW
    assert reviews["3"].correct_answer_text is None
