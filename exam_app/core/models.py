"""Domain models for the exam access and scoring engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class QuestionType(Enum):
    """Closed set of question kinds understood by the scoring engine."""

    SINGLE_CHOICE = "single-choice"
    MULTI_CHOICE = "multi-choice"
    SHORT_ANSWER = "short-answer"
    ESSAY = "essay"

    @property
    def is_choice(self) -> bool:
        return self in (QuestionType.SINGLE_CHOICE, QuestionType.MULTI_CHOICE)


class GateDecision(Enum):
    """Outcome of evaluating whether a student may access an exam."""

    GRANTED = "granted"
    DENIED_EXPIRED = "denied_expired"
    DENIED_WRONG_PASSWORD = "denied_wrong_password"
    DENIED_ATTEMPTS_EXHAUSTED = "denied_attempts_exhausted"

    @property
    def is_granted(self) -> bool:
        return self is GateDecision.GRANTED


class SessionState(Enum):
    """Lifecycle states of a student exam session."""

    LOCKED = "locked"
    IN_PROGRESS = "in_progress"
    EXPIRED = "expired"
    SUBMITTED = "submitted"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.EXPIRED, SessionState.SUBMITTED)


class DurationUnit(Enum):
    MINUTES = "minutes"
    HOURS = "hours"


class ReviewStatus(Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    MANUAL_REVIEW = "manual_review"
    UNGRADED = "ungraded"


@dataclass(frozen=True, slots=True)
class QuestionOption:
    """Selectable option belonging to exactly one choice question."""

    id: str
    text: str
    is_correct: bool = False


@dataclass(frozen=True, slots=True)
class Question:
    """A single exam question of any supported type."""

    id: str
    text: str
    type: QuestionType
    options: tuple[QuestionOption, ...] = ()
    answer: str | None = None  # canonical answer for short-answer/essay
    instruction: str | None = None

    def correct_option_ids(self) -> list[str]:
        return [option.id for option in self.options if option.is_correct]

    def find_option(self, option_id: str) -> QuestionOption | None:
        return next((option for option in self.options if option.id == option_id), None)


@dataclass(slots=True)
class Exam:
    """Question bank plus the metadata shown to students."""

    id: str
    title: str
    questions: list[Question]
    description: str | None = None


@dataclass(frozen=True, slots=True)
class ExamLinkParameters:
    """Everything a shareable exam link carries."""

    exam_id: str
    title: str
    password_protected: bool = False
    expires_at: datetime | None = None
    max_attempts: int | None = None

    def __post_init__(self) -> None:
        # Naive expiry instants are taken to be UTC.
        if self.expires_at is not None:
            if self.expires_at.tzinfo is None:
                expires_at = self.expires_at.replace(tzinfo=timezone.utc)
            else:
                expires_at = self.expires_at.astimezone(timezone.utc)
            object.__setattr__(self, "expires_at", expires_at)


@dataclass(slots=True)
class ExamSettings:
    """Options chosen by the exam author when publishing an exam link."""

    title: str
    duration: int
    duration_unit: DurationUnit = DurationUnit.MINUTES
    start_date: datetime | None = None  # defaults to "now" when the link is generated
    description: str | None = None
    password: str | None = None
    limit_attempts: bool = False
    max_attempts: int | None = None


@dataclass(slots=True)
class PublishedExam:
    """An exam together with the link parameters it was published under."""

    exam: Exam
    params: ExamLinkParameters
    link: str
    password: str | None = None


@dataclass(slots=True)
class StudentAnswer:
    """A student's in-progress answer to one question."""

    question_id: str
    answer_text: str | None = None
    selected_option_ids: list[str] = field(default_factory=list)

    def copy(self) -> StudentAnswer:
        return StudentAnswer(
            question_id=self.question_id,
            answer_text=self.answer_text,
            selected_option_ids=list(self.selected_option_ids),
        )


@dataclass(frozen=True, slots=True)
class Score:
    """Immutable result computed once at submission."""

    assessable_count: int
    correct_count: int
    percentage: int


@dataclass(frozen=True, slots=True)
class QuestionReview:
    """Read-only per-question outcome shown after submission."""

    question_id: str
    status: ReviewStatus
    correct_answer_text: str | None = None
