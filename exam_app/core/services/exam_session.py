"""State machine for one student's pass through an exam."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone
import logging
from threading import Lock
from uuid import uuid4

from exam_app.core.errors import InvalidSessionStateError
from exam_app.core.models import (
    ExamLinkParameters,
    GateDecision,
    Question,
    QuestionReview,
    Score,
    SessionState,
    StudentAnswer,
)
from exam_app.core.services import access_gate
from exam_app.core.services.answer_store import AnswerStore
from exam_app.core.services.expiry_ticker import ExpiryTicker
from exam_app.core.services.scoring import review_answers, score_exam

logger = logging.getLogger(__name__)

FinalizedCallback = Callable[[Score, Mapping[str, StudentAnswer]], None]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExamSession:
    """Composes the access gate, answer store and scoring for one student.

    ``LOCKED -> IN_PROGRESS -> SUBMITTED`` is the normal path; ``EXPIRED`` is
    reached when the exam window closes. Whichever of explicit submit and
    expiry happens first finalizes the session, guarded by a single flag, and
    the other becomes a no-op.
    """

    def __init__(
        self,
        params: ExamLinkParameters,
        questions: Sequence[Question],
        expected_password: str | None = None,
        attempts_used: int = 0,
        on_finalized: FinalizedCallback | None = None,
        clock: Clock = utc_now,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or uuid4().hex
        self._params = params
        self._questions: tuple[Question, ...] = tuple(questions)
        self._questions_by_id = {question.id: question for question in self._questions}
        self._expected_password = expected_password
        self._attempts_used = attempts_used
        self._on_finalized = on_finalized
        self._clock = clock

        self._lock = Lock()
        self._answers = AnswerStore(self._questions_by_id)
        self._state = SessionState.LOCKED if params.password_protected else SessionState.IN_PROGRESS
        self._finalized: bool = False
        self._score: Score | None = None
        self._final_answers: dict[str, StudentAnswer] | None = None
        self._ticker: ExpiryTicker | None = None

    # --- Read access ---

    @property
    def params(self) -> ExamLinkParameters:
        return self._params

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def score(self) -> Score | None:
        with self._lock:
            return self._score

    def is_finalized(self) -> bool:
        with self._lock:
            return self._finalized

    def get_answer(self, question_id: str) -> StudentAnswer:
        with self._lock:
            return self._answers.get(question_id)

    def get_answers(self) -> dict[str, StudentAnswer]:
        with self._lock:
            return self._answers.snapshot()

    def remaining_seconds(self) -> int | None:
        if self._params.expires_at is None:
            return None
        remaining = (self._params.expires_at - self._clock()).total_seconds()
        return max(0, int(remaining))

    def review(self) -> list[QuestionReview]:
        """Read-only per-question outcome, available once the session is finalized."""
        with self._lock:
            if not self._finalized or self._final_answers is None:
                raise InvalidSessionStateError("Answers can only be reviewed after submission.")
            answers = dict(self._final_answers)
        return review_answers(self._questions, answers)

    # --- Transitions ---

    def unlock(self, password: str | None, attempts_used: int | None = None) -> GateDecision:
        """Evaluate the access gate for a locked session.

        ``attempts_used`` refreshes the count given at construction, for hosts
        that track attempts outside the session.
        """
        with self._lock:
            if self._state is not SessionState.LOCKED:
                raise InvalidSessionStateError(
                    f"Session cannot be unlocked while {self._state.value}."
                )
            if attempts_used is not None:
                self._attempts_used = attempts_used
            decision = access_gate.evaluate(
                self._params,
                password,
                self._clock(),
                self._attempts_used,
                expected_password=self._expected_password,
            )
            if decision is GateDecision.GRANTED:
                self._state = SessionState.IN_PROGRESS
            elif decision is GateDecision.DENIED_EXPIRED:
                # Nothing was started, so there is nothing to submit.
                self._state = SessionState.EXPIRED
                self._finalized = True
            logger.info("Session %s unlock attempt: %s", self.session_id, decision.value)
            return decision

    def check_expiry(self) -> bool:
        """Cooperative expiry check; returns True while the session stays active.

        Expiry while in progress submits whatever answers are stored.
        """
        now = self._clock()
        callback_args = None
        with self._lock:
            if self._finalized:
                return False
            if not access_gate.is_expired(self._params, now):
                return True
            if self._state is SessionState.LOCKED:
                self._state = SessionState.EXPIRED
                self._finalized = True
                logger.info("Session %s expired before it was unlocked", self.session_id)
            else:
                callback_args = self._finalize_locked(SessionState.EXPIRED)
                logger.info("Session %s expired; answers auto-submitted", self.session_id)
        self._stop_ticker()
        if callback_args is not None:
            self._notify(*callback_args)
        return False

    def set_answer_text(self, question_id: str, text: str) -> None:
        self.check_expiry()
        with self._lock:
            self._ensure_in_progress()
            question = self._require_question(question_id)
            if question.type.is_choice:
                raise ValueError(f"Question {question_id} expects selected options, not text.")
            self._answers.set_answer_text(question_id, text)

    def toggle_option(self, question_id: str, option_id: str) -> None:
        self.check_expiry()
        with self._lock:
            self._ensure_in_progress()
            question = self._require_question(question_id)
            if question.find_option(option_id) is None:
                raise ValueError(f"Question {question_id} has no option {option_id!r}.")
            self._answers.toggle_option(question_id, option_id, question.type)

    def submit(self) -> Score | None:
        """Score and freeze the answers; repeated calls return the first result."""
        self.check_expiry()
        with self._lock:
            if self._finalized:
                return self._score
            if self._state is SessionState.LOCKED:
                raise InvalidSessionStateError("Exam must be unlocked before it can be submitted.")
            callback_args = self._finalize_locked(SessionState.SUBMITTED)
            score = self._score
        logger.info(
            "Session %s submitted: %d/%d (%d%%)",
            self.session_id,
            score.correct_count,
            score.assessable_count,
            score.percentage,
        )
        self._stop_ticker()
        self._notify(*callback_args)
        return score

    # --- Expiry polling ---

    def start_expiry_polling(self, interval: float | None = None) -> ExpiryTicker | None:
        """Start a background poll that expires the session on time."""
        if self._params.expires_at is None:
            return None
        with self._lock:
            if self._finalized or self._ticker is not None:
                return self._ticker
            kwargs = {} if interval is None else {"interval": interval}
            self._ticker = ExpiryTicker(
                self.check_expiry, name=f"ExamExpiry-{self.session_id[:8]}", **kwargs
            )
            ticker = self._ticker
        ticker.start()
        return ticker

    def stop_expiry_polling(self) -> None:
        self._stop_ticker()

    # --- Internal helpers ---

    def _finalize_locked(self, terminal_state: SessionState) -> tuple[Score, dict[str, StudentAnswer]]:
        self._finalized = True
        self._answers.freeze()
        self._final_answers = self._answers.snapshot()
        self._score = score_exam(self._questions, self._final_answers)
        self._state = terminal_state
        return self._score, dict(self._final_answers)

    def _notify(self, score: Score, answers: dict[str, StudentAnswer]) -> None:
        if self._on_finalized is None:
            return
        try:
            self._on_finalized(score, answers)
        except Exception:
            # The score is already frozen locally; a failing host hook does not undo it.
            logger.exception("on_finalized callback failed for session %s", self.session_id)

    def _stop_ticker(self) -> None:
        with self._lock:
            ticker = self._ticker
        if ticker is not None:
            ticker.stop()

    def _ensure_in_progress(self) -> None:
        if self._state is not SessionState.IN_PROGRESS:
            raise InvalidSessionStateError(
                f"Answers cannot be changed while the session is {self._state.value}."
            )

    def _require_question(self, question_id: str) -> Question:
        question = self._questions_by_id.get(question_id)
        if question is None:
            raise KeyError(f"Unknown question id {question_id!r}")
        return question
