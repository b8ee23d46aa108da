"""Business logic shared by the HTTP host: published exams, sessions and attempts."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
import logging
from threading import Lock
from uuid import uuid4

from exam_app.constants.network_constants import DEFAULT_BASE_URL
from exam_app.core.link_codec import build_link_parameters, decode_link, encode_link
from exam_app.core.models import (
    Exam,
    ExamSettings,
    GateDecision,
    PublishedExam,
    Score,
    SessionState,
    StudentAnswer,
)
from exam_app.core.services import access_gate
from exam_app.core.services.attempt_tracker import AttemptTracker
from exam_app.core.services.exam_repository import ExamRepository
from exam_app.core.services.exam_session import Clock, ExamSession, utc_now

logger = logging.getLogger(__name__)


class UnknownExamError(LookupError):
    """Raised when a link or session id does not match anything published."""


@dataclass(slots=True)
class SubmissionRecord:
    """Final result handed over by a session's ``on_finalized`` hook."""

    session_id: str
    exam_id: str
    student_id: str
    score: Score
    answers: dict[str, StudentAnswer]
    finalized_at: datetime


@dataclass(slots=True)
class OpenResult:
    session: ExamSession | None
    decision: GateDecision


class ExamManager:
    """Facade for publishing exams and running student sessions against them.

    Link parameters are looked up from what was published rather than trusted
    from the query string, and the password never leaves this process.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        clock: Clock = utc_now,
        poll_interval: float | None = None,
        enable_expiry_polling: bool = True,
    ) -> None:
        self._lock = Lock()
        self._base_url = base_url
        self._clock = clock
        self._poll_interval = poll_interval
        self._enable_expiry_polling = enable_expiry_polling

        self._published: dict[str, PublishedExam] = {}
        self._sessions: dict[str, ExamSession] = {}
        self._session_students: dict[str, str] = {}
        self._latest_sessions: dict[tuple[str, str], str] = {}
        self._submissions: list[SubmissionRecord] = []
        self._attempts = AttemptTracker()

    # --- Publishing ---

    def publish_exam(self, exam: Exam, settings: ExamSettings) -> PublishedExam:
        """Validate the question bank and generate a shareable link for it."""
        repository = ExamRepository(exam)
        repository.validate_for_publish()
        params = build_link_parameters(settings, now=self._clock())
        published_exam = repository.to_exam()
        if settings.description:
            published_exam.description = settings.description
        published = PublishedExam(
            exam=published_exam,
            params=params,
            link=encode_link(params, self._base_url),
            password=settings.password or None,
        )
        with self._lock:
            self._published[params.exam_id] = published
        logger.info(
            "Published exam '%s' as %s (expires %s, attempts %s, protected=%s)",
            params.title,
            params.exam_id,
            params.expires_at.isoformat() if params.expires_at else "never",
            params.max_attempts or "unlimited",
            params.password_protected,
        )
        return published

    def get_published(self, exam_id: str) -> PublishedExam:
        with self._lock:
            published = self._published.get(exam_id)
        if published is None:
            raise UnknownExamError(f"No published exam with id {exam_id!r}")
        return published

    # --- Sessions ---

    def open_session(self, query: Mapping[str, str], student_id: str) -> OpenResult:
        """Decode a link and start a session for ``student_id`` if the gate allows it.

        Password protected exams open in the locked state; expired exams and
        exhausted attempt limits open nothing. Reopening a link while the
        student's previous session is still locked or in progress returns that
        session instead of starting another attempt.
        """
        link_params = decode_link(query)
        published = self.get_published(link_params.exam_id)
        params = published.params

        def attempt(attempts_used: int) -> OpenResult:
            current = self._current_session(params.exam_id, student_id)
            if current is not None and current.state is SessionState.IN_PROGRESS:
                logger.info("Student %s resumed session %s", student_id, current.session_id)
                return OpenResult(session=current, decision=GateDecision.GRANTED)

            decision = access_gate.evaluate(
                params,
                None,
                self._clock(),
                attempts_used,
                expected_password=published.password,
            )
            if decision in (GateDecision.DENIED_EXPIRED, GateDecision.DENIED_ATTEMPTS_EXHAUSTED):
                logger.info("Student %s denied exam %s: %s", student_id, params.exam_id, decision.value)
                return OpenResult(session=None, decision=decision)
            if current is not None:
                return OpenResult(session=current, decision=decision)

            session = self._create_session(published, student_id, attempts_used)
            if session.state is SessionState.IN_PROGRESS:
                self._attempts.register_attempt(params.exam_id, student_id)
                self._start_polling(session)
            return OpenResult(session=session, decision=decision)

        return self._attempts.run_serialized(params.exam_id, student_id, attempt)

    def unlock_session(self, session_id: str, password: str | None) -> GateDecision:
        session = self.get_session(session_id)
        student_id = self._student_for(session_id)
        exam_id = session.params.exam_id

        def attempt(attempts_used: int) -> GateDecision:
            decision = session.unlock(password, attempts_used=attempts_used)
            if decision is GateDecision.GRANTED:
                self._attempts.register_attempt(exam_id, student_id)
                self._start_polling(session)
            return decision

        return self._attempts.run_serialized(exam_id, student_id, attempt)

    def get_session(self, session_id: str) -> ExamSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise UnknownExamError(f"No exam session with id {session_id!r}")
        return session

    def get_session_for_student(self, session_id: str, student_id: str) -> ExamSession:
        session = self.get_session(session_id)
        if self._student_for(session_id) != student_id:
            raise UnknownExamError(f"No exam session with id {session_id!r}")
        return session

    def set_answer_text(self, session_id: str, question_id: str, text: str) -> None:
        self.get_session(session_id).set_answer_text(question_id, text)

    def toggle_option(self, session_id: str, question_id: str, option_id: str) -> None:
        self.get_session(session_id).toggle_option(question_id, option_id)

    def submit(self, session_id: str) -> Score | None:
        return self.get_session(session_id).submit()

    def attempts_used(self, exam_id: str, student_id: str) -> int:
        return self._attempts.attempts_used(exam_id, student_id)

    def get_submissions(self, exam_id: str | None = None) -> list[SubmissionRecord]:
        with self._lock:
            records = list(self._submissions)
        if exam_id is None:
            return records
        return [record for record in records if record.exam_id == exam_id]

    def shutdown(self) -> None:
        """Stop all background expiry polls."""
        with self._lock:
            sessions = list(self._sessions.values())
        for session in sessions:
            session.stop_expiry_polling()

    # --- Internal helpers ---

    def _create_session(self, published: PublishedExam, student_id: str, attempts_used: int) -> ExamSession:
        session_id = uuid4().hex

        def on_finalized(score: Score, answers: Mapping[str, StudentAnswer]) -> None:
            record = SubmissionRecord(
                session_id=session_id,
                exam_id=published.params.exam_id,
                student_id=student_id,
                score=score,
                answers=dict(answers),
                finalized_at=self._clock(),
            )
            with self._lock:
                self._submissions.append(record)

        session = ExamSession(
            published.params,
            published.exam.questions,
            expected_password=published.password,
            attempts_used=attempts_used,
            on_finalized=on_finalized,
            clock=self._clock,
            session_id=session_id,
        )
        key = (published.params.exam_id, student_id)
        with self._lock:
            # The previous session is finalized and archived in the submission records.
            previous_id = self._latest_sessions.get(key)
            if previous_id is not None:
                self._sessions.pop(previous_id, None)
                self._session_students.pop(previous_id, None)
            self._latest_sessions[key] = session_id
            self._sessions[session_id] = session
            self._session_students[session_id] = student_id
        logger.info("Opened session %s for student %s on exam %s", session_id, student_id, published.params.exam_id)
        return session

    def _current_session(self, exam_id: str, student_id: str) -> ExamSession | None:
        """The student's latest session for ``exam_id`` if it is still open."""
        with self._lock:
            session_id = self._latest_sessions.get((exam_id, student_id))
            session = self._sessions.get(session_id) if session_id is not None else None
        if session is None:
            return None
        session.check_expiry()
        if session.is_finalized():
            return None
        return session

    def _student_for(self, session_id: str) -> str:
        with self._lock:
            return self._session_students[session_id]

    def _start_polling(self, session: ExamSession) -> None:
        if self._enable_expiry_polling:
            session.start_expiry_polling(self._poll_interval)
