"""FastAPI server that exposes the exam publishing and student endpoints."""

from __future__ import annotations

from datetime import datetime
from threading import Thread
from typing import Any, Literal
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from pydantic import BaseModel
import uvicorn

from exam_app.constants.about import APP_ABOUT_TEXT, APP_NAME, APP_VERSION
from exam_app.constants.exam_constants import DEFAULT_DURATION_MINUTES
from exam_app.constants.message_constants import (
    ESSAY_REVIEW_NOTE,
    EXAM_AUTO_SUBMITTED_MESSAGE,
    EXAM_SUBMITTED_MESSAGE,
    UNLIMITED_ATTEMPTS_LABEL,
)
from exam_app.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    STUDENT_COOKIE_MAX_AGE_SECONDS,
    STUDENT_COOKIE_NAME,
)
from exam_app.core.errors import ExamImportError, InvalidSessionStateError, MalformedLinkError
from exam_app.core.exam_importer import load_exam, load_exam_from_text
from exam_app.core.exam_manager import ExamManager, UnknownExamError
from exam_app.core.link_codec import format_expiry_time, format_remaining_time
from exam_app.core.markdown_math_renderer import renderer
from exam_app.core.models import (
    DurationUnit,
    ExamSettings,
    GateDecision,
    Question,
    QuestionType,
    SessionState,
)
from exam_app.core.services.access_gate import gate_message
from exam_app.core.services.exam_session import ExamSession


class PublishPayload(BaseModel):
    """Payload schema for publishing an extracted exam."""

    exam: dict[str, Any] | None = None
    content: str | None = None  # raw extraction output, used when ``exam`` is absent
    title: str | None = None
    description: str | None = None
    password: str | None = None
    duration: int = DEFAULT_DURATION_MINUTES
    duration_unit: Literal["minutes", "hours"] = "minutes"
    start_date: datetime | None = None
    limit_attempts: bool = False
    max_attempts: int | None = None


class UnlockPayload(BaseModel):
    password: str


class AnswerTextPayload(BaseModel):
    text: str


class TogglePayload(BaseModel):
    option_id: str


def _ensure_student_id(request: Request, response: Response) -> str:
    student_id = request.cookies.get(STUDENT_COOKIE_NAME)
    if student_id:
        return student_id
    student_id = uuid4().hex
    response.set_cookie(
        key=STUDENT_COOKIE_NAME,
        value=student_id,
        max_age=STUDENT_COOKIE_MAX_AGE_SECONDS,
        samesite="lax",
        httponly=True,
    )
    return student_id


def _question_payload(question: Question) -> dict[str, object]:
    # Correct flags and canonical answers stay on the server.
    return {
        "id": question.id,
        "type": question.type.value,
        "text": question.text,
        "question_html": renderer.render_fragment(question.text),
        "instruction_html": renderer.render_optional(question.instruction),
        "options": [{"id": option.id, "text": option.text} for option in question.options],
        "note": ESSAY_REVIEW_NOTE if question.type is QuestionType.ESSAY else None,
    }


def _session_payload(session: ExamSession) -> dict[str, object]:
    params = session.params
    state = session.state
    remaining = session.remaining_seconds()
    payload: dict[str, object] = {
        "session_id": session.session_id,
        "exam_id": params.exam_id,
        "title": params.title,
        "state": state.value,
        "password_protected": params.password_protected,
        "expires_at": params.expires_at.isoformat() if params.expires_at else None,
        "expires_display": format_expiry_time(params.expires_at) if params.expires_at else None,
        "remaining_seconds": remaining,
        "remaining_display": format_remaining_time(remaining) if remaining is not None else None,
        "attempts_label": (
            f"{params.max_attempts} attempts allowed" if params.max_attempts else UNLIMITED_ATTEMPTS_LABEL
        ),
        "questions": [],
        "answers": {},
        "score": None,
        "review": None,
        "message": None,
    }
    score = session.score
    if state is SessionState.LOCKED or (state.is_terminal and score is None):
        return payload

    payload["questions"] = [_question_payload(question) for question in session.questions]
    payload["answers"] = {
        question_id: {
            "answer_text": answer.answer_text,
            "selected_option_ids": list(answer.selected_option_ids),
        }
        for question_id, answer in session.get_answers().items()
    }
    if score is not None:
        payload["score"] = {
            "assessable_count": score.assessable_count,
            "correct_count": score.correct_count,
            "percentage": score.percentage,
        }
        payload["review"] = [
            {
                "question_id": review.question_id,
                "status": review.status.value,
                "correct_answer_text": review.correct_answer_text,
            }
            for review in session.review()
        ]
        payload["message"] = (
            EXAM_AUTO_SUBMITTED_MESSAGE if state is SessionState.EXPIRED else EXAM_SUBMITTED_MESSAGE
        )
    return payload


def _denied(decision: GateDecision) -> HTTPException:
    return HTTPException(
        status_code=403,
        detail={"decision": decision.value, "message": gate_message(decision)},
    )


def _get_exam_manager_dependency(exam_manager: ExamManager):
    def dependency() -> ExamManager:
        return exam_manager

    return dependency


def create_api_app(exam_manager: ExamManager) -> FastAPI:
    """Create a FastAPI application wired to the provided exam manager."""
    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION, description=APP_ABOUT_TEXT)
    exam_manager_dep = _get_exam_manager_dependency(exam_manager)

    def _session_for(request: Request, response: Response, manager: ExamManager, session_id: str) -> ExamSession:
        student_id = _ensure_student_id(request, response)
        try:
            return manager.get_session_for_student(session_id, student_id)
        except UnknownExamError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.post("/exams", status_code=201)
    def publish_exam(
        payload: PublishPayload,
        manager: ExamManager = Depends(exam_manager_dep),
    ) -> dict[str, object]:
        try:
            if payload.exam is not None:
                exam = load_exam(payload.exam)
            elif payload.content:
                exam = load_exam_from_text(payload.content)
            else:
                raise HTTPException(status_code=422, detail="Provide either 'exam' or 'content'.")
            settings = ExamSettings(
                title=payload.title or exam.title,
                duration=payload.duration,
                duration_unit=DurationUnit(payload.duration_unit),
                start_date=payload.start_date,
                description=payload.description or exam.description,
                password=payload.password,
                limit_attempts=payload.limit_attempts,
                max_attempts=payload.max_attempts,
            )
            published = manager.publish_exam(exam, settings)
        except (ExamImportError, ValueError) as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

        params = published.params
        return {
            "exam_id": params.exam_id,
            "title": params.title,
            "description": published.exam.description,
            "link": published.link,
            "password_protected": params.password_protected,
            "expires_at": params.expires_at.isoformat() if params.expires_at else None,
            "max_attempts": params.max_attempts,
            "question_count": len(published.exam.questions),
        }

    @app.get("/exam")
    def open_exam(
        request: Request,
        response: Response,
        manager: ExamManager = Depends(exam_manager_dep),
    ) -> dict[str, object]:
        student_id = _ensure_student_id(request, response)
        try:
            result = manager.open_session(dict(request.query_params), student_id)
        except MalformedLinkError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except UnknownExamError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        if result.session is None:
            raise _denied(result.decision)
        return _session_payload(result.session)

    @app.get("/exam/{session_id}")
    def get_exam_session(
        session_id: str,
        request: Request,
        response: Response,
        manager: ExamManager = Depends(exam_manager_dep),
    ) -> dict[str, object]:
        session = _session_for(request, response, manager, session_id)
        session.check_expiry()
        return _session_payload(session)

    @app.post("/exam/{session_id}/unlock")
    def unlock_exam(
        session_id: str,
        payload: UnlockPayload,
        request: Request,
        response: Response,
        manager: ExamManager = Depends(exam_manager_dep),
    ) -> dict[str, object]:
        session = _session_for(request, response, manager, session_id)
        try:
            decision = manager.unlock_session(session.session_id, payload.password)
        except InvalidSessionStateError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        if not decision.is_granted:
            raise _denied(decision)
        body = _session_payload(session)
        body["message"] = gate_message(decision)
        return body

    @app.put("/exam/{session_id}/answers/{question_id}")
    def set_answer_text(
        session_id: str,
        question_id: str,
        payload: AnswerTextPayload,
        request: Request,
        response: Response,
        manager: ExamManager = Depends(exam_manager_dep),
    ) -> dict[str, object]:
        session = _session_for(request, response, manager, session_id)
        try:
            session.set_answer_text(question_id, payload.text)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"Unknown question {question_id!r}") from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except InvalidSessionStateError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        answer = session.get_answer(question_id)
        return {"question_id": question_id, "answer_text": answer.answer_text}

    @app.post("/exam/{session_id}/answers/{question_id}/toggle")
    def toggle_option(
        session_id: str,
        question_id: str,
        payload: TogglePayload,
        request: Request,
        response: Response,
        manager: ExamManager = Depends(exam_manager_dep),
    ) -> dict[str, object]:
        session = _session_for(request, response, manager, session_id)
        try:
            session.toggle_option(question_id, payload.option_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"Unknown question {question_id!r}") from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except InvalidSessionStateError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        answer = session.get_answer(question_id)
        return {"question_id": question_id, "selected_option_ids": list(answer.selected_option_ids)}

    @app.post("/exam/{session_id}/submit")
    def submit_exam(
        session_id: str,
        request: Request,
        response: Response,
        manager: ExamManager = Depends(exam_manager_dep),
    ) -> dict[str, object]:
        session = _session_for(request, response, manager, session_id)
        try:
            session.submit()
        except InvalidSessionStateError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return _session_payload(session)

    return app


def start_api_server(
    exam_manager: ExamManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(exam_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="ExamApiServer", daemon=True)
    thread.start()
    return thread
