"""Decides whether a student may open or start an exam."""

from __future__ import annotations

from datetime import datetime, timezone

from exam_app.constants.message_constants import (
    GATE_ATTEMPTS_EXHAUSTED_MESSAGE,
    GATE_EXPIRED_MESSAGE,
    GATE_GRANTED_MESSAGE,
    GATE_WRONG_PASSWORD_MESSAGE,
)
from exam_app.core.models import ExamLinkParameters, GateDecision

_MESSAGES: dict[GateDecision, str] = {
    GateDecision.GRANTED: GATE_GRANTED_MESSAGE,
    GateDecision.DENIED_EXPIRED: GATE_EXPIRED_MESSAGE,
    GateDecision.DENIED_WRONG_PASSWORD: GATE_WRONG_PASSWORD_MESSAGE,
    GateDecision.DENIED_ATTEMPTS_EXHAUSTED: GATE_ATTEMPTS_EXHAUSTED_MESSAGE,
}


def evaluate(
    params: ExamLinkParameters,
    supplied_password: str | None,
    now: datetime,
    attempts_used: int,
    expected_password: str | None = None,
) -> GateDecision:
    """Return the first matching decision: expiry, then attempts, then password.

    The password comparison is exact and case-sensitive. A protected exam
    without a configured ``expected_password`` can never be unlocked.
    """
    if is_expired(params, now):
        return GateDecision.DENIED_EXPIRED

    if params.max_attempts is not None and attempts_used >= params.max_attempts:
        return GateDecision.DENIED_ATTEMPTS_EXHAUSTED

    if params.password_protected:
        if expected_password is None or supplied_password != expected_password:
            return GateDecision.DENIED_WRONG_PASSWORD

    return GateDecision.GRANTED


def is_expired(params: ExamLinkParameters, now: datetime) -> bool:
    if params.expires_at is None:
        return False
    return _as_aware(now) >= _as_aware(params.expires_at)


def gate_message(decision: GateDecision) -> str:
    """User-facing text for a decision; each denial has its own wording."""
    return _MESSAGES[decision]


def _as_aware(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant
