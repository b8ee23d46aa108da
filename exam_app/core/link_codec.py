"""Encoding and decoding of shareable exam links.

A link embeds every access parameter in its query string:

    https://host/exam?id=<id>&title=<title>&secure=true&expires=<iso>&attempts=<n>

``secure`` is present only for password protected exams, ``expires`` and
``attempts`` only when an expiry or attempt limit was configured. Nothing in
the link is signed; anyone holding it can read or alter the parameters, so
the password itself is never part of it.

Expiry instants are written as UTC ISO-8601 with millisecond precision and a
``Z`` suffix. Anything finer than a millisecond is truncated, both when the
link is encoded and when parameters are built from settings, so that a
decoded link compares equal to the parameters it was built from.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qsl, quote, urlencode, urlsplit
from uuid import uuid4

from exam_app.constants.exam_constants import (
    EXAM_LINK_PATH,
    EXPIRY_DISPLAY_FORMAT,
    LINK_PARAM_ATTEMPTS,
    LINK_PARAM_EXPIRES,
    LINK_PARAM_ID,
    LINK_PARAM_SECURE,
    LINK_PARAM_TITLE,
)
from exam_app.core.errors import MalformedLinkError
from exam_app.core.models import DurationUnit, ExamLinkParameters, ExamSettings


@dataclass(frozen=True, slots=True)
class LinkDecodeResult:
    """Explicit success-or-failure wrapper around :func:`decode_link`."""

    params: ExamLinkParameters | None = None
    error: MalformedLinkError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def encode_link(params: ExamLinkParameters, base_url: str) -> str:
    """Build the shareable URL for ``params`` below ``base_url``."""
    query: list[tuple[str, str]] = [
        (LINK_PARAM_ID, params.exam_id),
        (LINK_PARAM_TITLE, params.title),
    ]
    if params.password_protected:
        query.append((LINK_PARAM_SECURE, "true"))
    if params.expires_at is not None:
        query.append((LINK_PARAM_EXPIRES, format_instant(params.expires_at)))
    if params.max_attempts is not None:
        query.append((LINK_PARAM_ATTEMPTS, str(params.max_attempts)))

    base = base_url.rstrip("/")
    if not base.endswith(EXAM_LINK_PATH):
        base = f"{base}{EXAM_LINK_PATH}"
    return f"{base}?{urlencode(query, quote_via=quote)}"


def decode_link(query: Mapping[str, str]) -> ExamLinkParameters:
    """Rebuild link parameters from an already percent-decoded query mapping."""
    exam_id = (query.get(LINK_PARAM_ID) or "").strip()
    if not exam_id:
        raise MalformedLinkError("Exam link is missing the required 'id' parameter.")

    expires_at = None
    raw_expires = query.get(LINK_PARAM_EXPIRES)
    if raw_expires:
        expires_at = parse_instant(raw_expires)

    max_attempts = None
    raw_attempts = query.get(LINK_PARAM_ATTEMPTS)
    if raw_attempts:
        try:
            max_attempts = int(raw_attempts)
        except ValueError as exc:
            raise MalformedLinkError(
                f"Exam link 'attempts' must be an integer, got {raw_attempts!r}."
            ) from exc
        if max_attempts <= 0:
            raise MalformedLinkError("Exam link 'attempts' must be a positive integer.")

    return ExamLinkParameters(
        exam_id=exam_id,
        title=query.get(LINK_PARAM_TITLE) or "",
        password_protected=query.get(LINK_PARAM_SECURE) == "true",
        expires_at=expires_at,
        max_attempts=max_attempts,
    )


def parse_link(query: Mapping[str, str]) -> LinkDecodeResult:
    """Decode without raising; failures are reported on the result."""
    try:
        return LinkDecodeResult(params=decode_link(query))
    except MalformedLinkError as exc:
        return LinkDecodeResult(error=exc)


def decode_link_url(url: str) -> ExamLinkParameters:
    """Decode a full link URL as produced by :func:`encode_link`."""
    query = dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))
    return decode_link(query)


def format_instant(instant: datetime) -> str:
    """Format an instant the way links carry it (UTC, milliseconds, ``Z``)."""
    utc = _as_utc(instant)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_instant(raw_value: str) -> datetime:
    value = raw_value.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise MalformedLinkError(
            f"Exam link 'expires' is not an ISO-8601 instant: {raw_value!r}."
        ) from exc
    return truncate_to_millis(_as_utc(parsed))


def truncate_to_millis(instant: datetime) -> datetime:
    return instant.replace(microsecond=instant.microsecond - instant.microsecond % 1000)


def generate_exam_id() -> str:
    return uuid4().hex


def calculate_expiry(start: datetime, duration: int, unit: DurationUnit) -> datetime:
    if unit is DurationUnit.HOURS:
        return start + timedelta(hours=duration)
    return start + timedelta(minutes=duration)


def calculate_expiry_from_now(
    duration: int,
    unit: DurationUnit,
    now: datetime | None = None,
) -> datetime:
    return calculate_expiry(now or datetime.now(timezone.utc), duration, unit)


def build_link_parameters(
    settings: ExamSettings,
    exam_id: str | None = None,
    now: datetime | None = None,
) -> ExamLinkParameters:
    """Translate publish settings into link parameters.

    The expiry is ``start_date + duration``; when no start date was chosen the
    exam window opens at ``now``. An attempt limit is only carried when the
    exam author both enabled limiting and gave a count.
    """
    if settings.duration <= 0:
        raise ValueError("Exam duration must be a positive integer.")
    title = settings.title.strip()
    if not title:
        raise ValueError("Exam title must not be empty.")

    start = settings.start_date or now or datetime.now(timezone.utc)
    expires_at = truncate_to_millis(
        _as_utc(calculate_expiry(start, settings.duration, settings.duration_unit))
    )

    max_attempts = None
    if settings.limit_attempts and settings.max_attempts:
        if settings.max_attempts <= 0:
            raise ValueError("Maximum attempts must be a positive integer.")
        max_attempts = settings.max_attempts

    return ExamLinkParameters(
        exam_id=exam_id or generate_exam_id(),
        title=title,
        password_protected=bool(settings.password),
        expires_at=expires_at,
        max_attempts=max_attempts,
    )


def format_expiry_time(instant: datetime) -> str:
    return _as_utc(instant).strftime(EXPIRY_DISPLAY_FORMAT) + " UTC"


def format_remaining_time(seconds: int) -> str:
    """Render a countdown as ``MM:SS``; minutes keep growing past an hour."""
    seconds = max(0, int(seconds))
    minutes, remainder = divmod(seconds, 60)
    return f"{minutes:02d}:{remainder:02d}"


def _as_utc(instant: datetime) -> datetime:
    # Naive datetimes are treated as UTC.
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)
