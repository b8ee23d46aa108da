"""Exam-related constants shared across the core and the host."""

TICK_INTERVAL_SECONDS: float = 1.0
DEFAULT_DURATION_MINUTES: int = 60
EXAM_LINK_PATH: str = "/exam"
UNTITLED_EXAM_TITLE: str = "Untitled Exam"
EXPIRY_DISPLAY_FORMAT: str = "%b %d, %Y, %I:%M:%S %p"

LINK_PARAM_ID: str = "id"
LINK_PARAM_TITLE: str = "title"
LINK_PARAM_SECURE: str = "secure"
LINK_PARAM_EXPIRES: str = "expires"
LINK_PARAM_ATTEMPTS: str = "attempts"
