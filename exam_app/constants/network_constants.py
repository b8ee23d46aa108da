"""Network configuration constants for the exam host."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
DEFAULT_BASE_URL: str = f"http://localhost:{DEFAULT_PORT}"
STUDENT_COOKIE_NAME: str = "examlink_student_id"
STUDENT_COOKIE_MAX_AGE_SECONDS: int = 60 * 60 * 24 * 30
