"""User-visible messages for gate decisions and session outcomes."""

GATE_GRANTED_MESSAGE: str = "Exam unlocked. You can now proceed with the exam."
GATE_EXPIRED_MESSAGE: str = "This exam has expired and can no longer be taken."
GATE_WRONG_PASSWORD_MESSAGE: str = "Incorrect password. Please try again with the correct password."
GATE_ATTEMPTS_EXHAUSTED_MESSAGE: str = (
    "You have used all allowed attempts for this exam."
)

EXAM_SUBMITTED_MESSAGE: str = "Exam submitted successfully."
EXAM_AUTO_SUBMITTED_MESSAGE: str = "Exam time expired. Your exam has been automatically submitted."
ESSAY_REVIEW_NOTE: str = "Essay questions require manual grading."
UNLIMITED_ATTEMPTS_LABEL: str = "Unlimited attempts"
