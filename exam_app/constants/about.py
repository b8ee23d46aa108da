"""Static metadata describing ExamLink."""

APP_NAME = "ExamLink"
APP_VERSION = "0.1"
APP_ABOUT_TEXT = (
    "ExamLink turns extracted exam questions into shareable, time-limited exam links. "
    "Students unlock the exam, answer choice, short-answer and essay questions, "
    "and receive an automatic score for everything that can be graded."
)
