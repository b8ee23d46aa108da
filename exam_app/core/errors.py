"""Exception types raised by the exam engine."""

from __future__ import annotations


class ExamAppError(Exception):
    """Base class for all exam engine errors."""


class MalformedLinkError(ExamAppError):
    """Raised when exam link parameters cannot be decoded."""


class InvalidSessionStateError(ExamAppError):
    """Raised when a session operation is attempted in the wrong state."""


class GradingPreconditionError(ExamAppError):
    """Raised when scoring is invoked without a question bank."""


class ExamImportError(ExamAppError):
    """Raised when extracted exam data cannot be parsed."""
