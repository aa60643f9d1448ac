"""Exception taxonomy for the assessment flow."""
from __future__ import annotations


class QuizError(Exception):
    """Base class for every failure raised by ``quiz_core``."""


class ProviderError(QuizError):
    """Question source unavailable or returned a malformed payload."""


class InvalidConfiguration(QuizError):
    """The session cannot start with the given question set or budget."""


class SessionClosed(QuizError):
    """A mutation was attempted while the session is not active."""


class IndexOutOfRange(QuizError):
    pass


class InvalidAnswer(QuizError):
    pass


class EmptySession(QuizError):
    """Scoring was asked for a session without questions."""


class SessionStillActive(QuizError):
    """Scoring was asked for a session that has not been submitted."""


class ExportError(QuizError):
    pass


__all__ = [
    "QuizError",
    "ProviderError",
    "InvalidConfiguration",
    "SessionClosed",
    "IndexOutOfRange",
    "InvalidAnswer",
    "EmptySession",
    "SessionStillActive",
    "ExportError",
]
