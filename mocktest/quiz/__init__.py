"""Client-side quiz session engine and its HTTP collaborators."""

from mocktest.quiz.client import MockTestApiClient
from mocktest.quiz.ports import AnswerKeyStore, AttemptRecorder
from mocktest.quiz.session import Notice, QuizSession, SessionState, format_time

__all__ = [
    "AnswerKeyStore",
    "AttemptRecorder",
    "MockTestApiClient",
    "Notice",
    "QuizSession",
    "SessionState",
    "format_time",
]
