"""Error taxonomy shared by the service layer and the quiz session client."""

from typing import Dict, List, Optional


class MockTestError(Exception):
    """Base class for application errors."""


class NotFoundError(MockTestError):
    """A mock test, its questions or another requested record does not exist."""


class UnauthorizedError(MockTestError):
    """Missing or expired login; the caller must authenticate again."""


class ValidationFailure(MockTestError):
    """A payload failed validation.

    ``errors`` is a field-level list of ``{"field": ..., "message": ...}``.
    """

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None):
        self.errors = errors
        if message is None:
            message = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        super().__init__(message)


class TransportFailure(MockTestError):
    """Network or server error while talking to the API. Retry is allowed."""


class InvalidAnswerError(ValueError):
    """An option index outside the current question's options."""


class ForbiddenError(MockTestError):
    """Logged in, but not allowed to modify the target record."""
