"""
Collaborators of the quiz session engine.

The engine only talks to these interfaces; ``MockTestApiClient`` implements
both over HTTP, tests use in-memory fakes.
"""

from abc import ABC, abstractmethod
from typing import List

from mocktest.schemas import AttemptCreate, AttemptRead, MockTestRead, QuestionRead


class AnswerKeyStore(ABC):
    """Source of mock test metadata and its ordered questions."""

    @abstractmethod
    async def get_test(self, mock_test_id: int) -> MockTestRead:
        """Raises NotFoundError for an unknown test."""
        pass

    @abstractmethod
    async def get_questions(self, mock_test_id: int) -> List[QuestionRead]:
        """Raises UnauthorizedError before returning anything to anonymous callers."""
        pass


class AttemptRecorder(ABC):
    """Sink for the terminal artifact of a completed session."""

    @abstractmethod
    async def create_attempt(self, submission: AttemptCreate) -> AttemptRead:
        """Persist one attempt.

        Raises TransportFailure on network/server errors (retry allowed),
        UnauthorizedError, ValidationFailure or NotFoundError otherwise.
        """
        pass
