"""SQLModel models for the Mock Test Learning Platform."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class User(SQLModel, table=True):
    """Application user that can log in, author content and take mock tests."""

    __table_args__ = (UniqueConstraint("username", name="uq_user_username"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str
    password_hash: str
    created_at: datetime = Field(default_factory=utc_now)


class Course(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str
    image_url: str
    author_id: Optional[int] = Field(default=None, foreign_key="user.id")
    duration: str  # free text, e.g. "10 weeks"
    price: int
    featured: bool = Field(default=False)


class MockTest(SQLModel, table=True):
    """A timed multiple-choice test.

    ``total_questions`` is the declared count shown in the catalog. It is not
    reconciled with the stored questions; the fetched question list is what
    sessions and the attempt recorder trust.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str
    duration_minutes: int
    total_questions: int
    difficulty: str = Field(default=Difficulty.BEGINNER.value)
    image_url: str
    author_id: Optional[int] = Field(default=None, foreign_key="user.id")
    featured: bool = Field(default=False)


class Question(SQLModel, table=True):
    """A question owned by exactly one mock test. Never edited after creation."""

    id: Optional[int] = Field(default=None, primary_key=True)
    mock_test_id: int = Field(foreign_key="mocktest.id", index=True)
    text: str
    options: List[str] = Field(sa_column=Column(JSON, nullable=False))
    correct_option: int  # 0-based index into options
    explanation: str


class TestAttempt(SQLModel, table=True):
    """Terminal record of a completed quiz session. Append-only."""

    __test__ = False  # not a pytest test class

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    mock_test_id: int = Field(foreign_key="mocktest.id", index=True)
    score: int
    correct_answers: int
    total_questions: int
    completed_at: datetime
    # Submitted answers when the client sends them; None marks an unanswered question
    selected_answers: Optional[List[Optional[int]]] = Field(
        default=None, sa_column=Column(JSON, nullable=True)
    )
