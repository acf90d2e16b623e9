"""Request/response schemas for the JSON API.

Wire format uses camelCase keys (``mockTestId``, ``correctOption``...);
Python code uses the snake_case attribute names.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from mocktest.config import settings
from mocktest.models import Difficulty


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- Errors ---


class ErrorItem(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    errors: List[ErrorItem]


# --- Users ---


class UserCredentials(ApiModel):
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("username")
    @classmethod
    def _strip_username(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise ValueError("Username must be at least 3 characters.")
        return value


class UserRead(ApiModel):
    id: int
    username: str


# --- Courses ---


class CourseCreate(ApiModel):
    title: str = Field(..., min_length=1, max_length=settings.TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1, max_length=settings.TEXT_MAX_LENGTH)
    image_url: str = Field(..., min_length=1)
    duration: str = Field(..., min_length=1, max_length=50)
    price: int = Field(..., ge=0)
    featured: bool = False


class CourseRead(ApiModel):
    id: int
    title: str
    description: str
    image_url: str
    author_id: Optional[int] = None
    duration: str
    price: int
    featured: bool = False


# --- Mock tests ---


class MockTestCreate(ApiModel):
    title: str = Field(..., min_length=1, max_length=settings.TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1, max_length=settings.TEXT_MAX_LENGTH)
    duration_minutes: int = Field(
        ...,
        gt=0,
        validation_alias=AliasChoices("duration", "durationMinutes", "duration_minutes"),
        serialization_alias="duration",
    )
    total_questions: int = Field(..., ge=0)
    difficulty: Difficulty
    image_url: str = Field(..., min_length=1)
    featured: bool = False


class MockTestRead(ApiModel):
    id: int
    title: str
    description: str
    duration_minutes: int = Field(
        ...,
        validation_alias=AliasChoices("duration", "durationMinutes", "duration_minutes"),
        serialization_alias="duration",
    )
    total_questions: int
    difficulty: str
    image_url: str
    author_id: Optional[int] = None
    featured: bool = False


# --- Questions ---


class QuestionCreate(ApiModel):
    text: str = Field(..., min_length=1, max_length=settings.TEXT_MAX_LENGTH)
    options: List[str] = Field(
        ..., min_length=settings.MIN_OPTIONS, max_length=settings.MAX_OPTIONS
    )
    correct_option: int = Field(..., ge=0)
    explanation: str = Field(default="", max_length=settings.TEXT_MAX_LENGTH)

    @field_validator("options")
    @classmethod
    def _options_non_empty(cls, value: List[str]) -> List[str]:
        cleaned = [option.strip() for option in value]
        if any(not option for option in cleaned):
            raise ValueError("All options must be provided and non-empty.")
        if len({option.lower() for option in cleaned}) != len(cleaned):
            raise ValueError("All options must be unique.")
        return cleaned


class QuestionRead(ApiModel):
    """A question as served to quiz clients.

    ``correct_option`` and ``explanation`` are None when the answer key is
    withheld (HIDE_ANSWER_KEY).
    """

    id: int
    mock_test_id: int
    text: str
    options: List[str]
    correct_option: Optional[int] = None
    explanation: Optional[str] = None


# --- Test attempts ---


class AttemptCreate(ApiModel):
    """Completion payload posted by a quiz session.

    Either the claimed result (score, correctAnswers, totalQuestions) or
    ``selectedAnswers`` must be present. When both are sent the server checks
    the claim against its own grading.
    """

    mock_test_id: int
    user_id: Optional[int] = None
    score: Optional[int] = Field(default=None, ge=0, le=100)
    correct_answers: Optional[int] = Field(default=None, ge=0)
    total_questions: Optional[int] = Field(default=None, ge=1)
    completed_at: Optional[datetime] = None
    selected_answers: Optional[List[Optional[int]]] = None


class AttemptRead(ApiModel):
    id: int
    user_id: int
    mock_test_id: int
    score: int
    correct_answers: int
    total_questions: int
    completed_at: datetime
    selected_answers: Optional[List[Optional[int]]] = None


class ReviewRead(ApiModel):
    """Answer key and explanations, returned once the caller has an attempt."""

    mock_test: MockTestRead
    questions: List[QuestionRead]
    attempt: AttemptRead
