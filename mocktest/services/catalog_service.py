"""Catalog operations: courses, mock tests, questions and the answer-key review."""

from typing import List, Optional, Tuple

from mocktest.errors import ForbiddenError, NotFoundError, ValidationFailure
from mocktest.models import Course, MockTest, Question, TestAttempt, User
from mocktest.schemas import CourseCreate, MockTestCreate, QuestionCreate, QuestionRead
from mocktest.storage import Storage
from mocktest.utils import sanitize_plain_text, sanitize_rich_text


def get_mock_test(storage: Storage, mock_test_id: int) -> MockTest:
    mock_test = storage.get_mock_test(mock_test_id)
    if mock_test is None:
        raise NotFoundError(f"Mock test {mock_test_id} not found")
    return mock_test


def create_course(storage: Storage, author: User, payload: CourseCreate) -> Course:
    title = sanitize_plain_text(payload.title)
    description = sanitize_plain_text(payload.description)
    errors = []
    if not title:
        errors.append({"field": "title", "message": "Title cannot be empty."})
    if not description:
        errors.append({"field": "description", "message": "Description cannot be empty."})
    if errors:
        raise ValidationFailure(errors)

    return storage.create_course(
        Course(
            title=title,
            description=description,
            image_url=payload.image_url.strip(),
            author_id=author.id,
            duration=sanitize_plain_text(payload.duration),
            price=payload.price,
            featured=payload.featured,
        )
    )


def create_mock_test(storage: Storage, author: User, payload: MockTestCreate) -> MockTest:
    title = sanitize_plain_text(payload.title)
    if not title:
        raise ValidationFailure([{"field": "title", "message": "Title cannot be empty."}])

    return storage.create_mock_test(
        MockTest(
            title=title,
            description=sanitize_plain_text(payload.description),
            duration_minutes=payload.duration_minutes,
            total_questions=payload.total_questions,
            difficulty=payload.difficulty.value,
            image_url=payload.image_url.strip(),
            author_id=author.id,
            featured=payload.featured,
        )
    )


def add_question(
    storage: Storage, author: User, mock_test_id: int, payload: QuestionCreate
) -> Question:
    """Append a question to a mock test owned by ``author``.

    Raises:
        NotFoundError: unknown mock test
        ForbiddenError: caller is not the test's author (tests without an author are closed)
        ValidationFailure: empty/duplicate options after sanitization or
            correct option out of bounds
    """
    mock_test = get_mock_test(storage, mock_test_id)
    if mock_test.author_id is None or mock_test.author_id != author.id:
        raise ForbiddenError("Only the test author can add questions")

    text = sanitize_rich_text(payload.text)
    options = [sanitize_rich_text(option) for option in payload.options]
    errors = []
    if not text:
        errors.append({"field": "text", "message": "Question text cannot be empty."})
    if any(not option for option in options):
        errors.append(
            {"field": "options", "message": "All options must be provided and non-empty."}
        )
    elif len({option.lower() for option in options}) != len(options):
        errors.append({"field": "options", "message": "All options must be unique."})
    if not 0 <= payload.correct_option < len(options):
        errors.append(
            {
                "field": "correctOption",
                "message": f"Correct option must be between 0 and {len(options) - 1}.",
            }
        )
    if errors:
        raise ValidationFailure(errors)

    return storage.create_question(
        Question(
            mock_test_id=mock_test.id,
            text=text,
            options=options,
            correct_option=payload.correct_option,
            explanation=sanitize_rich_text(payload.explanation),
        )
    )


def question_payload(questions: List[Question], include_key: bool) -> List[QuestionRead]:
    """Serialize questions for quiz clients, optionally withholding the answer key."""
    served = []
    for question in questions:
        item = QuestionRead.model_validate(question)
        if not include_key:
            item = item.model_copy(update={"correct_option": None, "explanation": None})
        served.append(item)
    return served


def get_review(
    storage: Storage, user: User, mock_test_id: int
) -> Tuple[MockTest, List[Question], TestAttempt]:
    """Answer key plus the caller's latest attempt; NotFoundError without one."""
    mock_test = get_mock_test(storage, mock_test_id)
    attempt: Optional[TestAttempt] = storage.latest_attempt(user.id, mock_test.id)
    if attempt is None:
        raise NotFoundError("No completed attempt for this mock test")
    return mock_test, storage.list_questions(mock_test.id), attempt
