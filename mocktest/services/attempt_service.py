"""Test-attempt recorder: validates completion payloads and persists attempts."""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from mocktest.errors import NotFoundError, UnauthorizedError, ValidationFailure
from mocktest.models import Question, TestAttempt, User, utc_now
from mocktest.schemas import AttemptCreate
from mocktest.services.scoring import count_correct, percent_score
from mocktest.storage import Storage

logger = logging.getLogger(__name__)


def _to_utc(value: Optional[datetime]) -> datetime:
    """Aware UTC timestamp; a naive client value is taken to be UTC."""
    if value is None:
        return utc_now()
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _check_selected_answers(
    selected: List[Optional[int]], questions: List[Question]
) -> List[Dict[str, str]]:
    errors: List[Dict[str, str]] = []
    if len(selected) != len(questions):
        errors.append(
            {
                "field": "selectedAnswers",
                "message": f"Expected {len(questions)} answers, got {len(selected)}.",
            }
        )
        return errors
    for index, (answer, question) in enumerate(zip(selected, questions)):
        if answer is not None and not 0 <= answer < len(question.options):
            errors.append(
                {
                    "field": f"selectedAnswers.{index}",
                    "message": f"Option {answer} is out of range for question {question.id}.",
                }
            )
    return errors


def _check_claims(payload: AttemptCreate, total: int) -> List[Dict[str, str]]:
    """Validate a client-computed result that came without selected answers."""
    errors: List[Dict[str, str]] = []
    required = {
        "score": payload.score,
        "correctAnswers": payload.correct_answers,
        "totalQuestions": payload.total_questions,
    }
    for field, value in required.items():
        if value is None:
            errors.append({"field": field, "message": "Field required."})
    if errors:
        return errors

    if payload.correct_answers > payload.total_questions:
        errors.append(
            {
                "field": "correctAnswers",
                "message": "correctAnswers cannot exceed totalQuestions.",
            }
        )
    if payload.total_questions != total:
        errors.append(
            {
                "field": "totalQuestions",
                "message": f"Mock test has {total} questions.",
            }
        )
    if not errors and payload.score != percent_score(
        payload.correct_answers, payload.total_questions
    ):
        errors.append(
            {
                "field": "score",
                "message": "Score does not match correctAnswers/totalQuestions.",
            }
        )
    return errors


def record_attempt(storage: Storage, user: User, payload: AttemptCreate) -> TestAttempt:
    """Validate a completion payload and persist it as a new attempt.

    When ``selected_answers`` is present the result is regraded against the
    stored answer key and any claimed value must agree with it.

    Raises:
        UnauthorizedError: payload names a different user
        NotFoundError: unknown mock test
        ValidationFailure: field-level problems with the payload
    """
    if payload.user_id is not None and payload.user_id != user.id:
        logger.warning(
            "Rejected attempt for user %s posted by user %s", payload.user_id, user.id
        )
        raise UnauthorizedError("Not authenticated as the attempt's user")

    mock_test = storage.get_mock_test(payload.mock_test_id)
    if mock_test is None:
        raise NotFoundError(f"Mock test {payload.mock_test_id} not found")

    questions = storage.list_questions(mock_test.id)
    if not questions:
        raise ValidationFailure(
            [{"field": "mockTestId", "message": "Mock test has no questions."}]
        )
    total = len(questions)

    if payload.selected_answers is not None:
        errors = _check_selected_answers(payload.selected_answers, questions)
        if errors:
            raise ValidationFailure(errors)
        correct = count_correct(
            payload.selected_answers, [q.correct_option for q in questions]
        )
        score = percent_score(correct, total)
        claims = {
            "score": (payload.score, score),
            "correctAnswers": (payload.correct_answers, correct),
            "totalQuestions": (payload.total_questions, total),
        }
        errors = [
            {"field": field, "message": f"Expected {expected}, got {claimed}."}
            for field, (claimed, expected) in claims.items()
            if claimed is not None and claimed != expected
        ]
        if errors:
            logger.warning(
                "Attempt claim for mock test %s by user %s disagrees with grading: %s",
                mock_test.id,
                user.id,
                errors,
            )
            raise ValidationFailure(errors)
    else:
        errors = _check_claims(payload, total)
        if errors:
            raise ValidationFailure(errors)
        correct = payload.correct_answers
        score = payload.score

    attempt = storage.create_attempt(
        TestAttempt(
            user_id=user.id,
            mock_test_id=mock_test.id,
            score=score,
            correct_answers=correct,
            total_questions=total,
            completed_at=_to_utc(payload.completed_at),
            selected_answers=payload.selected_answers,
        )
    )
    logger.info(
        "Recorded attempt %s: user=%s mock_test=%s score=%s (%s/%s)",
        attempt.id,
        user.id,
        mock_test.id,
        score,
        correct,
        total,
        extra={"user_id": user.id, "mock_test_id": mock_test.id, "attempt_id": attempt.id},
    )
    return attempt
