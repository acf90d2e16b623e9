"""Quiz session engine: one timed attempt at a mock test, driven on an asyncio loop."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Tuple

from mocktest.config import settings
from mocktest.errors import (
    InvalidAnswerError,
    MockTestError,
    NotFoundError,
    TransportFailure,
    UnauthorizedError,
)
from mocktest.quiz.ports import AnswerKeyStore, AttemptRecorder
from mocktest.schemas import AttemptCreate, AttemptRead, MockTestRead, QuestionRead
from mocktest.services.scoring import count_correct, percent_score

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    NOT_FOUND = "not_found"
    ERROR = "error"


TERMINAL_STATES = frozenset({SessionState.COMPLETED, SessionState.NOT_FOUND, SessionState.ERROR})


@dataclass(frozen=True)
class Notice:
    """A user-visible message (toast)."""

    title: str
    description: str
    variant: str = "default"  # "default" | "destructive"


def format_time(seconds: Optional[int]) -> str:
    """Countdown text, ``M:SS``; ``--:--`` before the timer starts."""
    if seconds is None:
        return "--:--"
    minutes, remainder = divmod(max(seconds, 0), 60)
    return f"{minutes}:{remainder:02d}"


class QuizSession:
    """State machine for a single quiz-taking session.

    LOADING -> IN_PROGRESS | NOT_FOUND | ERROR
    IN_PROGRESS -> SUBMITTING (manual submit when complete, or timeout)
    SUBMITTING -> COMPLETED | IN_PROGRESS (transport failure) | ERROR

    All mutation happens on the event loop that runs the session, so the
    submission latch needs no lock: it is checked and set before the first
    await of a submission. Unanswered questions hold ``None``.
    """

    def __init__(
        self,
        mock_test_id: int,
        answer_keys: AnswerKeyStore,
        recorder: AttemptRecorder,
        *,
        user_id: Optional[int] = None,
        tick_interval: Optional[float] = None,
        max_submit_attempts: Optional[int] = None,
        autostart_timer: bool = True,
        on_notice: Optional[Callable[[Notice], None]] = None,
    ) -> None:
        self.mock_test_id = mock_test_id
        self.user_id = user_id
        self._answer_keys = answer_keys
        self._recorder = recorder
        self.tick_interval = (
            settings.QUIZ_TICK_SECONDS if tick_interval is None else tick_interval
        )
        self.max_submit_attempts = (
            settings.QUIZ_MAX_SUBMIT_ATTEMPTS
            if max_submit_attempts is None
            else max_submit_attempts
        )
        if self.max_submit_attempts < 1:
            raise ValueError("max_submit_attempts must be at least 1")
        self.autostart_timer = autostart_timer
        self._on_notice = on_notice

        self.state = SessionState.LOADING
        self.test: Optional[MockTestRead] = None
        self._questions: Tuple[QuestionRead, ...] = ()
        self._selected: List[Optional[int]] = []
        self.current_index = 0
        self.remaining_seconds: Optional[int] = None
        self.attempt: Optional[AttemptRead] = None
        self.error: Optional[MockTestError] = None
        self.requires_login = False
        self.notices: List[Notice] = []

        self._submitting = False
        self._timeout_fired = False
        self._submit_failures = 0
        self._closed = False
        self._timer_task: Optional[asyncio.Task] = None

    # --- read-only views ---

    @property
    def questions(self) -> Tuple[QuestionRead, ...]:
        return self._questions

    @property
    def question_count(self) -> int:
        return len(self._questions)

    @property
    def selected_answers(self) -> Tuple[Optional[int], ...]:
        return tuple(self._selected)

    @property
    def current_question(self) -> Optional[QuestionRead]:
        if not self._questions:
            return None
        return self._questions[self.current_index]

    @property
    def completed(self) -> bool:
        return self.state is SessionState.COMPLETED

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def is_last_question(self) -> bool:
        return self.current_index == len(self._questions) - 1

    @property
    def all_answered(self) -> bool:
        return bool(self._selected) and all(a is not None for a in self._selected)

    @property
    def time_expired(self) -> bool:
        return self.remaining_seconds == 0

    @property
    def has_answer_key(self) -> bool:
        return all(q.correct_option is not None for q in self._questions)

    @property
    def progress(self) -> float:
        """Fraction of the test reached, for a progress bar."""
        if not self._questions:
            return 0.0
        return (self.current_index + 1) / len(self._questions)

    @property
    def time_display(self) -> str:
        return format_time(self.remaining_seconds)

    @property
    def timer_running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    def correct_answers(self) -> int:
        """Correct answers so far against the fetched key (None counts as wrong)."""
        return count_correct(self._selected, [q.correct_option for q in self._questions])

    def score(self) -> int:
        return percent_score(self.correct_answers(), len(self._questions))

    # --- lifecycle ---

    async def load(self) -> SessionState:
        """Fetch the test and all of its questions, then start the countdown."""
        if self.state is not SessionState.LOADING:
            raise RuntimeError(f"Session already loaded (state={self.state.value})")

        try:
            test = await self._answer_keys.get_test(self.mock_test_id)
            questions = await self._answer_keys.get_questions(self.mock_test_id)
        except NotFoundError as exc:
            self._fail_not_found(exc)
            return self.state
        except UnauthorizedError as exc:
            self.requires_login = True
            self._fail(exc, Notice("Sign in required", "Please log in to take this test.", "destructive"))
            return self.state
        except TransportFailure as exc:
            self._fail(exc, Notice("Error", "Failed to load the test.", "destructive"))
            return self.state

        if test is None or not questions:
            self._fail_not_found(NotFoundError(f"Mock test {self.mock_test_id} has no questions"))
            return self.state

        if self._closed:
            logger.debug("Session for mock test %s closed while loading", self.mock_test_id)
            return self.state

        if test.total_questions != len(questions):
            logger.info(
                "Mock test %s declares %s questions but serves %s; using the served count",
                test.id,
                test.total_questions,
                len(questions),
            )

        self.test = test
        self._questions = tuple(questions)
        self._selected = [None] * len(questions)
        self.current_index = 0
        self.remaining_seconds = test.duration_minutes * 60
        self._set_state(SessionState.IN_PROGRESS)

        if self.autostart_timer:
            self.start_timer()
        return self.state

    async def close(self) -> None:
        """Discard the session. Nothing is recorded for an unfinished session."""
        if self._closed:
            return
        self._closed = True
        if not self.is_terminal:
            logger.info(
                "Quiz session for mock test %s abandoned in state %s",
                self.mock_test_id,
                self.state.value,
            )
        await self._cancel_timer()

    # --- answers and navigation ---

    def select_answer(self, option_index: int) -> bool:
        """Record an answer for the current question; last write wins.

        Returns False when the session does not accept answers (not started,
        submitting, finished or closed).
        """
        if self.state is not SessionState.IN_PROGRESS or self._closed:
            return False

        question = self._questions[self.current_index]
        if (
            isinstance(option_index, bool)
            or not isinstance(option_index, int)
            or not 0 <= option_index < len(question.options)
        ):
            raise InvalidAnswerError(
                f"Option {option_index!r} out of range for question {question.id} "
                f"({len(question.options)} options)"
            )
        self._selected[self.current_index] = option_index
        return True

    def go_to_next(self) -> bool:
        """Advance one question. Requires an answer; the last question has no next."""
        if self.state is not SessionState.IN_PROGRESS or self._closed:
            return False
        if self._selected[self.current_index] is None or self.is_last_question:
            return False
        self.current_index += 1
        return True

    def go_to_previous(self) -> bool:
        if self.state is not SessionState.IN_PROGRESS or self._closed:
            return False
        if self.current_index == 0:
            return False
        self.current_index -= 1
        return True

    # --- timer ---

    def start_timer(self) -> None:
        """Start the countdown task on the running loop (no-op if already running)."""
        if self.timer_running or self.state is not SessionState.IN_PROGRESS or self._closed:
            return
        self._timer_task = asyncio.get_running_loop().create_task(
            self._run_timer(), name=f"quiz-timer-{self.mock_test_id}"
        )

    async def _run_timer(self) -> None:
        while (
            not self._closed
            and not self.is_terminal
            and self.remaining_seconds is not None
            and self.remaining_seconds > 0
        ):
            await asyncio.sleep(self.tick_interval)
            await self.tick()

    async def tick(self) -> None:
        """Advance the countdown by one second; submit automatically at zero."""
        if self.remaining_seconds is None or self.is_terminal or self._closed:
            return
        if self.remaining_seconds > 0:
            self.remaining_seconds -= 1
        if self.remaining_seconds == 0 and not self._timeout_fired:
            self._timeout_fired = True
            logger.info("Time is up for mock test %s, submitting", self.mock_test_id)
            await self._submit()

    async def _cancel_timer(self) -> None:
        task, self._timer_task = self._timer_task, None
        if task is None or task.done():
            return
        if task is asyncio.current_task():
            # Called from inside a tick; the loop condition ends the task
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # --- submission ---

    async def submit(self) -> Optional[AttemptRead]:
        """Manual submission.

        Allowed once every question is answered, or after time ran out (retry
        of a failed automatic submission). Returns the recorded attempt, or
        None when the call was refused, ignored or failed.
        """
        if self.state is not SessionState.IN_PROGRESS or self._closed:
            return None
        if not self.all_answered and not self.time_expired:
            logger.debug("Submit refused: %s unanswered", self._selected.count(None))
            return None
        return await self._submit()

    async def _submit(self) -> Optional[AttemptRead]:
        # Latch: checked and set with no await in between
        if self._submitting or self.state is not SessionState.IN_PROGRESS:
            return None
        self._submitting = True
        self._set_state(SessionState.SUBMITTING)

        submission = self._build_submission()
        try:
            attempt = await self._recorder.create_attempt(submission)
        except TransportFailure as exc:
            await self._submission_failed(exc)
            return None
        except UnauthorizedError as exc:
            self.requires_login = True
            self._submitting = False
            self._fail(exc, Notice("Sign in required", "Your session has expired. Please log in again.", "destructive"))
            await self._cancel_timer()
            return None
        except MockTestError as exc:
            self._submitting = False
            self._fail(exc, Notice("Error", f"Test results were rejected: {exc}", "destructive"))
            await self._cancel_timer()
            return None
        except Exception as exc:
            logger.exception(
                "Recorder raised an unexpected error for mock test %s", self.mock_test_id
            )
            failure = TransportFailure(f"Unexpected error while submitting: {exc!r}")
            failure.__cause__ = exc
            await self._submission_failed(failure)
            return None

        self.attempt = attempt
        self._set_state(SessionState.COMPLETED)
        await self._cancel_timer()
        self._notify(
            Notice(
                "Test Completed!",
                f"You scored {attempt.score}% "
                f"({attempt.correct_answers}/{attempt.total_questions} correct)",
            )
        )
        return attempt

    def _build_submission(self) -> AttemptCreate:
        selected = list(self._selected)
        total = len(self._questions)
        if self.has_answer_key:
            correct = self.correct_answers()
            score: Optional[int] = percent_score(correct, total)
        else:
            # Key withheld: the server grades selectedAnswers
            correct = None
            score = None
        return AttemptCreate(
            mock_test_id=self.mock_test_id,
            user_id=self.user_id,
            score=score,
            correct_answers=correct,
            total_questions=total,
            completed_at=datetime.now(timezone.utc),
            selected_answers=selected,
        )

    async def _submission_failed(self, exc: TransportFailure) -> None:
        self._submit_failures += 1
        self._submitting = False
        logger.warning(
            "Submitting mock test %s failed (%s/%s): %s",
            self.mock_test_id,
            self._submit_failures,
            self.max_submit_attempts,
            exc,
        )
        if self._submit_failures >= self.max_submit_attempts:
            self._fail(
                exc,
                Notice(
                    "Error",
                    "Failed to submit test results after several attempts.",
                    "destructive",
                ),
            )
            await self._cancel_timer()
            return

        self._set_state(SessionState.IN_PROGRESS)
        description = "Failed to submit test results"
        if self.time_expired:
            description += ". Time is up, please submit again."
        self._notify(Notice("Error", description, "destructive"))

    # --- helpers ---

    def _set_state(self, state: SessionState) -> None:
        if state is self.state:
            return
        logger.info(
            "Quiz session %s: %s -> %s",
            self.mock_test_id,
            self.state.value,
            state.value,
            extra={"mock_test_id": self.mock_test_id, "state": state.value},
        )
        self.state = state

    def _notify(self, notice: Notice) -> None:
        self.notices.append(notice)
        if self._on_notice is not None:
            self._on_notice(notice)

    def _fail_not_found(self, exc: NotFoundError) -> None:
        self.error = exc
        self._set_state(SessionState.NOT_FOUND)
        self._notify(Notice("Test not found", str(exc), "destructive"))

    def _fail(self, exc: MockTestError, notice: Notice) -> None:
        self.error = exc
        self._set_state(SessionState.ERROR)
        self._notify(notice)
