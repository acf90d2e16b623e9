"""
Quiz session engine tests.

Sessions are driven with in-memory collaborators. Most tests disable the
background timer and call ``tick()`` directly to control time.
"""

import asyncio

import pytest
from quiz_fakes import FakeAnswerKeyStore, FakeRecorder, make_questions, make_test

from mocktest.errors import (
    InvalidAnswerError,
    TransportFailure,
    UnauthorizedError,
    ValidationFailure,
)
from mocktest.quiz.session import QuizSession, SessionState, format_time

FIVE_KEY = [0, 1, 1, 0, 3]


def run(coro):
    return asyncio.run(coro)


async def start_session(
    correct_options=FIVE_KEY,
    duration_minutes=30,
    recorder=None,
    with_key=True,
    total_questions=None,
    **kwargs,
):
    store = FakeAnswerKeyStore(
        test=make_test(
            duration_minutes=duration_minutes,
            total_questions=len(correct_options) if total_questions is None else total_questions,
        ),
        questions=make_questions(correct_options, with_key=with_key),
    )
    recorder = recorder or FakeRecorder(key=list(correct_options))
    kwargs.setdefault("autostart_timer", False)
    session = QuizSession(1, store, recorder, **kwargs)
    await session.load()
    return session, recorder


def answer_all(session, answers):
    for index, option in enumerate(answers):
        assert session.select_answer(option)
        if index < len(answers) - 1:
            assert session.go_to_next()


# ============================================================================
# LOADING
# ============================================================================


def test_load_initializes_unanswered_session():
    async def scenario():
        session, _ = await start_session()
        assert session.state is SessionState.IN_PROGRESS
        assert session.question_count == 5
        assert session.selected_answers == (None,) * 5
        assert session.current_index == 0
        assert session.remaining_seconds == 30 * 60
        assert session.time_display == "30:00"
        assert session.progress == pytest.approx(0.2)

    run(scenario())


def test_load_unknown_test_is_not_found():
    async def scenario():
        session = QuizSession(99, FakeAnswerKeyStore(), FakeRecorder(), autostart_timer=False)
        assert await session.load() is SessionState.NOT_FOUND
        assert session.questions == ()
        assert session.notices[-1].variant == "destructive"

    run(scenario())


def test_load_test_without_questions_is_not_found():
    async def scenario():
        store = FakeAnswerKeyStore(test=make_test(), questions=[])
        session = QuizSession(1, store, FakeRecorder(), autostart_timer=False)
        assert await session.load() is SessionState.NOT_FOUND
        assert session.remaining_seconds is None

    run(scenario())


def test_load_without_login_requires_login():
    async def scenario():
        store = FakeAnswerKeyStore(error=UnauthorizedError("Not authenticated"))
        session = QuizSession(1, store, FakeRecorder(), autostart_timer=False)
        assert await session.load() is SessionState.ERROR
        assert session.requires_login
        assert session.questions == ()

    run(scenario())


def test_load_transport_failure_is_error():
    async def scenario():
        store = FakeAnswerKeyStore(error=TransportFailure("connection refused"))
        session = QuizSession(1, store, FakeRecorder(), autostart_timer=False)
        assert await session.load() is SessionState.ERROR
        assert not session.requires_login

    run(scenario())


def test_load_twice_is_rejected():
    async def scenario():
        session, _ = await start_session()
        with pytest.raises(RuntimeError):
            await session.load()

    run(scenario())


def test_fetched_question_count_wins_over_declared_total():
    async def scenario():
        session, recorder = await start_session([1, 2], total_questions=10)
        assert session.question_count == 2
        answer_all(session, [1, 0])
        attempt = await session.submit()
        assert attempt.total_questions == 2
        assert attempt.score == 50
        assert recorder.submissions[0].total_questions == 2

    run(scenario())


# ============================================================================
# ANSWERS AND NAVIGATION
# ============================================================================


def test_select_answer_only_touches_current_question():
    async def scenario():
        session, _ = await start_session()
        assert session.select_answer(2)
        assert session.selected_answers == (2, None, None, None, None)
        assert session.go_to_next()
        assert session.select_answer(0)
        assert session.selected_answers == (2, 0, None, None, None)

    run(scenario())


def test_select_answer_last_write_wins():
    async def scenario():
        session, _ = await start_session()
        session.select_answer(1)
        session.select_answer(3)
        assert session.selected_answers[0] == 3

    run(scenario())


@pytest.mark.parametrize("option", [4, -1, True, "1"])
def test_select_answer_rejects_invalid_option(option):
    async def scenario():
        session, _ = await start_session()
        with pytest.raises(InvalidAnswerError):
            session.select_answer(option)
        assert session.selected_answers == (None,) * 5

    run(scenario())


def test_go_to_next_requires_an_answer():
    async def scenario():
        session, _ = await start_session()
        assert not session.go_to_next()
        assert session.current_index == 0
        session.select_answer(0)
        assert session.go_to_next()
        assert session.current_index == 1

    run(scenario())


def test_go_to_previous_keeps_answers():
    async def scenario():
        session, _ = await start_session()
        assert not session.go_to_previous()
        session.select_answer(0)
        session.go_to_next()
        session.select_answer(1)
        assert session.go_to_previous()
        assert session.current_index == 0
        assert session.selected_answers[:2] == (0, 1)

    run(scenario())


def test_no_next_after_last_question():
    async def scenario():
        session, _ = await start_session([0, 1])
        answer_all(session, [0, 1])
        assert session.is_last_question
        assert not session.go_to_next()
        assert session.current_index == 1

    run(scenario())


# ============================================================================
# SUBMISSION
# ============================================================================


def test_submit_refused_until_all_answered():
    async def scenario():
        session, recorder = await start_session()
        session.select_answer(0)
        assert await session.submit() is None
        assert session.state is SessionState.IN_PROGRESS
        assert recorder.calls == 0

    run(scenario())


def test_five_question_attempt_scores_sixty():
    received = []

    async def scenario():
        session, recorder = await start_session(on_notice=received.append)
        answer_all(session, [0, 1, 2, 1, 3])
        assert session.correct_answers() == 3
        attempt = await session.submit()

        assert session.state is SessionState.COMPLETED
        assert session.completed
        assert attempt.correct_answers == 3
        assert attempt.total_questions == 5
        assert attempt.score == 60

        submission = recorder.submissions[0]
        assert submission.score == 60
        assert submission.correct_answers == 3
        assert submission.selected_answers == [0, 1, 2, 1, 3]
        assert submission.completed_at.tzinfo is not None

    run(scenario())
    assert received[-1].title == "Test Completed!"
    assert "60%" in received[-1].description
    assert "3/5" in received[-1].description


def test_one_wrong_answer_out_of_five_scores_eighty():
    async def scenario():
        session, _ = await start_session()
        answer_all(session, [0, 1, 2, 0, 3])
        attempt = await session.submit()
        assert attempt.correct_answers == 4
        assert attempt.score == 80

    run(scenario())


def test_completed_session_is_frozen():
    async def scenario():
        session, recorder = await start_session([0])
        session.select_answer(0)
        await session.submit()
        assert not session.select_answer(1)
        assert session.selected_answers == (0,)
        assert await session.submit() is None
        await session.tick()
        assert recorder.calls == 1

    run(scenario())


def test_concurrent_submits_record_once():
    async def scenario():
        recorder = FakeRecorder(key=[0, 1])
        gate = recorder.block()
        session, _ = await start_session([0, 1], recorder=recorder)
        answer_all(session, [0, 1])

        first = asyncio.create_task(session.submit())
        second = asyncio.create_task(session.submit())
        await asyncio.sleep(0)
        assert session.state is SessionState.SUBMITTING
        gate.set()
        results = await asyncio.gather(first, second)

        assert [r is not None for r in results].count(True) == 1
        assert recorder.calls == 1
        assert session.state is SessionState.COMPLETED

    run(scenario())


def test_answers_ignored_while_submitting():
    async def scenario():
        recorder = FakeRecorder(key=[0])
        gate = recorder.block()
        session, _ = await start_session([0], recorder=recorder)
        session.select_answer(0)
        task = asyncio.create_task(session.submit())
        await asyncio.sleep(0)

        assert not session.select_answer(1)
        assert not session.go_to_previous()
        gate.set()
        await task
        assert recorder.submissions[0].selected_answers == [0]

    run(scenario())


def test_timeout_during_manual_submit_does_not_record_twice():
    async def scenario():
        recorder = FakeRecorder(key=[0])
        gate = recorder.block()
        session, _ = await start_session([0], duration_minutes=1, recorder=recorder)
        for _ in range(59):
            await session.tick()
        session.select_answer(0)

        task = asyncio.create_task(session.submit())
        await asyncio.sleep(0)
        await session.tick()
        assert session.remaining_seconds == 0

        gate.set()
        await task
        assert recorder.calls == 1
        assert session.state is SessionState.COMPLETED

    run(scenario())


def test_transport_failure_allows_retry():
    async def scenario():
        recorder = FakeRecorder(fail_times=1, key=[0, 1])
        session, _ = await start_session([0, 1], recorder=recorder)
        answer_all(session, [0, 1])

        assert await session.submit() is None
        assert session.state is SessionState.IN_PROGRESS
        assert session.notices[-1].variant == "destructive"
        assert session.selected_answers == (0, 1)

        attempt = await session.submit()
        assert attempt is not None
        assert attempt.score == 100
        assert recorder.calls == 2
        assert len(recorder.submissions) == 1

    run(scenario())


def test_repeated_transport_failures_end_in_error():
    async def scenario():
        recorder = FakeRecorder(fail_times=5, key=[0])
        session, _ = await start_session([0], recorder=recorder, max_submit_attempts=2)
        session.select_answer(0)

        await session.submit()
        assert session.state is SessionState.IN_PROGRESS
        await session.submit()
        assert session.state is SessionState.ERROR
        assert await session.submit() is None
        assert recorder.calls == 2

    run(scenario())


def test_unexpected_recorder_error_releases_latch():
    async def scenario():
        recorder = FakeRecorder(error=ValueError("malformed response"), key=[0, 1])
        session, _ = await start_session([0, 1], recorder=recorder)
        answer_all(session, [0, 1])

        assert await session.submit() is None
        assert session.state is SessionState.IN_PROGRESS
        assert not session.completed
        assert session.notices[-1].variant == "destructive"

        recorder.error = None
        attempt = await session.submit()
        assert attempt is not None
        assert session.state is SessionState.COMPLETED
        assert len(recorder.submissions) == 1

    run(scenario())


def test_unexpected_recorder_error_counts_toward_attempt_limit():
    async def scenario():
        recorder = FakeRecorder(error=RuntimeError("recorder bug"), key=[0])
        session, _ = await start_session([0], recorder=recorder, max_submit_attempts=1)
        session.select_answer(0)
        await session.submit()
        assert session.state is SessionState.ERROR
        assert isinstance(session.error, TransportFailure)

    run(scenario())


def test_explicit_attempt_limit_is_honoured():
    async def scenario():
        recorder = FakeRecorder(fail_times=5, key=[0])
        session, _ = await start_session([0], recorder=recorder, max_submit_attempts=1)
        session.select_answer(0)
        await session.submit()
        assert session.state is SessionState.ERROR
        assert recorder.calls == 1

    run(scenario())


@pytest.mark.parametrize("limit", [0, -1])
def test_attempt_limit_must_be_positive(limit):
    with pytest.raises(ValueError):
        QuizSession(1, FakeAnswerKeyStore(), FakeRecorder(), max_submit_attempts=limit)


def test_rejected_submission_is_error():
    async def scenario():
        recorder = FakeRecorder(
            error=ValidationFailure([{"field": "score", "message": "Expected 0, got 100."}])
        )
        session, _ = await start_session([0], recorder=recorder)
        session.select_answer(0)
        assert await session.submit() is None
        assert session.state is SessionState.ERROR
        assert isinstance(session.error, ValidationFailure)

    run(scenario())


def test_expired_login_on_submit_requires_login():
    async def scenario():
        recorder = FakeRecorder(error=UnauthorizedError("Not authenticated"))
        session, _ = await start_session([0], recorder=recorder)
        session.select_answer(0)
        await session.submit()
        assert session.state is SessionState.ERROR
        assert session.requires_login

    run(scenario())


def test_hidden_answer_key_sends_selected_answers_only():
    async def scenario():
        session, recorder = await start_session(FIVE_KEY, with_key=False)
        assert not session.has_answer_key
        answer_all(session, [0, 1, 2, 1, 3])
        attempt = await session.submit()

        submission = recorder.submissions[0]
        assert submission.score is None
        assert submission.correct_answers is None
        assert submission.selected_answers == [0, 1, 2, 1, 3]
        assert attempt.score == 60

    run(scenario())


# ============================================================================
# TIMER
# ============================================================================


def test_timeout_submits_unanswered_test():
    async def scenario():
        session, recorder = await start_session([2], duration_minutes=1)
        for _ in range(59):
            await session.tick()
        assert session.time_display == "0:01"
        assert recorder.calls == 0

        await session.tick()
        assert session.state is SessionState.COMPLETED
        submission = recorder.submissions[0]
        assert submission.correct_answers == 0
        assert submission.score == 0
        assert submission.total_questions == 1
        assert submission.selected_answers == [None]

    run(scenario())


def test_timeout_with_partial_answers():
    async def scenario():
        session, recorder = await start_session(FIVE_KEY, duration_minutes=1)
        session.select_answer(0)
        session.go_to_next()
        session.select_answer(1)
        for _ in range(60):
            await session.tick()
        assert recorder.submissions[0].correct_answers == 2
        assert session.attempt.score == 40

    run(scenario())


def test_failed_timeout_submit_can_be_retried_manually():
    async def scenario():
        recorder = FakeRecorder(fail_times=1, key=FIVE_KEY)
        session, _ = await start_session(FIVE_KEY, duration_minutes=1, recorder=recorder)
        for _ in range(60):
            await session.tick()

        assert session.state is SessionState.IN_PROGRESS
        assert session.time_expired
        assert "Time is up" in session.notices[-1].description

        # More ticks do not fire the timeout again
        await session.tick()
        assert recorder.calls == 1

        attempt = await session.submit()
        assert attempt is not None
        assert attempt.score == 0
        assert session.remaining_seconds == 0

    run(scenario())


def test_background_timer_survives_unexpected_recorder_error():
    async def scenario():
        recorder = FakeRecorder(error=ValueError("not json"), key=[1])
        session, _ = await start_session(
            [1], duration_minutes=1, recorder=recorder, autostart_timer=True, tick_interval=0.001
        )
        timer = session._timer_task

        for _ in range(1000):
            if timer.done():
                break
            await asyncio.sleep(0.005)

        assert timer.done()
        assert timer.exception() is None
        assert session.state is SessionState.IN_PROGRESS
        assert session.time_expired

        recorder.error = None
        assert await session.submit() is not None

    run(scenario())


def test_background_timer_auto_submits():
    async def scenario():
        session, recorder = await start_session(
            [1], duration_minutes=1, autostart_timer=True, tick_interval=0.001
        )
        assert session.timer_running

        for _ in range(1000):
            if session.is_terminal:
                break
            await asyncio.sleep(0.005)

        assert session.state is SessionState.COMPLETED
        assert session.remaining_seconds == 0
        assert recorder.calls == 1
        await asyncio.sleep(0.01)
        assert not session.timer_running

    run(scenario())


def test_close_cancels_timer_without_recording():
    async def scenario():
        session, recorder = await start_session(autostart_timer=True, tick_interval=0.001)
        assert session.timer_running
        await asyncio.sleep(0.01)

        await session.close()
        assert not session.timer_running
        remaining = session.remaining_seconds
        await asyncio.sleep(0.01)

        assert session.remaining_seconds == remaining
        assert not session.select_answer(0)
        assert recorder.calls == 0

    run(scenario())


def test_manual_submit_stops_timer():
    async def scenario():
        session, _ = await start_session([0], autostart_timer=True, tick_interval=0.01)
        session.select_answer(0)
        await session.submit()
        assert not session.timer_running
        remaining = session.remaining_seconds
        await asyncio.sleep(0.03)
        assert session.remaining_seconds == remaining

    run(scenario())


@pytest.mark.parametrize(
    "seconds,expected",
    [(None, "--:--"), (0, "0:00"), (65, "1:05"), (1800, "30:00"), (-3, "0:00")],
)
def test_format_time(seconds, expected):
    assert format_time(seconds) == expected
