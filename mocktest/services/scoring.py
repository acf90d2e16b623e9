"""Score computation shared by the quiz session engine and the attempt recorder."""

from typing import Optional, Sequence


def percent_score(correct_answers: int, total_questions: int) -> int:
    """Return ``round(correct / total * 100)`` with halves rounded up.

    Integer arithmetic avoids float ties: 1/8 -> 13, 1/3 -> 33, 37/50 -> 74.
    """
    if total_questions <= 0:
        raise ValueError("total_questions must be positive")
    if not 0 <= correct_answers <= total_questions:
        raise ValueError(
            f"correct_answers {correct_answers} out of range [0, {total_questions}]"
        )
    return (200 * correct_answers + total_questions) // (2 * total_questions)


def count_correct(
    selected_answers: Sequence[Optional[int]], correct_options: Sequence[int]
) -> int:
    """Count positions where the selected option equals the correct one.

    Unanswered entries (None) never match.
    """
    if len(selected_answers) != len(correct_options):
        raise ValueError(
            f"Expected {len(correct_options)} answers, got {len(selected_answers)}"
        )
    return sum(
        1
        for selected, correct in zip(selected_answers, correct_options)
        if selected is not None and selected == correct
    )
