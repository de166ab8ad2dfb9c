"""Tests for session scoring and solve reward multipliers."""

import pytest

from interview_core.domain.question_state import QuestionState, QuestionStatus
from interview_core.domain.scoring import (
    Assistance,
    compute_reward,
    make_solved_count_scorer,
    reward_multiplier,
    solved_count_score,
)

pytestmark = pytest.mark.unit


def _state(question_id: str, status: QuestionStatus) -> QuestionState:
    state = QuestionState.from_template(question_id)
    state.status = status
    return state


def test_solved_count_score_counts_only_correct():
    states = [
        _state("q1", QuestionStatus.SOLVED_CORRECT),
        _state("q2", QuestionStatus.SOLVED_INCORRECT_REVIEWABLE),
        _state("q3", QuestionStatus.SKIPPED),
        _state("q4", QuestionStatus.SOLVED_CORRECT),
    ]

    assert solved_count_score(states) == 200


def test_scorer_factory_uses_configured_points():
    scorer = make_solved_count_scorer(points_per_question=50)

    assert scorer([_state("q1", QuestionStatus.SOLVED_CORRECT)]) == 50
    assert scorer([]) == 0


@pytest.mark.parametrize(
    "assistance,expected",
    [
        (Assistance(), 1.0),
        (Assistance(hints_used=2), 0.9),
        (Assistance(hints_used=1, approach_viewed=True), 0.75),
        (Assistance(approach_viewed=True, brute_force_viewed=True), 0.5),
        (Assistance(hints_used=3, approach_viewed=True, brute_force_viewed=True, solution_viewed=True), 0.25),
    ],
)
def test_multiplier_is_lowest_assistance_used(assistance, expected):
    assert reward_multiplier(assistance) == expected


def test_reward_rounds_half_up():
    # 10 * 0.25 = 2.5 -> 3
    assert compute_reward(10, Assistance(solution_viewed=True)) == 3
    # 15 * 0.9 = 13.5 -> 14
    assert compute_reward(15, Assistance(hints_used=1)) == 14
    assert compute_reward(100, Assistance()) == 100
