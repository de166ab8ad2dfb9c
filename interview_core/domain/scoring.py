"""Score aggregation for sessions and reward multipliers for solves.

Pure functions, no I/O.
"""

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import partial

from interview_core.domain.question_state import QuestionState

SessionScorer = Callable[[Iterable[QuestionState]], int]

# Multipliers by most generous assistance viewed
NO_ASSISTANCE = 1.0
HINTS_ONLY = 0.9
APPROACH_VIEWED = 0.75
BRUTE_FORCE_VIEWED = 0.5
SOLUTION_VIEWED = 0.25


def solved_count_score(states: Iterable[QuestionState], points_per_question: int = 100) -> int:
    """Flat points for every correctly solved question."""
    return sum(points_per_question for s in states if s.is_solved)


def make_solved_count_scorer(points_per_question: int) -> SessionScorer:
    return partial(solved_count_score, points_per_question=points_per_question)


@dataclass(frozen=True)
class Assistance:
    """What the user looked at before marking a question solved."""

    hints_used: int = 0
    approach_viewed: bool = False
    brute_force_viewed: bool = False
    solution_viewed: bool = False


def reward_multiplier(assistance: Assistance) -> float:
    """Lowest multiplier among the kinds of assistance used."""
    if assistance.solution_viewed:
        return SOLUTION_VIEWED
    if assistance.brute_force_viewed:
        return BRUTE_FORCE_VIEWED
    if assistance.approach_viewed:
        return APPROACH_VIEWED
    if assistance.hints_used > 0:
        return HINTS_ONLY
    return NO_ASSISTANCE


def compute_reward(base_reward: int, assistance: Assistance) -> int:
    """Base reward scaled by the assistance multiplier, rounded half up."""
    return math.floor(base_reward * reward_multiplier(assistance) + 0.5)
