"""Outcome classification shared by every piece of code comparing scores.

A prediction and a result are compared through ``compare`` only, so "correct",
"close" and "perfect" have a single definition.
"""

from __future__ import annotations

from enum import Enum, IntEnum


CLOSE_TOTAL_GOALS_TOLERANCE = 2


class Outcome(str, Enum):
    HOME = "home"
    DRAW = "draw"
    AWAY = "away"


class Precision(IntEnum):
    """How well a prediction matches a result, ordered from worst to best."""

    WRONG = 0
    CORRECT = 1
    CLOSE = 2
    PERFECT = 3


def outcome(home_goals: int, away_goals: int) -> Outcome:
    if home_goals > away_goals:
        return Outcome.HOME
    if home_goals < away_goals:
        return Outcome.AWAY
    return Outcome.DRAW


def compare(
    predicted_home: int,
    predicted_away: int,
    actual_home: int,
    actual_away: int,
) -> Precision:
    """Return the highest precision tier reached by a prediction.

    ``CLOSE`` requires the same absolute goal difference and a total number
    of goals within ``CLOSE_TOTAL_GOALS_TOLERANCE`` of the actual total.
    """

    if outcome(predicted_home, predicted_away) is not outcome(actual_home, actual_away):
        return Precision.WRONG
    if predicted_home == actual_home and predicted_away == actual_away:
        return Precision.PERFECT

    same_difference = abs(predicted_home - predicted_away) == abs(actual_home - actual_away)
    total_gap = abs((predicted_home + predicted_away) - (actual_home + actual_away))
    if same_difference and total_gap <= CLOSE_TOTAL_GOALS_TOLERANCE:
        return Precision.CLOSE
    return Precision.CORRECT

