"""Prediction scoring engine.
Turns a finished match and every player's bet into points."""

from __future__ import annotations

from typing import Optional, Sequence

from ..domain import Bet, Match
from .outcome import Outcome, Precision, compare, outcome

NO_BET_PENALTY = -100
BASE_POINTS = {
    Precision.PERFECT: 500,
    Precision.CLOSE: 400,
    Precision.CORRECT: 300,
}

FAVORITE_ODDS_GAP = 1.5
DRAW_AGAINST_FAVORITE_MULTIPLIER = 1.5
UPSET_MULTIPLIER = 2.0

# (max share of slots predicting the same outcome, multiplier), checked in order
CONSENSUS_TIERS = (
    (0.25, 1.25),
    (0.50, 1.10),
)


def favorite(match: Match) -> Optional[Outcome]:
    """Return the side with materially lower odds, or ``None``."""

    if abs(match.home_odds - match.away_odds) < FAVORITE_ODDS_GAP:
        return None
    return Outcome.HOME if match.home_odds < match.away_odds else Outcome.AWAY


def _apply(points: int, multiplier: float) -> int:
    # Every bonus stage truncates before the next one is applied.
    return int(points * multiplier)


def _odds_bonus(points: int, match: Match, result: Outcome) -> int:
    fav = favorite(match)
    if fav is None:
        return points
    if result is Outcome.DRAW:
        return _apply(points, DRAW_AGAINST_FAVORITE_MULTIPLIER)
    if result is not fav:
        return _apply(points, UPSET_MULTIPLIER)
    return points


def _consensus_bonus(points: int, share: float) -> int:
    for threshold, multiplier in CONSENSUS_TIERS:
        if share <= threshold:
            return _apply(points, multiplier)
    return points


def _bet_outcome(bet: Optional[Bet]) -> Optional[Outcome]:
    if bet is None:
        return None
    return outcome(bet.predicted_home_goals, bet.predicted_away_goals)


def score(match: Match, bets: Sequence[Optional[Bet]]) -> list[int]:
    """Score every prediction slot of ``bets`` against ``match``.

    ``bets`` holds one slot per player, ``None`` when the player did not bet.
    The returned list is aligned with ``bets``.
    """

    if match is None or not match.is_finished():
        raise ValueError("only finished matches can be scored")

    actual_home, actual_away = match.home_goals, match.away_goals
    result = outcome(actual_home, actual_away)
    predicted = [_bet_outcome(bet) for bet in bets]

    scores: list[int] = []
    for bet in bets:
        if bet is None:
            scores.append(NO_BET_PENALTY)
            continue

        precision = compare(
            bet.predicted_home_goals,
            bet.predicted_away_goals,
            actual_home,
            actual_away,
        )
        if precision is Precision.WRONG:
            scores.append(0)
            continue

        points = BASE_POINTS[precision]
        points = _odds_bonus(points, match, result)
        share = predicted.count(result) / len(bets)
        points = _consensus_bonus(points, share)
        scores.append(points)
    return scores
