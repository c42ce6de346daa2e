import os, sys
from datetime import datetime, timezone

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))
from betleague.domain import Bet, Match, MatchStatus
from betleague.scoring import prediction
from betleague.scoring.outcome import Outcome


def _finished(home_goals, away_goals, home_odds, away_odds, draw_odds=3.0):
    match = Match(
        home_team="Bastia",
        away_team="Real Madrid",
        season_code="2024",
        competition_code="Premier League",
        date=datetime(2024, 1, 1, 15, 0, tzinfo=timezone.utc),
        matchday=1,
        home_odds=home_odds,
        away_odds=away_odds,
        draw_odds=draw_odds,
    )
    return match.finish(home_goals, away_goals)


def _bets(match, *predictions):
    return [
        None if p is None else Bet(match.id, p[0], p[1])
        for p in predictions
    ]


def test_all_perfect_without_favorite():
    match = _finished(2, 1, home_odds=1.0, away_odds=2.0)
    bets = _bets(match, (2, 1), (2, 1), (2, 1), (2, 1))
    assert prediction.score(match, bets) == [500, 500, 500, 500]


def test_half_perfect_gets_fifty_percent_consensus_bonus():
    match = _finished(2, 1, home_odds=1.0, away_odds=2.0)
    bets = _bets(match, (2, 1), (2, 1), (0, 1), (0, 0))
    assert prediction.score(match, bets) == [550, 550, 0, 0]


def test_quarter_perfect_gets_twenty_five_percent_consensus_bonus():
    match = _finished(2, 1, home_odds=1.0, away_odds=2.0)
    bets = _bets(match, (2, 1), (1, 1), (0, 1), (0, 0))
    assert prediction.score(match, bets) == [625, 0, 0, 0]


def test_all_perfect_with_favorite_beaten():
    match = _finished(2, 0, home_odds=8.0, away_odds=1.1, draw_odds=6.0)
    bets = _bets(match, (2, 0), (2, 0), (2, 0), (2, 0))
    assert prediction.score(match, bets) == [1000, 1000, 1000, 1000]


def test_lone_perfect_bet_on_underdog_compounds_both_bonuses():
    match = _finished(2, 1, home_odds=8.0, away_odds=1.1, draw_odds=6.0)
    bets = _bets(match, (2, 1), (0, 4), (0, 5), (1, 4))
    # 500 perfect -> x2 upset -> 1000 -> x1.25 lone home-win prediction
    assert prediction.score(match, bets) == [1250, 0, 0, 0]


def test_close_bet_on_draw_against_favorite():
    match = _finished(2, 2, home_odds=8.0, away_odds=1.1, draw_odds=6.0)
    bets = _bets(match, (1, 1), (0, 4), (0, 5), (1, 4))
    # 400 close -> x1.5 draw -> 600 -> x1.25 -> 750
    assert prediction.score(match, bets) == [750, 0, 0, 0]


def test_favorite_winning_gives_no_odds_bonus():
    match = _finished(1, 3, home_odds=8.0, away_odds=1.1, draw_odds=6.0)
    bets = _bets(match, (1, 1), (2, 4), (1, 3), (1, 3))
    assert prediction.score(match, bets) == [0, 400, 500, 500]


def test_every_precision_tier():
    match = _finished(1, 3, home_odds=1.0, away_odds=2.0, draw_odds=1.0)
    bets = _bets(match, (1, 1), (0, 2), (1, 3), (0, 6))
    assert prediction.score(match, bets) == [0, 400, 500, 300]


def test_close_requires_total_goals_within_two():
    match = _finished(2, 4, home_odds=1.0, away_odds=2.0, draw_odds=1.0)
    bets = _bets(match, (1, 3), (3, 5), (0, 2), (3, 4))
    assert prediction.score(match, bets) == [400, 400, 300, 300]


def test_each_stage_truncates_before_the_next():
    match = _finished(2, 2, home_odds=8.0, away_odds=1.1, draw_odds=6.0)
    bets = _bets(match, (0, 0), (3, 0), (0, 3), (2, 0))
    # 300 correct -> x1.5 -> 450 -> x1.25 = 562.5 -> 562
    assert prediction.score(match, bets) == [562, 0, 0, 0]


@pytest.mark.parametrize(
    "home_goals, away_goals, home_odds, away_odds",
    [
        (2, 1, 1.0, 2.0),
        (0, 0, 8.0, 1.1),
        (1, 3, 1.2, 9.0),
    ],
)
def test_missing_bet_always_costs_the_penalty(home_goals, away_goals, home_odds, away_odds):
    match = _finished(home_goals, away_goals, home_odds, away_odds)
    scores = prediction.score(match, [None, None])
    assert scores == [prediction.NO_BET_PENALTY] * 2
    assert prediction.NO_BET_PENALTY == -100


def test_missing_bets_count_against_consensus():
    match = _finished(2, 1, home_odds=1.0, away_odds=2.0)
    bets = _bets(match, (2, 1), None, None, None)
    assert prediction.score(match, bets) == [625, -100, -100, -100]


def test_favorite_requires_odds_gap_of_one_and_a_half():
    assert prediction.favorite(_finished(0, 0, home_odds=1.0, away_odds=2.5)) is Outcome.HOME
    assert prediction.favorite(_finished(0, 0, home_odds=3.0, away_odds=1.5)) is Outcome.AWAY
    assert prediction.favorite(_finished(0, 0, home_odds=1.0, away_odds=2.4)) is None


def test_empty_bet_list_scores_nothing():
    assert prediction.score(_finished(1, 0, 1.0, 2.0), []) == []


def test_unfinished_match_is_rejected():
    match = _finished(1, 0, 1.0, 2.0)
    started = Match(
        home_team=match.home_team,
        away_team=match.away_team,
        season_code=match.season_code,
        competition_code=match.competition_code,
        date=match.date,
        matchday=match.matchday,
        status=MatchStatus.STARTED,
        home_goals=1,
        away_goals=0,
    )
    with pytest.raises(ValueError):
        prediction.score(started, _bets(started, (1, 0)))
    with pytest.raises(ValueError):
        prediction.score(None, [])
