import os
import sys
from datetime import datetime, timezone

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Fall back to an in-memory SQLite database so local runs remain isolated.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from betleague.domain import Match, Player  # noqa: E402
from betleague.services.game import Game  # noqa: E402

SEASON = "2024"
COMPETITION = "Ligue 1"
KICKOFF = datetime(2024, 1, 1, 15, 0, tzinfo=timezone.utc)


def _match(home, away, matchday=1, **kwargs):
    kwargs.setdefault("date", KICKOFF)
    return Match(
        home_team=home,
        away_team=away,
        season_code=SEASON,
        competition_code=COMPETITION,
        matchday=matchday,
        **kwargs,
    )


@pytest.fixture
def make_match():
    """Factory building matches of the sample season."""

    return _match


@pytest.fixture
def players():
    return [
        Player("p1", "Alice"),
        Player("p2", "Bob"),
        Player("p3", "Carol"),
        Player("p4", "Dave"),
    ]


@pytest.fixture
def fixtures():
    return [
        _match("Paris", "Marseille", 1, home_odds=1.5, draw_odds=4.0, away_odds=6.0),
        _match("Lyon", "Lille", 1, home_odds=2.4, draw_odds=3.2, away_odds=2.9),
        _match("Nice", "Lens", 2, home_odds=2.1, draw_odds=3.1, away_odds=3.4),
    ]


@pytest.fixture
def game(players, fixtures):
    return Game.fresh(SEASON, COMPETITION, "Office league", players, fixtures)

