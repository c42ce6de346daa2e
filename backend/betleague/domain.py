"""Value types shared by the game state, the scorer and the adapters."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from .time_utils import coerce_utc


class MatchStatus(str, Enum):
    SCHEDULED = "scheduled"
    STARTED = "started"
    FINISHED = "finished"


class GameStatus(str, Enum):
    NOT_STARTED = "not_started"
    SCHEDULED = "scheduled"
    FINISHED = "finished"


def match_id(
    competition_code: str,
    season_code: str,
    home_team: str,
    away_team: str,
    matchday: int,
) -> str:
    """Return the stable identifier of a fixture."""

    return f"{competition_code}-{season_code}-{home_team}-{away_team}-{matchday}"


@dataclass(frozen=True)
class Player:
    id: str
    name: str = field(default="", compare=False)


@dataclass(frozen=True)
class Match:
    """Snapshot of one fixture as reported by the match source.

    The identifier only depends on teams, season, competition and matchday so
    every snapshot of the same fixture maps to the same ``id``.
    """

    home_team: str
    away_team: str
    season_code: str
    competition_code: str
    date: datetime
    matchday: int
    status: MatchStatus = MatchStatus.SCHEDULED
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None
    home_odds: float = 0.0
    draw_odds: float = 0.0
    away_odds: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", MatchStatus(self.status))
        object.__setattr__(self, "date", coerce_utc(self.date))
        if self.status is MatchStatus.FINISHED and (
            self.home_goals is None or self.away_goals is None
        ):
            raise ValueError(f"finished match {self.id} must report its goals")

    @property
    def id(self) -> str:
        return match_id(
            self.competition_code,
            self.season_code,
            self.home_team,
            self.away_team,
            self.matchday,
        )

    def is_scheduled(self) -> bool:
        return self.status is MatchStatus.SCHEDULED

    def is_in_progress(self) -> bool:
        return self.status is MatchStatus.STARTED

    def is_finished(self) -> bool:
        return self.status is MatchStatus.FINISHED

    def start(self) -> "Match":
        return replace(self, status=MatchStatus.STARTED, home_goals=0, away_goals=0)

    def finish(self, home_goals: int, away_goals: int) -> "Match":
        return replace(
            self,
            status=MatchStatus.FINISHED,
            home_goals=home_goals,
            away_goals=away_goals,
        )

    def with_odds_of(self, other: "Match") -> "Match":
        """Return this snapshot carrying the odds of ``other``."""

        return replace(
            self,
            home_odds=other.home_odds,
            draw_odds=other.draw_odds,
            away_odds=other.away_odds,
        )


@dataclass(frozen=True)
class Bet:
    match_id: str
    predicted_home_goals: int
    predicted_away_goals: int

    def __post_init__(self) -> None:
        if self.predicted_home_goals < 0 or self.predicted_away_goals < 0:
            raise ValueError("predicted goals must be >= 0")


@dataclass
class MatchResult:
    """A match together with the bets and, once scored, the points on it.

    ``bets`` and ``scores`` are keyed by player id.
    """

    match: Match
    bets: dict[str, Bet] = field(default_factory=dict)
    scores: Optional[dict[str, int]] = None

    def is_scored(self) -> bool:
        return self.scores is not None


@dataclass(frozen=True)
class GameCode:
    """Invitation code letting players join ``game_id`` until ``expires_at``."""

    code: str
    game_id: str
    expires_at: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "expires_at", coerce_utc(self.expires_at))

    def is_expired(self, now: datetime) -> bool:
        return coerce_utc(now) >= self.expires_at
