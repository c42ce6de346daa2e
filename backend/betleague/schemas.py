from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .domain import Bet, GameStatus, Match, MatchResult, MatchStatus, Player, match_id
from .services.lobby import PlayerGame
from .time_utils import require_utc


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlayerOut(_CamelModel):
    id: str
    name: str

    @classmethod
    def from_player(cls, player: Player) -> "PlayerOut":
        return cls(id=player.id, name=player.name)


class MatchUpdateIn(_CamelModel):
    """One match snapshot as delivered by the match source."""

    id: Optional[str] = None
    home_team: str = Field(..., min_length=1)
    away_team: str = Field(..., min_length=1)
    season_code: str = Field(..., min_length=1)
    competition_code: str = Field(..., min_length=1)
    home_odds: float = Field(0.0, ge=0)
    draw_odds: float = Field(0.0, ge=0)
    away_odds: float = Field(0.0, ge=0)
    date: datetime
    matchday: int = Field(..., ge=0)
    status: MatchStatus = MatchStatus.SCHEDULED
    home_goals: Optional[int] = Field(None, ge=0)
    away_goals: Optional[int] = Field(None, ge=0)

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    @field_validator("date")
    @classmethod
    def _validate_date(cls, value: datetime) -> datetime:
        return require_utc(value, field_name="date")

    @model_validator(mode="after")
    def _check_consistency(self) -> "MatchUpdateIn":
        derived = match_id(
            self.competition_code,
            self.season_code,
            self.home_team,
            self.away_team,
            self.matchday,
        )
        if self.id is not None and self.id != derived:
            raise ValueError(f"id {self.id!r} does not match fixture {derived!r}")
        if self.status is MatchStatus.FINISHED and (
            self.home_goals is None or self.away_goals is None
        ):
            raise ValueError("finished matches must include homeGoals and awayGoals")
        return self

    def to_match(self) -> Match:
        return Match(
            home_team=self.home_team,
            away_team=self.away_team,
            season_code=self.season_code,
            competition_code=self.competition_code,
            date=self.date,
            matchday=self.matchday,
            status=self.status,
            home_goals=self.home_goals,
            away_goals=self.away_goals,
            home_odds=self.home_odds,
            draw_odds=self.draw_odds,
            away_odds=self.away_odds,
        )


class MatchOut(_CamelModel):
    id: str
    home_team: str
    away_team: str
    season_code: str
    competition_code: str
    home_odds: float
    draw_odds: float
    away_odds: float
    date: datetime
    matchday: int
    status: MatchStatus
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None

    @classmethod
    def from_match(cls, match: Match) -> "MatchOut":
        return cls(
            id=match.id,
            home_team=match.home_team,
            away_team=match.away_team,
            season_code=match.season_code,
            competition_code=match.competition_code,
            home_odds=match.home_odds,
            draw_odds=match.draw_odds,
            away_odds=match.away_odds,
            date=match.date,
            matchday=match.matchday,
            status=match.status,
            home_goals=match.home_goals,
            away_goals=match.away_goals,
        )


class BetIn(_CamelModel):
    match_id: str = Field(..., min_length=1)
    predicted_home_goals: int = Field(..., ge=0)
    predicted_away_goals: int = Field(..., ge=0)

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    @field_validator("predicted_home_goals", "predicted_away_goals", mode="before")
    @classmethod
    def _reject_bool(cls, value):
        # bool is a subclass of int in Python
        if isinstance(value, bool):
            raise ValueError("goals must be integers (not booleans)")
        return value

    def to_bet(self) -> Bet:
        return Bet(
            match_id=self.match_id,
            predicted_home_goals=self.predicted_home_goals,
            predicted_away_goals=self.predicted_away_goals,
        )


class BetOut(_CamelModel):
    match_id: str
    predicted_home_goals: int
    predicted_away_goals: int

    @classmethod
    def from_bet(cls, bet: Bet) -> "BetOut":
        return cls(
            match_id=bet.match_id,
            predicted_home_goals=bet.predicted_home_goals,
            predicted_away_goals=bet.predicted_away_goals,
        )


class MatchResultOut(_CamelModel):
    match: MatchOut
    bets: Dict[str, BetOut] = {}
    scores: Optional[Dict[str, int]] = None

    @classmethod
    def from_result(cls, result: MatchResult) -> "MatchResultOut":
        return cls(
            match=MatchOut.from_match(result.match),
            bets={pid: BetOut.from_bet(bet) for pid, bet in result.bets.items()},
            scores=dict(result.scores) if result.scores is not None else None,
        )


class StandingsOut(_CamelModel):
    status: GameStatus
    points: Dict[str, int]
    winners: List[str]


class CreateGameIn(_CamelModel):
    season_code: str = Field(..., min_length=1)
    competition_code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class CreatedGameOut(_CamelModel):
    game_id: str
    code: str
    expires_at: datetime


class JoinGameIn(_CamelModel):
    code: str = Field(..., pattern=r"^[A-Za-z0-9]{4}$")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class JoinedGameOut(_CamelModel):
    game_id: str
    season_code: str
    competition_code: str
    name: str


class PlayerScoreOut(_CamelModel):
    id: str
    name: str
    total_score: int
    scores_by_match: Dict[str, int] = {}


class PlayerGameOut(_CamelModel):
    game_id: str
    season_code: str
    competition_code: str
    name: str
    status: GameStatus
    players: List[PlayerScoreOut]
    code: Optional[str] = None

    @classmethod
    def from_player_game(cls, entry: PlayerGame) -> "PlayerGameOut":
        game = entry.game
        totals = game.players_points()
        past = game.past_results()
        players = [
            PlayerScoreOut(
                id=player.id,
                name=player.name,
                total_score=totals.get(player.id, 0),
                scores_by_match={
                    mid: result.scores[player.id]
                    for mid, result in past.items()
                    if result.scores and player.id in result.scores
                },
            )
            for player in game.players
        ]
        return cls(
            game_id=entry.game_id,
            season_code=game.season_code,
            competition_code=game.competition_code,
            name=game.name,
            status=game.status,
            players=players,
            code=entry.code,
        )
