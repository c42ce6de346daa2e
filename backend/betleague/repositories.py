"""Persistence of games, bets and scores.

``GameRepository`` is the boundary the game services depend on. The SQL
implementation stores everything through SQLAlchemy async sessions; the
in-memory one is meant for local runs and tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Mapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from . import models
from .domain import Bet, GameCode, GameStatus, Match, MatchStatus, Player
from .exceptions import GameNotFound
from .services.game import Game


class GameRepository(ABC):
    @abstractmethod
    async def load_game(self, game_id: str) -> Game:
        """Return the game stored under ``game_id`` or raise ``GameNotFound``."""

    @abstractmethod
    async def save_game(self, game_id: str, game: Game) -> None: ...

    @abstractmethod
    async def load_bets(self, game_id: str, match_id: str) -> dict[str, Bet]: ...

    @abstractmethod
    async def save_bets(
        self, game_id: str, match_id: str, bets: Mapping[str, Bet]
    ) -> None: ...

    @abstractmethod
    async def load_scores(self, game_id: str, match_id: str) -> dict[str, int]: ...

    @abstractmethod
    async def save_scores(
        self, game_id: str, match_id: str, scores: Mapping[str, int]
    ) -> None: ...

    @abstractmethod
    async def remove_player(self, game_id: str, player_id: str) -> None:
        """Drop the roster entry; bets and points already recorded stay."""

    @abstractmethod
    async def player_game_ids(self, player_id: str) -> list[str]: ...

    @abstractmethod
    async def games_tracking(self, match_id: str) -> list[str]:
        """Return the ids of games where ``match_id`` is still incoming."""

    @abstractmethod
    async def save_matches(self, matches: Iterable[Match]) -> None: ...

    @abstractmethod
    async def load_matches(self, season_code: str, competition_code: str) -> list[Match]:
        """Return the known fixtures of a season, by matchday then kickoff."""

    @abstractmethod
    async def save_game_code(self, game_code: GameCode) -> None: ...

    @abstractmethod
    async def load_game_code(self, code: str) -> Optional[GameCode]: ...

    @abstractmethod
    async def load_code_for_game(self, game_id: str) -> Optional[GameCode]: ...

    @abstractmethod
    async def delete_game_codes(self, game_id: str) -> None: ...

    @abstractmethod
    async def delete_expired_codes(self, now: datetime) -> int:
        """Remove codes expired at ``now`` and return how many were removed."""


class InMemoryGameRepository(GameRepository):
    """Keeps live ``Game`` objects in a dict keyed by game id."""

    def __init__(self) -> None:
        self._games: dict[str, Game] = {}
        self._bets: dict[tuple[str, str], dict[str, Bet]] = {}
        self._scores: dict[tuple[str, str], dict[str, int]] = {}
        self._matches: dict[str, Match] = {}
        self._codes: dict[str, GameCode] = {}

    async def load_game(self, game_id: str) -> Game:
        game = self._games.get(game_id)
        if game is None:
            raise GameNotFound(game_id)
        return game

    async def save_game(self, game_id: str, game: Game) -> None:
        self._games[game_id] = game

    async def load_bets(self, game_id: str, match_id: str) -> dict[str, Bet]:
        return dict(self._bets.get((game_id, match_id), {}))

    async def save_bets(
        self, game_id: str, match_id: str, bets: Mapping[str, Bet]
    ) -> None:
        self._bets.setdefault((game_id, match_id), {}).update(bets)

    async def load_scores(self, game_id: str, match_id: str) -> dict[str, int]:
        return dict(self._scores.get((game_id, match_id), {}))

    async def save_scores(
        self, game_id: str, match_id: str, scores: Mapping[str, int]
    ) -> None:
        self._scores.setdefault((game_id, match_id), {}).update(scores)

    async def remove_player(self, game_id: str, player_id: str) -> None:
        # the roster lives on the stored Game, which the service already updated
        if game_id not in self._games:
            raise GameNotFound(game_id)

    async def player_game_ids(self, player_id: str) -> list[str]:
        return [
            game_id
            for game_id, game in self._games.items()
            if any(player.id == player_id for player in game.players)
        ]

    async def games_tracking(self, match_id: str) -> list[str]:
        return [
            game_id
            for game_id, game in self._games.items()
            if game.is_incoming(match_id) and not game.is_finished()
        ]

    async def save_matches(self, matches: Iterable[Match]) -> None:
        for match in matches:
            self._matches[match.id] = match

    async def load_matches(self, season_code: str, competition_code: str) -> list[Match]:
        found = [
            match
            for match in self._matches.values()
            if match.season_code == season_code
            and match.competition_code == competition_code
        ]
        return sorted(found, key=lambda m: (m.matchday, m.date))

    async def save_game_code(self, game_code: GameCode) -> None:
        self._codes[game_code.code] = game_code

    async def load_game_code(self, code: str) -> Optional[GameCode]:
        return self._codes.get(code)

    async def load_code_for_game(self, game_id: str) -> Optional[GameCode]:
        for game_code in self._codes.values():
            if game_code.game_id == game_id:
                return game_code
        return None

    async def delete_game_codes(self, game_id: str) -> None:
        for code in [c for c, gc in self._codes.items() if gc.game_id == game_id]:
            del self._codes[code]

    async def delete_expired_codes(self, now: datetime) -> int:
        expired = [c for c, gc in self._codes.items() if gc.is_expired(now)]
        for code in expired:
            del self._codes[code]
        return len(expired)


def _to_match(row: models.Match) -> Match:
    return Match(
        home_team=row.home_team,
        away_team=row.away_team,
        season_code=row.season_code,
        competition_code=row.competition_code,
        date=row.match_date,
        matchday=row.matchday,
        status=MatchStatus(row.status),
        home_goals=row.home_goals,
        away_goals=row.away_goals,
        home_odds=row.home_odds,
        draw_odds=row.draw_odds,
        away_odds=row.away_odds,
    )


def _to_match_row(match: Match) -> models.Match:
    return models.Match(
        id=match.id,
        home_team=match.home_team,
        away_team=match.away_team,
        season_code=match.season_code,
        competition_code=match.competition_code,
        matchday=match.matchday,
        match_date=match.date,
        status=match.status.value,
        home_goals=match.home_goals,
        away_goals=match.away_goals,
        home_odds=match.home_odds,
        draw_odds=match.draw_odds,
        away_odds=match.away_odds,
    )


def _to_bet(row: models.Bet) -> Bet:
    return Bet(
        match_id=row.match_id,
        predicted_home_goals=row.predicted_home_goals,
        predicted_away_goals=row.predicted_away_goals,
    )


def _to_game_code(row: models.GameCode) -> GameCode:
    return GameCode(code=row.code, game_id=row.game_id, expires_at=row.expires_at)


class SqlGameRepository(GameRepository):
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    async def load_game(self, game_id: str) -> Game:
        async with self._session_factory() as session:
            row = await session.get(models.Game, game_id)
            if row is None:
                raise GameNotFound(game_id)

            roster = (
                await session.execute(
                    select(models.Player)
                    .join(models.GamePlayer, models.GamePlayer.player_id == models.Player.id)
                    .where(models.GamePlayer.game_id == game_id)
                    .order_by(models.GamePlayer.position)
                )
            ).scalars().all()
            links = (
                await session.execute(
                    select(models.Match, models.GameMatch.is_past)
                    .join(models.GameMatch, models.GameMatch.match_id == models.Match.id)
                    .where(models.GameMatch.game_id == game_id)
                    .order_by(models.Match.matchday, models.Match.match_date)
                )
            ).all()
            bet_rows = (
                await session.execute(
                    select(models.Bet).where(models.Bet.game_id == game_id)
                )
            ).scalars().all()
            score_rows = (
                await session.execute(
                    select(models.Score).where(models.Score.game_id == game_id)
                )
            ).scalars().all()

        incoming: list[Match] = []
        past: list[Match] = []
        for match_row, is_past in links:
            (past if is_past else incoming).append(_to_match(match_row))

        bets: dict[str, dict[str, Bet]] = {}
        for bet_row in bet_rows:
            bets.setdefault(bet_row.match_id, {})[bet_row.player_id] = _to_bet(bet_row)

        scores: dict[str, dict[str, int]] = {}
        for score_row in score_rows:
            scores.setdefault(score_row.match_id, {})[score_row.player_id] = score_row.points

        return Game.started(
            row.season_code,
            row.competition_code,
            row.name,
            [Player(id=p.id, name=p.name) for p in roster],
            incoming,
            past,
            bets,
            scores,
            finished=row.status == GameStatus.FINISHED.value,
        )

    async def save_game(self, game_id: str, game: Game) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.merge(
                    models.Game(
                        id=game_id,
                        season_code=game.season_code,
                        competition_code=game.competition_code,
                        name=game.name,
                        status=game.status.value,
                    )
                )
                for position, player in enumerate(game.players):
                    await session.merge(models.Player(id=player.id, name=player.name))
                    await session.merge(
                        models.GamePlayer(
                            game_id=game_id, player_id=player.id, position=position
                        )
                    )

                for is_past, results in (
                    (False, game.incoming_matches()),
                    (True, game.past_results()),
                ):
                    for mid, result in results.items():
                        await session.merge(_to_match_row(result.match))
                        await session.merge(
                            models.GameMatch(game_id=game_id, match_id=mid, is_past=is_past)
                        )
                        await self._merge_bets(session, game_id, mid, result.bets)
                        if result.scores:
                            await self._merge_scores(session, game_id, mid, result.scores)

    async def load_bets(self, game_id: str, match_id: str) -> dict[str, Bet]:
        async with self._session_factory() as session:
            rows = (
                await session.execute(
                    select(models.Bet).where(
                        models.Bet.game_id == game_id,
                        models.Bet.match_id == match_id,
                    )
                )
            ).scalars().all()
        return {row.player_id: _to_bet(row) for row in rows}

    async def save_bets(
        self, game_id: str, match_id: str, bets: Mapping[str, Bet]
    ) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await self._merge_bets(session, game_id, match_id, bets)

    async def load_scores(self, game_id: str, match_id: str) -> dict[str, int]:
        async with self._session_factory() as session:
            rows = (
                await session.execute(
                    select(models.Score).where(
                        models.Score.game_id == game_id,
                        models.Score.match_id == match_id,
                    )
                )
            ).scalars().all()
        return {row.player_id: row.points for row in rows}

    async def save_scores(
        self, game_id: str, match_id: str, scores: Mapping[str, int]
    ) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await self._merge_scores(session, game_id, match_id, scores)

    async def remove_player(self, game_id: str, player_id: str) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(
                    delete(models.GamePlayer).where(
                        models.GamePlayer.game_id == game_id,
                        models.GamePlayer.player_id == player_id,
                    )
                )

    async def player_game_ids(self, player_id: str) -> list[str]:
        async with self._session_factory() as session:
            rows = await session.execute(
                select(models.GamePlayer.game_id).where(
                    models.GamePlayer.player_id == player_id
                )
            )
            return list(rows.scalars().all())

    async def games_tracking(self, match_id: str) -> list[str]:
        async with self._session_factory() as session:
            rows = await session.execute(
                select(models.GameMatch.game_id)
                .join(models.Game, models.Game.id == models.GameMatch.game_id)
                .where(
                    models.GameMatch.match_id == match_id,
                    models.GameMatch.is_past.is_(False),
                    models.Game.status != GameStatus.FINISHED.value,
                )
            )
            return list(rows.scalars().all())

    async def save_matches(self, matches: Iterable[Match]) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                for match in matches:
                    await session.merge(_to_match_row(match))

    async def load_matches(self, season_code: str, competition_code: str) -> list[Match]:
        async with self._session_factory() as session:
            rows = (
                await session.execute(
                    select(models.Match)
                    .where(
                        models.Match.season_code == season_code,
                        models.Match.competition_code == competition_code,
                    )
                    .order_by(models.Match.matchday, models.Match.match_date)
                )
            ).scalars().all()
        return [_to_match(row) for row in rows]

    async def save_game_code(self, game_code: GameCode) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.merge(
                    models.GameCode(
                        code=game_code.code,
                        game_id=game_code.game_id,
                        expires_at=game_code.expires_at,
                    )
                )

    async def load_game_code(self, code: str) -> Optional[GameCode]:
        async with self._session_factory() as session:
            row = await session.get(models.GameCode, code)
        return _to_game_code(row) if row is not None else None

    async def load_code_for_game(self, game_id: str) -> Optional[GameCode]:
        async with self._session_factory() as session:
            row = (
                await session.execute(
                    select(models.GameCode)
                    .where(models.GameCode.game_id == game_id)
                    .order_by(models.GameCode.expires_at.desc())
                    .limit(1)
                )
            ).scalar_one_or_none()
        return _to_game_code(row) if row is not None else None

    async def delete_game_codes(self, game_id: str) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(
                    delete(models.GameCode).where(models.GameCode.game_id == game_id)
                )

    async def delete_expired_codes(self, now: datetime) -> int:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(models.GameCode).where(models.GameCode.expires_at <= now)
                )
        return result.rowcount or 0

    @staticmethod
    async def _merge_bets(
        session: AsyncSession, game_id: str, match_id: str, bets: Mapping[str, Bet]
    ) -> None:
        for player_id, bet in bets.items():
            await session.merge(
                models.Bet(
                    game_id=game_id,
                    match_id=match_id,
                    player_id=player_id,
                    predicted_home_goals=bet.predicted_home_goals,
                    predicted_away_goals=bet.predicted_away_goals,
                )
            )

    @staticmethod
    async def _merge_scores(
        session: AsyncSession, game_id: str, match_id: str, scores: Mapping[str, int]
    ) -> None:
        for player_id, points in scores.items():
            await session.merge(
                models.Score(
                    game_id=game_id,
                    match_id=match_id,
                    player_id=player_id,
                    points=points,
                )
            )
