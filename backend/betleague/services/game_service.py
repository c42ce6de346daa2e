"""Runs one game: applies match updates and bets, then persists the result."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from .. import config
from ..domain import Bet, Match, MatchResult, Player
from ..exceptions import MatchNotFound
from ..time_utils import utcnow
from .game import Game

if TYPE_CHECKING:
    from ..repositories import GameRepository

logger = logging.getLogger(__name__)


class GameService:
    """Owns the live ``Game`` of ``game_id`` and its persistence.

    Every load, mutate and save sequence runs under one ``asyncio.Lock`` so
    writes reach the repository in the order they were applied.
    """

    def __init__(
        self,
        game_id: str,
        repository: "GameRepository",
        *,
        clock: Callable[[], datetime] = utcnow,
        odds_lock: Optional[timedelta] = None,
        game: Optional[Game] = None,
    ) -> None:
        self.game_id = game_id
        self._repository = repository
        self._clock = clock
        self._odds_lock = (
            odds_lock
            if odds_lock is not None
            else timedelta(minutes=config.ODDS_LOCK_MINUTES)
        )
        self._lock = asyncio.Lock()
        self._game: Optional[Game] = game

    async def _get_game(self) -> Game:
        # callers hold self._lock
        if self._game is None:
            self._game = await self._repository.load_game(self.game_id)
        return self._game

    # ------------------------------------------------------------------
    # Match updates
    # ------------------------------------------------------------------
    async def handle_match_updates(self, updates: Iterable[Match]) -> dict[str, dict[str, int]]:
        """Apply fresh match snapshots and score the finished ones.

        Updates are applied in iteration order. The whole batch is rejected
        with ``MatchNotFound`` before anything changes when one of its matches
        is not part of the game. Whatever was applied is saved even when a
        later update fails. Returns the points awarded per finished match id.
        """

        updates = list(updates)
        awarded: dict[str, dict[str, int]] = {}
        async with self._lock:
            game = await self._get_game()
            if game.is_finished():
                logger.info("Ignoring match updates for finished game %s", self.game_id)
                return awarded
            for match in updates:
                if not game.is_incoming(match.id) and not game.is_past(match.id):
                    raise MatchNotFound(match.id)

            try:
                for match in updates:
                    if game.is_past(match.id):
                        logger.info(
                            "Ignoring update for match %s already scored in game %s",
                            match.id,
                            self.game_id,
                        )
                        continue

                    logger.info("Handling update for match %s", match.id)
                    previous = game.get_match(match.id)
                    match = self._lock_odds(match, previous)
                    game.update_match(match)

                    if match.is_finished():
                        logger.info(
                            "Match %s is finished with score %d - %d",
                            match.id,
                            match.home_goals,
                            match.away_goals,
                        )
                        awarded[match.id] = await self._score_match(game, match)
            finally:
                await self._repository.save_game(self.game_id, game)

            if game.is_finished():
                winners = [player.id for player in game.winners()]
                logger.info("Game %s is finished, with winner(s) %s", self.game_id, winners)
        return awarded

    async def _score_match(self, game: Game, match: Match) -> dict[str, int]:
        scores = game.calculate_match_scores(match)
        await self._repository.save_scores(self.game_id, match.id, scores)
        for player_id, points in scores.items():
            logger.info(
                "Player %s has earned %d points for match %s", player_id, points, match.id
            )
        game.apply_match_scores(match, scores)
        return scores

    def _lock_odds(self, match: Match, previous: Match) -> Match:
        # Odds freeze shortly before kickoff so they cannot move once betting closes.
        if match.date < self._clock() + self._odds_lock:
            return match.with_odds_of(previous)
        return match

    # ------------------------------------------------------------------
    # Players and bets
    # ------------------------------------------------------------------
    async def update_player_bet(
        self, player: Player, bet: Bet, now: Optional[datetime] = None
    ) -> Bet:
        """Validate and store ``bet``, replacing the player's previous one."""

        async with self._lock:
            game = await self._get_game()
            game.check_bet_validity(player, bet, now or self._clock())
            await self._repository.save_bets(self.game_id, bet.match_id, {player.id: bet})
            game.add_player_bet(player, bet)
            await self._repository.save_game(self.game_id, game)
        logger.info(
            "Player %s bet %d - %d on match %s",
            player.id,
            bet.predicted_home_goals,
            bet.predicted_away_goals,
            bet.match_id,
        )
        return bet

    async def add_player(self, player: Player) -> None:
        async with self._lock:
            game = await self._get_game()
            game.add_player(player)
            await self._repository.save_game(self.game_id, game)
        logger.info("Player %s joined game %s", player.id, self.game_id)

    async def remove_player(self, player: Player) -> Game:
        """Drop ``player`` from the roster and return the game.

        When the roster ends up empty the game is finished, since nobody is
        left to bet on it.
        """

        async with self._lock:
            game = await self._get_game()
            game.remove_player(player)
            await self._repository.remove_player(self.game_id, player.id)
            if not game.players:
                game.finish()
                logger.info("Game %s has no players left and is finished", self.game_id)
            await self._repository.save_game(self.game_id, game)
        logger.info("Player %s left game %s", player.id, self.game_id)
        return game

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def game(self) -> Game:
        async with self._lock:
            return await self._get_game()

    async def incoming_matches(self, player: Optional[Player] = None) -> dict[str, MatchResult]:
        return (await self.game()).incoming_matches(player)

    async def past_results(self) -> dict[str, MatchResult]:
        return (await self.game()).past_results()

    async def player_bets(self, player: Player) -> list[Bet]:
        return (await self.game()).player_bets(player)

    async def players(self) -> list[Player]:
        return (await self.game()).players

    async def standings(self) -> tuple[dict[str, int], list[Player]]:
        async with self._lock:
            game = await self._get_game()
            return game.players_points(), game.winners()

    async def tracked_match_ids(self) -> list[str]:
        return list((await self.game()).incoming_matches())
