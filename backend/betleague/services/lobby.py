"""Creating, joining and leaving games, and feeding them match snapshots."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from .. import config
from ..domain import GameCode, Match, Player
from ..exceptions import (
    GameCodeExpired,
    GameCodeNotFound,
    GameCodeUnavailable,
    GameFinished,
    PlayerGameLimitReached,
    UnsupportedCompetition,
)
from ..time_utils import utcnow
from .game import Game
from .match_watcher import MatchWatcher
from .registry import GameServiceRegistry

logger = logging.getLogger(__name__)

CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
CODE_LENGTH = 4
CODE_ATTEMPTS = 10


@dataclass(frozen=True)
class PlayerGame:
    game_id: str
    game: Game
    code: Optional[str] = None


class GameLobby:
    """Entry point for everything that happens around games rather than in them.

    Game state itself is only ever touched through the ``GameService`` the
    registry hands out, so the lobby never bypasses a game's lock.
    """

    def __init__(
        self,
        registry: GameServiceRegistry,
        *,
        clock: Callable[[], datetime] = utcnow,
        watcher: Optional[MatchWatcher] = None,
        max_games: Optional[int] = None,
        code_ttl: Optional[timedelta] = None,
    ) -> None:
        self._registry = registry
        self._repository = registry.repository
        self._clock = clock
        self._watcher = watcher
        self._max_games = max_games if max_games is not None else config.MAX_GAMES_PER_PLAYER
        self._code_ttl = (
            code_ttl if code_ttl is not None else timedelta(days=config.GAME_CODE_TTL_DAYS)
        )

    async def create_game(
        self,
        player: Player,
        season_code: str,
        competition_code: str,
        name: str,
    ) -> tuple[str, GameCode]:
        """Start a game with ``player`` as its only member.

        Every known fixture of the season that is not finished yet becomes an
        incoming match. Returns the new game id and its invitation code.
        """

        await self._check_game_limit(player)
        matches = [
            match
            for match in await self._repository.load_matches(season_code, competition_code)
            if not match.is_finished()
        ]
        if not matches:
            raise UnsupportedCompetition(competition_code, season_code)

        now = self._clock()
        removed = await self._repository.delete_expired_codes(now)
        if removed:
            logger.info("Removed %d expired game codes", removed)
        code = await self._generate_code(now)

        service = await self._registry.create(
            Game.fresh(season_code, competition_code, name, [player], matches)
        )
        game_code = GameCode(code=code, game_id=service.game_id, expires_at=now + self._code_ttl)
        await self._repository.save_game_code(game_code)
        if self._watcher is not None:
            self._watcher.watch(matches)
            self._watcher.subscribe(service)

        logger.info(
            "Player %s created game %s (%s %s) with code %s",
            player.id,
            service.game_id,
            competition_code,
            season_code,
            code,
        )
        return service.game_id, game_code

    async def join_game(self, code: str, player: Player) -> tuple[str, Game]:
        """Add ``player`` to the game behind ``code``.

        Joining a game the player already belongs to changes nothing.
        """

        code = code.strip().upper()
        game_code = await self._repository.load_game_code(code)
        if game_code is None:
            raise GameCodeNotFound(code)
        if game_code.is_expired(self._clock()):
            raise GameCodeExpired(code)

        service = await self._registry.get(game_code.game_id)
        game = await service.game()
        if game.is_finished():
            raise GameFinished(service.game_id)
        if game.has_player(player):
            return service.game_id, game

        await self._check_game_limit(player)
        await service.add_player(player)
        return service.game_id, game

    async def player_games(self, player: Player) -> list[PlayerGame]:
        games = []
        for game_id in await self._repository.player_game_ids(player.id):
            game = await (await self._registry.get(game_id)).game()
            game_code = await self._repository.load_code_for_game(game_id)
            games.append(
                PlayerGame(
                    game_id=game_id,
                    game=game,
                    code=game_code.code if game_code is not None else None,
                )
            )
        return games

    async def leave_game(self, game_id: str, player: Player) -> None:
        """Remove ``player`` from ``game_id``.

        The last player leaving closes the game: it is finished, its codes
        are deleted and it stops receiving match updates.
        """

        service = await self._registry.get(game_id)
        game = await service.remove_player(player)
        if game.players:
            return

        await self._repository.delete_game_codes(game_id)
        if self._watcher is not None:
            self._watcher.unsubscribe(game_id)
        self._registry.unregister(game_id)
        logger.info("Game %s closed after its last player left", game_id)

    async def ingest_matches(
        self, matches: Iterable[Match]
    ) -> dict[str, dict[str, dict[str, int]]]:
        """Record match snapshots and forward them to the games tracking them.

        Returns the points awarded, keyed by game id then match id.
        """

        matches = list(matches)
        await self._repository.save_matches(matches)

        by_game: dict[str, list[Match]] = {}
        for match in matches:
            for game_id in await self._repository.games_tracking(match.id):
                by_game.setdefault(game_id, []).append(match)

        awarded: dict[str, dict[str, dict[str, int]]] = {}
        for game_id, updates in by_game.items():
            service = await self._registry.get(game_id)
            awarded[game_id] = await service.handle_match_updates(updates)
        logger.info(
            "Ingested %d match snapshots for %d games", len(matches), len(by_game)
        )
        return awarded

    async def _check_game_limit(self, player: Player) -> None:
        if len(await self._repository.player_game_ids(player.id)) >= self._max_games:
            raise PlayerGameLimitReached(player.id, self._max_games)

    async def _generate_code(self, now: datetime) -> str:
        for _ in range(CODE_ATTEMPTS):
            code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
            existing = await self._repository.load_game_code(code)
            if existing is None or existing.is_expired(now):
                return code
        raise GameCodeUnavailable()
