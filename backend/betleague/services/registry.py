from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Optional

from .game import Game
from .game_service import GameService

if TYPE_CHECKING:
    from ..repositories import GameRepository

logger = logging.getLogger(__name__)


class GameServiceRegistry:
    """Hands out a single ``GameService`` per game id.

    Sharing the instance is what makes its lock the one mutual-exclusion
    boundary around a game.
    """

    def __init__(self, repository: "GameRepository") -> None:
        self._repository = repository
        self._services: dict[str, GameService] = {}

    @property
    def repository(self) -> "GameRepository":
        return self._repository

    async def get(self, game_id: str) -> GameService:
        """Return the service of ``game_id``, loading the game on first use.

        The service is registered before the load is awaited, so concurrent
        callers share it and queue on its lock. Raises ``GameNotFound`` when
        the repository does not know the game.
        """

        service = self._services.get(game_id)
        if service is None:
            service = GameService(game_id, self._repository)
            self._services[game_id] = service
            try:
                await service.game()
            except Exception:
                if self._services.get(game_id) is service:
                    del self._services[game_id]
                raise
            logger.info("Loaded game %s", game_id)
        return service

    async def create(self, game: Game) -> GameService:
        """Persist ``game`` under a new id and register its service."""

        game_id = uuid.uuid4().hex
        await self._repository.save_game(game_id, game)
        service = GameService(game_id, self._repository, game=game)
        self.register(service)
        logger.info("Created game %s", game_id)
        return service

    def register(self, service: GameService) -> None:
        self._services[service.game_id] = service

    def unregister(self, game_id: str) -> Optional[GameService]:
        return self._services.pop(game_id, None)

    def services(self) -> list[GameService]:
        return list(self._services.values())
