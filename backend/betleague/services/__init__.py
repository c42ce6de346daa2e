"""Game state and the services driving it."""

from .game import Game
from .game_service import GameService
from .registry import GameServiceRegistry
from .match_watcher import MatchSource, MatchWatcher
from .lobby import GameLobby, PlayerGame

__all__ = [
    "Game",
    "GameLobby",
    "GameService",
    "GameServiceRegistry",
    "MatchSource",
    "MatchWatcher",
    "PlayerGame",
]
