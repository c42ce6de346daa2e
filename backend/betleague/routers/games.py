# backend/betleague/routers/games.py
from typing import Optional

from fastapi import APIRouter, Depends, Header, Response, status

from ..db import get_session_factory
from ..domain import Player
from ..exceptions import ProblemDetail, http_problem
from ..repositories import SqlGameRepository
from ..schemas import (
    BetIn,
    BetOut,
    CreatedGameOut,
    CreateGameIn,
    JoinedGameOut,
    JoinGameIn,
    MatchResultOut,
    PlayerGameOut,
    PlayerOut,
    StandingsOut,
)
from ..services import GameLobby, GameService, GameServiceRegistry

# Resource-only prefix; versioning is added in main.py
router = APIRouter(
    prefix="/games",
    tags=["games"],
    responses={404: {"model": ProblemDetail}},
)

_registry: Optional[GameServiceRegistry] = None


def get_registry() -> GameServiceRegistry:
    """Return the process-wide registry backed by the SQL repository."""

    global _registry
    if _registry is None:
        _registry = GameServiceRegistry(SqlGameRepository(get_session_factory()))
    return _registry


def get_current_player(
    x_player_id: Optional[str] = Header(None),
    x_player_name: Optional[str] = Header(None),
) -> Player:
    player_id = (x_player_id or "").strip()
    if not player_id:
        raise http_problem(
            status_code=401,
            detail="player identity required",
            code="player_identity_required",
        )
    return Player(id=player_id, name=(x_player_name or "").strip())


def _require_name(player: Player) -> None:
    if not player.name:
        raise http_problem(
            status_code=422,
            detail="X-Player-Name header is required to join a game",
            code="player_name_required",
        )


def get_lobby(registry: GameServiceRegistry = Depends(get_registry)) -> GameLobby:
    return GameLobby(registry)


async def get_game_service(
    game_id: str, registry: GameServiceRegistry = Depends(get_registry)
) -> GameService:
    return await registry.get(game_id)


@router.post("", response_model=CreatedGameOut, status_code=status.HTTP_201_CREATED)
async def create_game(
    body: CreateGameIn,
    lobby: GameLobby = Depends(get_lobby),
    player: Player = Depends(get_current_player),
) -> CreatedGameOut:
    _require_name(player)
    game_id, game_code = await lobby.create_game(
        player, body.season_code, body.competition_code, body.name
    )
    return CreatedGameOut(
        game_id=game_id, code=game_code.code, expires_at=game_code.expires_at
    )


@router.post("/join", response_model=JoinedGameOut)
async def join_game_by_code(
    body: JoinGameIn,
    lobby: GameLobby = Depends(get_lobby),
    player: Player = Depends(get_current_player),
) -> JoinedGameOut:
    _require_name(player)
    game_id, game = await lobby.join_game(body.code, player)
    return JoinedGameOut(
        game_id=game_id,
        season_code=game.season_code,
        competition_code=game.competition_code,
        name=game.name,
    )


@router.get("", response_model=list[PlayerGameOut])
async def list_player_games(
    lobby: GameLobby = Depends(get_lobby),
    player: Player = Depends(get_current_player),
) -> list[PlayerGameOut]:
    entries = await lobby.player_games(player)
    return [PlayerGameOut.from_player_game(entry) for entry in entries]


@router.delete("/{game_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_game(
    game_id: str,
    lobby: GameLobby = Depends(get_lobby),
    player: Player = Depends(get_current_player),
) -> Response:
    await lobby.leave_game(game_id, player)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{game_id}/matches/incoming", response_model=dict[str, MatchResultOut])
async def list_incoming_matches(
    service: GameService = Depends(get_game_service),
    player: Player = Depends(get_current_player),
) -> dict[str, MatchResultOut]:
    results = await service.incoming_matches(player)
    return {mid: MatchResultOut.from_result(r) for mid, r in results.items()}


@router.get("/{game_id}/matches/past", response_model=dict[str, MatchResultOut])
async def list_past_results(
    service: GameService = Depends(get_game_service),
) -> dict[str, MatchResultOut]:
    results = await service.past_results()
    return {mid: MatchResultOut.from_result(r) for mid, r in results.items()}


@router.post("/{game_id}/bets", response_model=BetOut)
async def place_bet(
    body: BetIn,
    service: GameService = Depends(get_game_service),
    player: Player = Depends(get_current_player),
) -> BetOut:
    bet = await service.update_player_bet(player, body.to_bet())
    return BetOut.from_bet(bet)


@router.get("/{game_id}/bets", response_model=list[BetOut])
async def list_player_bets(
    service: GameService = Depends(get_game_service),
    player: Player = Depends(get_current_player),
) -> list[BetOut]:
    return [BetOut.from_bet(bet) for bet in await service.player_bets(player)]


@router.post(
    "/{game_id}/players",
    response_model=PlayerOut,
    status_code=status.HTTP_201_CREATED,
)
async def join_game(
    service: GameService = Depends(get_game_service),
    player: Player = Depends(get_current_player),
) -> PlayerOut:
    _require_name(player)
    await service.add_player(player)
    return PlayerOut.from_player(player)


@router.get("/{game_id}/standings", response_model=StandingsOut)
async def get_standings(service: GameService = Depends(get_game_service)) -> StandingsOut:
    game = await service.game()
    points, winners = await service.standings()
    return StandingsOut(
        status=game.status,
        points=points,
        winners=[player.id for player in winners],
    )
