# backend/betleague/routers/matches.py
from fastapi import APIRouter, Depends

from ..exceptions import ProblemDetail
from ..schemas import MatchUpdateIn
from ..services import GameLobby
from .games import get_lobby

router = APIRouter(
    prefix="/matches",
    tags=["matches"],
    responses={404: {"model": ProblemDetail}},
)


@router.post("", response_model=dict[str, dict[str, dict[str, int]]])
async def ingest_matches(
    body: list[MatchUpdateIn],
    lobby: GameLobby = Depends(get_lobby),
) -> dict[str, dict[str, dict[str, int]]]:
    """Record match snapshots from the match source and score finished ones.

    The response lists the points awarded, keyed by game id then match id.
    """

    return await lobby.ingest_matches(update.to_match() for update in body)
