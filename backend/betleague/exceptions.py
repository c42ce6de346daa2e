from fastapi import HTTPException
from pydantic import BaseModel
from typing import Optional


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Base class for game rule violations.

    Each subclass keeps its own ``code`` so callers can tell a late bet from a
    missing match all the way up to the HTTP layer.
    """

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        super().__init__(detail or title)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class GameNotFound(DomainException):
    def __init__(self, game_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Game not found",
            detail=f"game '{game_id}' not found",
            code="game_not_found",
        )


class MatchNotFound(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Match not found",
            detail=f"match '{match_id}' is not an incoming match of this game",
            code="match_not_found",
        )


class PlayerNotFound(DomainException):
    def __init__(self, player_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Player not found",
            detail=f"player '{player_id}' not found",
            code="player_not_found",
        )


class DuplicatePlayer(DomainException):
    def __init__(self, player_id: str) -> None:
        super().__init__(
            status_code=409,
            title="Player already in game",
            detail=f"player '{player_id}' is already in the game",
            code="duplicate_player",
        )


class BetTooLate(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=400,
            title="Too late to bet",
            detail=f"match '{match_id}' has already kicked off",
            code="bet_too_late",
        )


class MatchNotFinished(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=409,
            title="Match not finished",
            detail=f"match '{match_id}' is not finished",
            code="match_not_finished",
        )


class MatchAlreadyFinished(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=409,
            title="Match already finished",
            detail=f"match '{match_id}' has already been scored",
            code="match_already_finished",
        )


class GameFinished(DomainException):
    def __init__(self, game_id: str) -> None:
        super().__init__(
            status_code=409,
            title="Game finished",
            detail=f"game '{game_id}' is finished",
            code="game_finished",
        )


class GameCodeNotFound(DomainException):
    def __init__(self, code: str) -> None:
        super().__init__(
            status_code=404,
            title="Game code not found",
            detail=f"no game uses code '{code}'",
            code="game_code_not_found",
        )


class GameCodeExpired(DomainException):
    def __init__(self, code: str) -> None:
        super().__init__(
            status_code=410,
            title="Game code expired",
            detail=f"game code '{code}' has expired",
            code="game_code_expired",
        )


class PlayerGameLimitReached(DomainException):
    def __init__(self, player_id: str, limit: int) -> None:
        super().__init__(
            status_code=400,
            title="Too many games",
            detail=f"player '{player_id}' already plays {limit} games",
            code="player_game_limit",
        )


class UnsupportedCompetition(DomainException):
    def __init__(self, competition_code: str, season_code: str) -> None:
        super().__init__(
            status_code=400,
            title="Unsupported competition",
            detail=f"no matches known for {competition_code} {season_code}",
            code="unsupported_competition",
        )


class GameCodeUnavailable(DomainException):
    def __init__(self) -> None:
        super().__init__(
            status_code=503,
            title="No game code available",
            detail="could not find a free game code, try again",
            code="game_code_unavailable",
        )


def http_problem(
    status_code: int,
    detail: str,
    code: str,
    *,
    headers: Optional[dict[str, str]] = None,
) -> HTTPException:
    """Create an HTTPException with an attached problem code."""

    exc = HTTPException(status_code=status_code, detail=detail, headers=headers)
    setattr(exc, "code", code)
    return exc
