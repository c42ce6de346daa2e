"""In-memory state of one prediction game."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable, Iterable, Mapping, Optional, Sequence

from ..domain import Bet, GameStatus, Match, MatchResult, Player
from ..exceptions import (
    BetTooLate,
    DuplicatePlayer,
    MatchAlreadyFinished,
    MatchNotFinished,
    MatchNotFound,
    PlayerNotFound,
)
from ..scoring import prediction
from ..time_utils import coerce_utc

Scorer = Callable[[Match, Sequence[Optional[Bet]]], list[int]]


class Game:
    """A competition between players over the matches of one season.

    Matches stay *incoming* until their scores are applied, then move to
    *past* for good. Every public method holds the same lock, so the whole
    aggregate behaves as one critical section.
    """

    def __init__(
        self,
        season_code: str,
        competition_code: str,
        name: str,
        players: Iterable[Player],
        incoming_matches: Iterable[Match],
        *,
        past_matches: Iterable[Match] = (),
        bets: Optional[Mapping[str, Mapping[str, Bet]]] = None,
        scores: Optional[Mapping[str, Mapping[str, int]]] = None,
        scorer: Scorer = prediction.score,
        finished: bool = False,
    ) -> None:
        self.season_code = season_code
        self.competition_code = competition_code
        self.name = name
        self._scorer = scorer
        self._lock = threading.RLock()

        self._players: list[Player] = []
        for player in players:
            if player in self._players:
                raise DuplicatePlayer(player.id)
            self._players.append(player)

        self._incoming: dict[str, Match] = {m.id: m for m in incoming_matches}
        self._past: dict[str, Match] = {}
        for match in past_matches:
            self._incoming.pop(match.id, None)
            self._past[match.id] = match

        self._bets: dict[str, dict[str, Bet]] = {
            mid: dict(player_bets) for mid, player_bets in (bets or {}).items()
        }
        # match id -> player id -> points, only for past matches
        self._points: dict[str, dict[str, int]] = {
            mid: dict(points)
            for mid, points in (scores or {}).items()
            if mid in self._past
        }

        self._finished = finished or (bool(self._past) and not self._incoming)

    @classmethod
    def fresh(
        cls,
        season_code: str,
        competition_code: str,
        name: str,
        players: Iterable[Player],
        incoming_matches: Iterable[Match],
        scorer: Scorer = prediction.score,
    ) -> "Game":
        return cls(
            season_code,
            competition_code,
            name,
            players,
            incoming_matches,
            scorer=scorer,
        )

    @classmethod
    def started(
        cls,
        season_code: str,
        competition_code: str,
        name: str,
        players: Iterable[Player],
        incoming_matches: Iterable[Match],
        past_matches: Iterable[Match],
        bets: Mapping[str, Mapping[str, Bet]],
        scores: Mapping[str, Mapping[str, int]],
        scorer: Scorer = prediction.score,
        finished: bool = False,
    ) -> "Game":
        """Resume a game from previously persisted matches, bets and scores.

        ``finished`` restores a game that was closed before its last match,
        e.g. because every player left it.
        """

        return cls(
            season_code,
            competition_code,
            name,
            players,
            incoming_matches,
            past_matches=past_matches,
            bets=bets,
            scores=scores,
            scorer=scorer,
            finished=finished,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def status(self) -> GameStatus:
        """``not_started`` until a match kicks off, then ``scheduled`` until finished."""

        with self._lock:
            if self._finished:
                return GameStatus.FINISHED
            if self._past or any(
                not match.is_scheduled() for match in self._incoming.values()
            ):
                return GameStatus.SCHEDULED
            return GameStatus.NOT_STARTED

    def is_finished(self) -> bool:
        return self.status is GameStatus.FINISHED

    @property
    def players(self) -> list[Player]:
        with self._lock:
            return list(self._players)

    def has_player(self, player: Player) -> bool:
        with self._lock:
            return player in self._players

    def is_incoming(self, match_id: str) -> bool:
        with self._lock:
            return match_id in self._incoming

    def is_past(self, match_id: str) -> bool:
        with self._lock:
            return match_id in self._past

    def get_match(self, match_id: str) -> Match:
        with self._lock:
            match = self._incoming.get(match_id) or self._past.get(match_id)
            if match is None:
                raise MatchNotFound(match_id)
            return match

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def check_bet_validity(self, player: Player, bet: Bet, now: datetime) -> None:
        """Raise if ``player`` may not place ``bet`` at ``now``.

        Betting closes at kickoff: ``now`` equal to the kickoff is too late.
        """

        with self._lock:
            match = self._incoming.get(bet.match_id)
            if match is None:
                raise MatchNotFound(bet.match_id)
            if player not in self._players:
                raise PlayerNotFound(player.id)
            if coerce_utc(now) >= match.date:
                raise BetTooLate(bet.match_id)

    def add_player_bet(self, player: Player, bet: Bet) -> None:
        with self._lock:
            if bet.match_id not in self._incoming:
                raise MatchNotFound(bet.match_id)
            self._bets.setdefault(bet.match_id, {})[player.id] = bet

    def add_player(self, player: Player) -> None:
        with self._lock:
            if player in self._players:
                raise DuplicatePlayer(player.id)
            self._players.append(player)

    def remove_player(self, player: Player) -> None:
        with self._lock:
            if player not in self._players:
                raise PlayerNotFound(player.id)
            self._players.remove(player)

    def update_match(self, match: Match) -> None:
        with self._lock:
            if match.id not in self._incoming:
                raise MatchNotFound(match.id)
            self._incoming[match.id] = match

    def calculate_match_scores(self, match: Match) -> dict[str, int]:
        """Return the points each roster player earns on ``match``.

        Nothing is stored; pass the result to ``apply_match_scores``.
        """

        with self._lock:
            if match.id not in self._incoming:
                raise MatchNotFound(match.id)
            if not match.is_finished():
                raise MatchNotFinished(match.id)

            match_bets = self._bets.get(match.id, {})
            slots = [match_bets.get(player.id) for player in self._players]
            points = self._scorer(match, slots)
            return {player.id: pts for player, pts in zip(self._players, points)}

    def apply_match_scores(self, match: Match, scores: Mapping[str, int]) -> None:
        """Record ``scores`` for ``match`` and retire it from the incoming set."""

        with self._lock:
            if match.id in self._past:
                raise MatchAlreadyFinished(match.id)
            if match.id not in self._incoming:
                raise MatchNotFound(match.id)

            self._points.setdefault(match.id, {}).update(scores)
            del self._incoming[match.id]
            self._past[match.id] = match
            if not self._incoming:
                self._finished = True

    def finish(self) -> None:
        with self._lock:
            self._finished = True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def incoming_matches(self, player: Optional[Player] = None) -> dict[str, MatchResult]:
        """Return incoming matches with the bets ``player`` is allowed to see.

        While a match is still scheduled a player only sees their own bet;
        once it has kicked off every bet is visible. Without ``player`` all
        bets are returned.
        """

        with self._lock:
            results: dict[str, MatchResult] = {}
            for mid, match in self._incoming.items():
                match_bets = self._bets.get(mid, {})
                if player is None or not match.is_scheduled():
                    visible = dict(match_bets)
                else:
                    visible = {
                        pid: bet for pid, bet in match_bets.items() if pid == player.id
                    }
                results[mid] = MatchResult(match=match, bets=visible)
            return results

    def past_results(self) -> dict[str, MatchResult]:
        with self._lock:
            return {
                mid: MatchResult(
                    match=match,
                    bets=dict(self._bets.get(mid, {})),
                    scores=dict(self._points.get(mid, {})),
                )
                for mid, match in self._past.items()
            }

    def player_bets(self, player: Player) -> list[Bet]:
        with self._lock:
            return [
                match_bets[player.id]
                for match_bets in self._bets.values()
                if player.id in match_bets
            ]

    def players_points(self) -> dict[str, int]:
        """Return total points per roster player id, starting at zero."""

        with self._lock:
            totals = {player.id: 0 for player in self._players}
            for points in self._points.values():
                for pid, pts in points.items():
                    if pid in totals:
                        totals[pid] += pts
            return totals

    def winners(self) -> list[Player]:
        """Return every roster player sharing the highest total, in roster order."""

        with self._lock:
            if not self._players:
                return []
            totals = self.players_points()
            best = max(totals[player.id] for player in self._players)
            return [player for player in self._players if totals[player.id] == best]
