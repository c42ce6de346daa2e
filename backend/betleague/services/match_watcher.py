"""Polls a match source and forwards changed fixtures to game services."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Iterable, Mapping, Optional

from .. import config
from ..domain import Match
from .game_service import GameService

logger = logging.getLogger(__name__)

_TRACKED_FIELDS = (
    "status",
    "home_goals",
    "away_goals",
    "home_odds",
    "draw_odds",
    "away_odds",
    "date",
)


class MatchSource(ABC):
    """External provider of match snapshots.

    Delivery is at-least-once and may skip intermediate states, e.g. go from
    scheduled straight to finished.
    """

    @abstractmethod
    async def fetch_matches(self, match_ids: Iterable[str]) -> Mapping[str, Match]: ...


def changed_fields(previous: Optional[Match], current: Match) -> list[str]:
    if previous is None:
        return list(_TRACKED_FIELDS)
    return [
        name
        for name in _TRACKED_FIELDS
        if getattr(previous, name) != getattr(current, name)
    ]


class MatchWatcher:
    def __init__(
        self,
        source: MatchSource,
        *,
        poll_interval: Optional[float] = None,
    ) -> None:
        self._source = source
        self._poll_interval = (
            poll_interval
            if poll_interval is not None
            else config.MATCH_POLL_INTERVAL_SECONDS
        )
        self._subscribers: dict[str, GameService] = {}
        self._watched: dict[str, Match] = {}

    def watch(self, matches: Iterable[Match]) -> None:
        for match in matches:
            self._watched.setdefault(match.id, match)

    def subscribe(self, service: GameService) -> None:
        self._subscribers[service.game_id] = service
        logger.info("Game %s subscribed to match watcher", service.game_id)

    def unsubscribe(self, game_id: str) -> None:
        if self._subscribers.pop(game_id, None) is not None:
            logger.info("Game %s unsubscribed from match watcher", game_id)

    @property
    def watched(self) -> dict[str, Match]:
        return dict(self._watched)

    async def poll_once(self) -> dict[str, Match]:
        """Fetch watched matches once and dispatch the ones that changed.

        Returns the changed matches keyed by id. Finished matches stop being
        watched after they were dispatched.
        """

        if not self._watched:
            return {}

        fetched = await self._source.fetch_matches(list(self._watched))
        updates: dict[str, Match] = {}
        for mid, match in fetched.items():
            if mid not in self._watched:
                continue
            fields = changed_fields(self._watched.get(mid), match)
            if not fields:
                continue
            logger.info("Match %s changed: %s", mid, ", ".join(fields))
            updates[mid] = match

        if updates:
            await self._dispatch(updates)
        # only remember snapshots once every subscriber has accepted them
        for mid, match in updates.items():
            if match.is_finished():
                self._watched.pop(mid, None)
            else:
                self._watched[mid] = match
        return updates

    async def _dispatch(self, updates: Mapping[str, Match]) -> None:
        for service in list(self._subscribers.values()):
            tracked = set(await service.tracked_match_ids())
            relevant = [match for mid, match in updates.items() if mid in tracked]
            if not relevant:
                continue
            await service.handle_match_updates(relevant)

    async def run(self, stop: asyncio.Event) -> None:
        """Poll until ``stop`` is set. Poll failures are logged and retried."""

        logger.info("Starting match watcher (interval %.1fs)", self._poll_interval)
        while not stop.is_set():
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Match watcher poll failed")
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._poll_interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Match watcher stopped")
