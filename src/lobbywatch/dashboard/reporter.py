"""Snapshot reporter.

Builds one entry per bot describing its current game (name, players still
needed, players in the lobby) and hands the list to the configured sinks.
A snapshot is produced on request (after need changes) and at least once
per refresh interval.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Iterable

from ..config import get_validated_config
from ..monitor.discovery import bot_name
from ..tracker.need import NeedEstimator
from ..tracker.selector import CurrentGameSelector
from ..tracker.store import GameStateStore
from .models import SnapshotEntry, SnapshotPlayer
from .sinks import SnapshotSink

logger = logging.getLogger(__name__)


class SnapshotReporter:
    """Reads the store source by source and emits snapshots."""

    def __init__(
        self,
        store: GameStateStore,
        sinks: Iterable[SnapshotSink] = (),
        selector: CurrentGameSelector | None = None,
        estimator: NeedEstimator | None = None,
        bot_namer: Callable[[str], str] = bot_name,
        stats_lookup: Callable[[str], str] | None = None,
        obsolete_after_seconds: float | None = None,
        refresh_interval: float | None = None,
        clamp_need: bool | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        config = get_validated_config().reporter
        self.store = store
        self.sinks: list[SnapshotSink] = list(sinks)
        self.selector = selector or CurrentGameSelector()
        self.estimator = estimator or store.estimator
        self.bot_namer = bot_namer
        self.stats_lookup = stats_lookup or (lambda _player: config.stats_placeholder)
        self.obsolete_after_seconds = (
            obsolete_after_seconds if obsolete_after_seconds is not None else config.obsolete_after_seconds
        )
        self.refresh_interval = refresh_interval if refresh_interval is not None else config.refresh_interval
        self.clamp_need = clamp_need if clamp_need is not None else config.clamp_need
        self.clock = clock

        self.latest: list[SnapshotEntry] = []
        self.last_report_at: float | None = None
        self._requested = asyncio.Event()
        self._running = False

    def entry_for(self, source: str, now: float) -> SnapshotEntry | None:
        """Snapshot entry for one source, or None if it has no current game."""
        botname = self.bot_namer(source)
        prefix = f"[LOG {source}, BOT {botname}]"
        try:
            with self.store.locked(source) as state:
                if not state.games:
                    logger.debug(f"{prefix} no games atm")
                    return None
                game = self.selector.select(state.games.values())
                if game is None or now - game.last_seen > self.obsolete_after_seconds:
                    logger.debug(f"{prefix} games found, but are all obsolete")
                    return None

                need = self.estimator.estimate(game)
                if need < 0:
                    logger.warning(
                        f"{prefix} need for {game.name} is {need}; missed some joins or leaves",
                        extra={"source": source, "game": game.name},
                    )
                    if self.clamp_need:
                        need = 0
                players = {
                    p.name: SnapshotPlayer(name=p.name, statsdota=self.stats_lookup(p.name))
                    for p in sorted(game.present_players(), key=lambda p: p.joined_at)
                }
                return SnapshotEntry(
                    gamename=game.name,
                    botname=botname,
                    need=need,
                    players=players,
                )
        except KeyError:
            # dropped by the supervisor since we listed it
            return None

    def build_snapshot(self, now: float | None = None) -> list[SnapshotEntry]:
        """One entry per source that has a current game, sources in sorted order."""
        if now is None:
            now = self.clock()
        entries: list[SnapshotEntry] = []
        for source in self.store.sources():
            entry = self.entry_for(source, now)
            if entry is not None:
                entries.append(entry)
        return entries

    def report(self) -> list[SnapshotEntry]:
        """Build a snapshot, remember it and write it to every sink."""
        entries = self.build_snapshot()
        self.latest = entries
        self.last_report_at = self.clock()
        for sink in self.sinks:
            try:
                sink.write(entries)
            except Exception as e:
                logger.exception(f"Snapshot sink {sink!r} failed: {e}")
        logger.debug(f"Reported {len(entries)} current games")
        return entries

    def request(self) -> None:
        """Ask the run loop for a fresh snapshot as soon as possible."""
        self._requested.set()

    async def run(self) -> None:
        """Report on request and at least every refresh interval until stopped."""
        self._running = True
        while self._running:
            try:
                await asyncio.wait_for(self._requested.wait(), timeout=self.refresh_interval)
            except asyncio.TimeoutError:
                pass
            self._requested.clear()
            if not self._running:
                break
            try:
                self.report()
            except Exception as e:
                logger.exception(f"Snapshot report failed: {e}")

    def stop(self) -> None:
        self._running = False
        self._requested.set()
