"""Per-log source worker.

One worker follows one bot log: it pulls lines from its line source in
order, parses them and applies the resulting events to the shared store.
Lines of one log are never reordered or processed concurrently; the join
and leave counting depends on log order.

Usage:
    worker = SourceWorker(path, LogTailer(path), store, on_need_change=reporter.request)
    await worker.start()
    ...
    await worker.stop()
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Callable

from ..config import get_validated_config
from ..tracker.errors import AnomalyKind
from ..tracker.events import (
    Event,
    LobbyNeedAnnounced,
    PlayerJoined,
    PlayerLeft,
    Unrecognized,
    game_name_of,
)
from ..tracker.parser import classify, parse_log_timestamp, split_line
from ..tracker.store import GameStateStore
from .tailer import LineSource

logger = logging.getLogger(__name__)

NEED_EVENTS = (LobbyNeedAnnounced, PlayerJoined, PlayerLeft)


class WorkerState(str, Enum):
    """State of a source worker."""

    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class SourceWorker:
    """Applies one log's lines to the store, in order."""

    def __init__(
        self,
        source: str,
        line_source: LineSource,
        store: GameStateStore,
        on_need_change: Callable[[], None] | None = None,
        clock: Callable[[], float] = time.time,
        timestamps: str | None = None,
        debug_lines: bool | None = None,
    ) -> None:
        """Initialize the worker.

        Args:
            source: Source identifier (log path)
            line_source: Where lines come from (tailer or inbox)
            store: Shared game state store
            on_need_change: Called after events that changed a need count
            clock: Wall clock used as event time
            timestamps: "wall" or "log"; defaults to tracker.timestamps
            debug_lines: Log need changes and unrecognized lines; defaults to logging.debug_lines
        """
        config = get_validated_config()
        self.source = source
        self.line_source = line_source
        self.store = store
        self.on_need_change = on_need_change
        self.clock = clock
        self.timestamps = timestamps or config.tracker.timestamps
        self.debug_lines = debug_lines if debug_lines is not None else config.logging.debug_lines

        self.lines_seen = 0
        self.events_applied = 0
        self.last_line_at: float | None = None
        self.started_at: float | None = None

        self._state = WorkerState.STOPPED
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Whether the worker is consuming lines (not stopped)."""
        return self._state in (WorkerState.STARTING, WorkerState.RUNNING)

    async def start(self) -> None:
        """Start consuming lines in a background task."""
        if self._state != WorkerState.STOPPED:
            logger.warning(f"Worker for {self.source} already running, state={self._state}")
            return

        self._state = WorkerState.STARTING
        self.started_at = self.clock()
        self._task = asyncio.create_task(self._run(), name=f"worker:{self.source}")
        logger.info(f"Watching log {self.source}", extra={"source": self.source})

    async def stop(self, timeout: float | None = None) -> None:
        """Stop the worker, cancelling it if it does not finish in time.

        Whatever the worker was about to apply is discarded; each line
        is applied atomically or not at all.

        Args:
            timeout: Maximum seconds to wait for a graceful stop.
                     Defaults to config timeouts.worker_stop.
        """
        if timeout is None:
            timeout = get_validated_config().timeouts.worker_stop
        if self._task is None:
            self._state = WorkerState.STOPPED
            return

        self._state = WorkerState.STOPPING
        self.line_source.stop()

        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Worker for {self.source} did not stop gracefully, cancelling")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        self._state = WorkerState.STOPPED
        self._task = None
        logger.info(f"Stopped watching {self.source}", extra={"source": self.source})

    async def _run(self) -> None:
        """Consume lines until the source ends or stop() is called."""
        self._state = WorkerState.RUNNING
        lines = self.line_source.lines()
        try:
            async for line in lines:
                if self._state is WorkerState.STOPPING:
                    break
                try:
                    self.process_line(line)
                except Exception as e:
                    logger.exception(f"Error applying line from {self.source}: {e}")
        except asyncio.CancelledError:
            logger.debug(f"Worker for {self.source} cancelled")
        finally:
            aclose = getattr(lines, "aclose", None)
            if aclose is not None:
                await aclose()
            if self._state is not WorkerState.STOPPING:
                logger.info(f"Line source for {self.source} ended", extra={"source": self.source})
            self._state = WorkerState.STOPPED

    def process_line(self, line: str) -> Event:
        """Parse one line and apply it to the store.

        Returns:
            The event the line was classified as.
        """
        self.lines_seen += 1
        now = self.clock()
        self.last_line_at = now

        record = split_line(line)
        if record is None:
            self.store.record_anomaly(self.source, AnomalyKind.PARSE_MISMATCH)
            logger.debug(f"Strange log line in {self.source}: {line.rstrip()}")
            return Unrecognized(reason="grammar", line=line.rstrip("\r\n"))

        event = classify(record)
        if isinstance(event, Unrecognized):
            if self.debug_lines:
                logger.debug(f"Ignored line in {self.source}: {line.rstrip()}")
            return event

        observed_at = now
        if self.timestamps == "log":
            observed_at = parse_log_timestamp(record.timestamp) or now

        before = None
        name = game_name_of(event)
        if isinstance(event, NEED_EVENTS) and name is not None:
            prior = self.store.find_game(self.source, name)
            if prior is not None:
                before = (prior.need_count, prior.reliable)

        game = self.store.apply(self.source, event, observed_at)
        if game is None:
            return event
        self.events_applied += 1

        if isinstance(event, NEED_EVENTS):
            changed = isinstance(event, LobbyNeedAnnounced) or (
                game.reliable and (game.need_count, game.reliable) != before
            )
            if changed:
                if self.debug_lines:
                    logger.debug(
                        f"[{game.name}] need +{self.store.estimator.estimate(game)}",
                        extra={"source": self.source, "game": game.name},
                    )
                if self.on_need_change is not None:
                    self.on_need_change()

        return event
