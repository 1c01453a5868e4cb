"""Source supervisor.

Periodically rescans for bot logs and keeps exactly one worker per live
log:
- New log, recently modified -> start a worker
- Tracked log not modified within max age (or unreadable) -> stop the
  worker and drop everything known about that log
- Worker whose line source ended -> drop it, a later scan may restart it
- Games idle for longer than tracker.forget_after_seconds -> forget them

Lines written before a worker existed are never read.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Iterable

from ..config import get_validated_config
from ..tracker.errors import AnomalyKind
from ..tracker.store import GameStateStore
from .discovery import UNREADABLE_AGE, discover_sources, file_age
from .tailer import LineSource, LogTailer
from .worker import SourceWorker, WorkerState

logger = logging.getLogger(__name__)


@dataclass
class StalenessPolicy:
    """When to look for logs and when to give up on them."""

    scan_interval: float = 5.0
    max_age_seconds: float = 24 * 3600
    worker_stop_timeout: float = 2.0

    @classmethod
    def from_config(cls) -> StalenessPolicy:
        """Load policy from config file."""
        config = get_validated_config()
        return cls(
            scan_interval=config.discovery.scan_interval,
            max_age_seconds=config.discovery.max_age_seconds,
            worker_stop_timeout=config.timeouts.worker_stop,
        )


@dataclass
class WorkerStatus:
    """Point-in-time view of one worker."""

    source: str
    state: WorkerState
    lines_seen: int
    events_applied: int
    last_line_at: float | None
    started_at: float | None


class Supervisor:
    """Starts, tears down and reaps source workers."""

    def __init__(
        self,
        store: GameStateStore,
        on_need_change: Callable[[], None] | None = None,
        discover: Callable[[], Iterable[str]] | None = None,
        age_of: Callable[[str], float] | None = None,
        line_source_factory: Callable[[str], LineSource] | None = None,
        policy: StalenessPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize supervisor.

        Args:
            store: Shared game state store
            on_need_change: Passed to every worker (usually reporter.request)
            discover: Returns the currently available sources
            age_of: Seconds since a source was last modified
            line_source_factory: Builds the line source for a new worker
            policy: Scan interval and staleness thresholds
            clock: Wall clock
        """
        self.store = store
        self.on_need_change = on_need_change
        self.discover = discover or discover_sources
        self.age_of = age_of or file_age
        self.line_source_factory = line_source_factory or LogTailer
        self.policy = policy or StalenessPolicy.from_config()
        self.clock = clock
        self.teardowns: Counter[str] = Counter()

        self._workers: dict[str, SourceWorker] = {}
        self._ignored: set[str] = set()
        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def workers(self) -> dict[str, SourceWorker]:
        return dict(self._workers)

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the periodic scan loop."""
        if self._running:
            logger.warning("Supervisor already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._monitor_loop(), name="supervisor")
        logger.info(
            "Supervisor started",
            extra={
                "scan_interval": self.policy.scan_interval,
                "max_age_seconds": self.policy.max_age_seconds,
            },
        )

    async def stop(self) -> None:
        """Stop scanning and stop every worker."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        await asyncio.gather(
            *[self.stop_worker(source, reason="shutdown") for source in list(self._workers)]
        )
        logger.info("Supervisor stopped")

    async def _monitor_loop(self) -> None:
        """Main loop - one scan per interval."""
        while self._running:
            try:
                await self.scan()
            except Exception as e:
                logger.exception(f"Supervisor scan error: {e}")
            await asyncio.sleep(self.policy.scan_interval)

    async def scan(self) -> None:
        """One discovery and staleness pass."""
        for source in self.discover():
            if source in self._workers:
                continue
            age = self.age_of(source)
            if age > self.policy.max_age_seconds:
                if source not in self._ignored:
                    logger.info(
                        f"Log {source} hasn't been updated for {self._describe_age(age)}; ignoring",
                        extra={"source": source},
                    )
                    self._ignored.add(source)
                continue
            self._ignored.discard(source)
            await self.start_worker(source)

        for source, worker in list(self._workers.items()):
            if not worker.is_running:
                logger.info(f"Worker for {source} finished", extra={"source": source})
                await self.stop_worker(source, reason="ended")
                continue
            age = self.age_of(source)
            if age > self.policy.max_age_seconds:
                kind = AnomalyKind.SOURCE_UNREADABLE if age == UNREADABLE_AGE else AnomalyKind.SOURCE_STALE
                self.teardowns[kind.value] += 1
                logger.info(
                    f"Log {source} hasn't been updated for {self._describe_age(age)}; stopped watching it",
                    extra={"source": source, "anomaly": kind.value},
                )
                await self.stop_worker(source, reason=kind.value)

        pruned = self.store.leavers.prune(self.clock())
        if pruned:
            logger.debug(f"Pruned {pruned} leaver records")
        self.store.prune_games(self.clock())

    async def start_worker(self, source: str) -> SourceWorker:
        """Start following a source (no-op if already followed)."""
        existing = self._workers.get(source)
        if existing is not None:
            return existing

        self.store.add_source(source)
        worker = SourceWorker(
            source=source,
            line_source=self.line_source_factory(source),
            store=self.store,
            on_need_change=self.on_need_change,
            clock=self.clock,
        )
        self._workers[source] = worker
        await worker.start()
        return worker

    async def stop_worker(self, source: str, reason: str = "") -> bool:
        """Stop a worker and discard its source's state.

        Returns:
            True if a worker was stopped, False if none was running.
        """
        worker = self._workers.pop(source, None)
        if worker is None:
            return False
        await worker.stop(timeout=self.policy.worker_stop_timeout)
        self.store.drop_source(source)
        logger.debug(f"Removed worker for {source} ({reason})")
        return True

    def status(self) -> list[WorkerStatus]:
        return [
            WorkerStatus(
                source=source,
                state=worker.state,
                lines_seen=worker.lines_seen,
                events_applied=worker.events_applied,
                last_line_at=worker.last_line_at,
                started_at=worker.started_at,
            )
            for source, worker in sorted(self._workers.items())
        ]

    @staticmethod
    def _describe_age(age: float) -> str:
        if age == UNREADABLE_AGE:
            return "ever (unreadable)"
        return f"{age / 3600:.1f}h"
