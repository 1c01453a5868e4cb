"""Application wiring and command line entry point.

Usage:
    lobbywatch                              # defaults from config/config.yaml
    lobbywatch --pattern '/home/ghost*/ghost.log' --serve
    lobbywatch --replay testlogs/ghost1/ghost.log
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from .config import get_validated_config, load_config, set_config_value
from .config_schema import AppConfig
from .dashboard.models import SnapshotEntry
from .dashboard.reporter import SnapshotReporter
from .dashboard.sinks import JsonFileSink, SnapshotSink, snapshot_to_json
from .monitor.discovery import discover_sources
from .monitor.supervisor import Supervisor
from .monitor.tailer import LineInbox
from .monitor.worker import SourceWorker
from .tracker.leavers import LeaverTracker
from .tracker.need import NeedEstimator
from .tracker.store import GameStateStore

logger = logging.getLogger(__name__)


def configure_logging(config: AppConfig | None = None) -> None:
    """Apply the logging section of the config to the root logger."""
    if config is None:
        config = get_validated_config()
    logging.basicConfig(
        level=getattr(logging, config.logging.level),
        format=config.logging.format,
        force=True,
    )
    # one access line per API poll is noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class LobbyWatch:
    """Owns the store, reporter and supervisor of one running process."""

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or get_validated_config()
        self.store = GameStateStore(
            leavers=LeaverTracker(self.config.leavers.retention_seconds),
            estimator=NeedEstimator(
                self.config.tracker.default_slots, self.config.tracker.six_v_six_slots
            ),
            create_grace_seconds=self.config.tracker.create_grace_seconds,
            forget_after_seconds=self.config.tracker.forget_after_seconds,
        )
        sinks: list[SnapshotSink] = []
        if self.config.reporter.output_file:
            sinks.append(JsonFileSink(self.config.reporter.output_file))
        self.reporter = SnapshotReporter(self.store, sinks=sinks)
        pattern = self.config.discovery.pattern
        self.supervisor = Supervisor(
            self.store,
            on_need_change=self.reporter.request,
            discover=lambda: discover_sources(pattern),
        )

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Run until stop_event is set (or SIGINT/SIGTERM when not given)."""
        if stop_event is None:
            stop_event = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(sig, stop_event.set)
                except (NotImplementedError, RuntimeError):
                    pass

        await self.supervisor.start()
        reporter_task = asyncio.create_task(self.reporter.run(), name="reporter")
        server_task: asyncio.Task[None] | None = None
        if self.config.server.enabled:
            from .dashboard.server import create_app, serve

            app = create_app(self.reporter, self.supervisor)
            server_task = asyncio.create_task(
                serve(app, self.config.server.host, self.config.server.port), name="server"
            )
            logger.info(
                f"Serving snapshots on http://{self.config.server.host}:{self.config.server.port}"
            )

        try:
            await stop_event.wait()
        finally:
            logger.info("Shutting down")
            self.reporter.stop()
            try:
                await asyncio.wait_for(
                    self.supervisor.stop(), timeout=self.config.timeouts.supervisor_stop
                )
            except asyncio.TimeoutError:
                logger.warning("Supervisor did not stop in time")
            await reporter_task
            if server_task is not None:
                server_task.cancel()
                try:
                    await server_task
                except asyncio.CancelledError:
                    pass


def replay(paths: list[str], config: AppConfig | None = None) -> list[SnapshotEntry]:
    """Read whole log files offline and return the resulting snapshot.

    Event time comes from the log lines, so the snapshot describes the
    moment the last replayed line was written.
    """
    app = LobbyWatch(config)
    clock_now = 0.0

    def log_clock() -> float:
        return clock_now

    for path in paths:
        worker = SourceWorker(path, LineInbox(), app.store, clock=log_clock, timestamps="log")
        with open(path, encoding=app.config.tailer.encoding, errors="replace") as f:
            for line in f:
                worker.process_line(line)
        for game in app.store.games(path):
            clock_now = max(clock_now, game.last_seen)

    app.reporter.clock = log_clock
    return app.reporter.build_snapshot()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lobbywatch",
        description="Follow hosting bot logs and report the games currently forming",
    )
    parser.add_argument("--config", help="Path to config YAML (default: config/config.yaml)")
    parser.add_argument("--pattern", help="Glob pattern of bot logs to watch")
    parser.add_argument("--output", help="Write the JSON snapshot to this file")
    parser.add_argument("--log-level", help="Override logging.level")
    parser.add_argument("--serve", action="store_true", help="Serve snapshots over HTTP")
    parser.add_argument("--port", type=int, help="HTTP port (with --serve)")
    parser.add_argument(
        "--replay",
        nargs="+",
        metavar="LOG",
        help="Read these logs from the start, print the snapshot and exit",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        load_config(args.config)
        if args.pattern:
            set_config_value("discovery.pattern", args.pattern)
        if args.output:
            set_config_value("reporter.output_file", args.output)
        if args.log_level:
            set_config_value("logging.level", args.log_level)
        if args.serve:
            set_config_value("server.enabled", True)
        if args.port:
            set_config_value("server.port", args.port)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    config = get_validated_config()
    configure_logging(config)

    if args.replay:
        missing = [p for p in args.replay if not Path(p).is_file()]
        if missing:
            print(f"Error: no such log: {', '.join(missing)}", file=sys.stderr)
            return 2
        print(snapshot_to_json(replay(args.replay, config)))
        return 0

    asyncio.run(LobbyWatch(config).run())
    return 0


if __name__ == "__main__":
    sys.exit(main())
