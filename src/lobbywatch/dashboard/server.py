"""FastAPI status server: read-only view of snapshots, sources and leavers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from ..config import get_validated_config
from .models import HealthResponse, LeaverInfo, SnapshotEntry, SourceInfo
from .reporter import SnapshotReporter

if TYPE_CHECKING:
    from ..monitor.supervisor import Supervisor


def _register_snapshot_routes(app: FastAPI, reporter: SnapshotReporter) -> None:
    @app.get("/api/games", response_model=list[SnapshotEntry])
    async def get_games(fresh: bool = Query(False, description="Build a new snapshot")) -> list[SnapshotEntry]:
        """Current game of every bot."""
        if fresh:
            return reporter.build_snapshot()
        return reporter.latest

    @app.get("/api/games/{botname}", response_model=SnapshotEntry)
    async def get_game(botname: str) -> SnapshotEntry:
        for entry in reporter.latest:
            if entry.botname == botname:
                return entry
        raise HTTPException(status_code=404, detail=f"No current game for bot {botname}")


def _register_source_routes(
    app: FastAPI, reporter: SnapshotReporter, supervisor: Supervisor | None
) -> None:
    store = reporter.store

    @app.get("/api/sources", response_model=list[SourceInfo])
    async def get_sources() -> list[SourceInfo]:
        """Watched logs with worker state and anomaly counters."""
        workers = {s.source: s for s in supervisor.status()} if supervisor else {}
        infos: list[SourceInfo] = []
        for source in sorted(set(store.sources()) | set(workers)):
            status = workers.get(source)
            infos.append(
                SourceInfo(
                    source=source,
                    botname=reporter.bot_namer(source),
                    state=status.state.value if status else "untracked",
                    lines_seen=status.lines_seen if status else 0,
                    events_applied=status.events_applied if status else 0,
                    last_line_at=status.last_line_at if status else None,
                    started_at=status.started_at if status else None,
                    games=len(store.games(source)),
                    anomalies=store.anomalies(source),
                )
            )
        return infos

    @app.get("/api/leavers", response_model=list[LeaverInfo])
    async def get_leavers(
        name: str | None = Query(None, description="Only this player"),
        ip: str | None = Query(None, description="Only this IP"),
    ) -> list[LeaverInfo]:
        """Players who recently left a started game."""
        if name is not None or ip is not None:
            records = [
                r
                for r in (
                    store.leavers.by_name(name) if name is not None else None,
                    store.leavers.by_ip(ip) if ip is not None else None,
                )
                if r is not None
            ]
            records = list({id(r): r for r in records}.values())
        else:
            records = store.leavers.records()
        return [
            LeaverInfo(
                name=r.name,
                ip=r.ip,
                left_at=r.left_at,
                game_name=r.game_name,
                game_live=r.game is not None,
            )
            for r in records
        ]

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            sources=len(store.sources()),
            snapshot_entries=len(reporter.latest),
            last_report_at=reporter.last_report_at,
        )


def create_app(
    reporter: SnapshotReporter,
    supervisor: Supervisor | None = None,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        reporter: Snapshot reporter (its store backs the source and leaver routes)
        supervisor: Supervisor whose workers are listed, if any
        cors_origins: Allowed CORS origins; defaults to server.cors_origins
    """
    if cors_origins is None:
        cors_origins = get_validated_config().server.cors_origins

    app = FastAPI(title="lobbywatch", description="Currently hosted games")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    _register_snapshot_routes(app, reporter)
    _register_source_routes(app, reporter, supervisor)

    return app


async def serve(app: FastAPI, host: str, port: int) -> None:
    """Run the app with uvicorn inside the current event loop."""
    import uvicorn

    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_config=None))
    await server.serve()
