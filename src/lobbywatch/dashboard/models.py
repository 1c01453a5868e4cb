"""Pydantic models for snapshots and API responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SnapshotPlayer(BaseModel):
    """A player currently in the lobby."""
    name: str
    statsdota: str = ""


class SnapshotEntry(BaseModel):
    """The current game of one bot."""
    gamename: str
    botname: str
    need: int
    players: dict[str, SnapshotPlayer] = Field(default_factory=dict)


class SourceInfo(BaseModel):
    """One watched log and its worker."""
    source: str
    botname: str
    state: str
    lines_seen: int = 0
    events_applied: int = 0
    last_line_at: float | None = None
    started_at: float | None = None
    games: int = 0
    anomalies: dict[str, int] = Field(default_factory=dict)


class LeaverInfo(BaseModel):
    """A recent leaver."""
    name: str
    ip: str | None = None
    left_at: float
    game_name: str
    game_live: bool = False  # the game entry is still tracked


class HealthResponse(BaseModel):
    status: str = "ok"
    sources: int = 0
    snapshot_entries: int = 0
    last_report_at: float | None = None
