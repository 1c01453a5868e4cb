"""Typed events recognised in hosting bot logs.

The set is closed: the parser only ever produces one of the classes in
EVENT_TYPES and the store has a handler for each of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


# =============================================================================
# QUEUED (bot-level) EVENTS
# =============================================================================

@dataclass(frozen=True)
class GameCreateRequested:
    """A game is being created, optionally on request of a whisperer."""

    name: str
    visibility: str  # "public" or "private"
    owner: str | None = None


@dataclass(frozen=True)
class GameEnded:
    """Game summary line written when a game is over."""

    name: str
    owner: str
    stayed: int
    total: int
    duration_minutes: float


@dataclass(frozen=True)
class GameCreateFailed:
    """The bot refused to create a game (name taken, too long, ...)."""

    name: str
    reason: str = ""


# =============================================================================
# GAME (per-lobby) EVENTS
# =============================================================================

@dataclass(frozen=True)
class LobbyNeedAnnounced:
    """Autostart announcement: "Waiting for N more players ..."."""

    name: str
    needed: int


@dataclass(frozen=True)
class LobbyPinging:
    name: str


@dataclass(frozen=True)
class LobbyChat:
    """Any other lobby message; speaker is None for messages from the bot."""

    name: str
    speaker: str | None = None


@dataclass(frozen=True)
class HclSet:
    name: str
    value: str
    admin: str | None = None


@dataclass(frozen=True)
class HclCleared:
    name: str
    admin: str | None = None


@dataclass(frozen=True)
class RehostRequested:
    old_name: str
    new_name: str
    visibility: str = "public"

    @property
    def name(self) -> str:
        """The game the rehost line was logged under."""
        return self.old_name


@dataclass(frozen=True)
class LoadingStarted:
    name: str
    player_count: int


@dataclass(frozen=True)
class HclEncoded:
    """HCL string as actually encoded by the bot (authoritative for private games)."""

    name: str
    value: str


@dataclass(frozen=True)
class PlayerJoined:
    name: str
    player: str
    ip: str


@dataclass(frozen=True)
class PlayerLeft:
    name: str
    player: str
    reason: str


@dataclass(frozen=True)
class InGameChat:
    name: str


@dataclass(frozen=True)
class BannedJoinAttempt:
    name: str


@dataclass(frozen=True)
class LatencyWarning:
    name: str


# =============================================================================
# OTHER
# =============================================================================

@dataclass(frozen=True)
class ShutdownAnnounced:
    """The bot process is shutting down."""


@dataclass(frozen=True)
class Unrecognized:
    reason: str = ""
    line: str = ""


Event = Union[
    GameCreateRequested,
    GameEnded,
    GameCreateFailed,
    LobbyNeedAnnounced,
    LobbyPinging,
    LobbyChat,
    HclSet,
    HclCleared,
    RehostRequested,
    LoadingStarted,
    HclEncoded,
    PlayerJoined,
    PlayerLeft,
    InGameChat,
    BannedJoinAttempt,
    LatencyWarning,
    ShutdownAnnounced,
    Unrecognized,
]

EVENT_TYPES: tuple[type, ...] = (
    GameCreateRequested,
    GameEnded,
    GameCreateFailed,
    LobbyNeedAnnounced,
    LobbyPinging,
    LobbyChat,
    HclSet,
    HclCleared,
    RehostRequested,
    LoadingStarted,
    HclEncoded,
    PlayerJoined,
    PlayerLeft,
    InGameChat,
    BannedJoinAttempt,
    LatencyWarning,
    ShutdownAnnounced,
    Unrecognized,
)


def game_name_of(event: Event) -> str | None:
    """Name of the game an event is attributed to, if any."""
    return getattr(event, "name", None)
