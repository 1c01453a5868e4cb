"""Game and player state reconstructed from a bot log.

Timestamps are epoch seconds. For ``started_at`` three states matter:
``None`` (unknown), ``0`` (a lobby signal proves the game has not started)
and a positive value (the game started at that time).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

HCL_FROM_NAME_RE = re.compile(r"Dota -([a-z]+) ", re.IGNORECASE)

NOT_STARTED = 0.0


@dataclass
class PlayerState:
    """A player seen joining a lobby."""

    name: str
    ip: str | None = None
    joined_at: float = 0.0
    left_at: float | None = None
    left_reason: str | None = None

    @property
    def present(self) -> bool:
        """Whether the player is still in the game."""
        return self.left_at is None

    def leave(self, at: float, reason: str) -> None:
        self.left_at = at
        self.left_reason = reason


@dataclass(eq=False)
class GameState:
    """One game lobby/session hosted by one bot.

    Identity-compared: two GameStates are the same game only if they are
    the same object (leaver records hold weak references to them).
    """

    name: str
    source: str
    first_seen: float
    last_seen: float
    need_count: int = 10
    reliable: bool = False
    owner: str | None = None
    hcl: str = ""
    created_at: float | None = None
    started_at: float | None = None
    stopped_at: float | None = None
    lobby_state: str | None = None
    aliases: list[str] = field(default_factory=list)
    players: dict[str, PlayerState] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.hcl and (match := HCL_FROM_NAME_RE.search(self.name)):
            self.hcl = match.group(1)

    @property
    def has_started(self) -> bool:
        """True once a real start timestamp is known."""
        return self.started_at is not None and self.started_at > 0

    @property
    def has_stopped(self) -> bool:
        return self.stopped_at is not None and self.stopped_at > 0

    @property
    def is_obsolete(self) -> bool:
        """Started or stopped games can no longer be the game currently forming."""
        return self.has_started or self.has_stopped

    @property
    def was_created(self) -> bool:
        return self.created_at is not None and self.created_at > 0

    def touch(self, at: float) -> None:
        """Record activity; last_seen never moves backwards."""
        if at > self.last_seen:
            self.last_seen = at

    def mark_not_started(self) -> None:
        """Lobby evidence: only fills in an unknown start state."""
        if self.started_at is None:
            self.started_at = NOT_STARTED

    def mark_started(self, at: float) -> None:
        """Set the start time unless a real one is already known."""
        if not self.has_started:
            self.started_at = at

    def present_players(self) -> list[PlayerState]:
        return [p for p in self.players.values() if p.present]

    def rename(self, new_name: str) -> None:
        """Rename in place (rehost), remembering the previous name."""
        self.aliases.append(self.name)
        self.name = new_name
