"""Index of players who recently left a started game.

Kept by name and by IP so downstream consumers can spot a leaver coming
back under another account. Purely additive: nothing here feeds back into
game selection or need counting.
"""

from __future__ import annotations

import logging
import threading
import weakref
from dataclasses import dataclass, field

from ..config import get_validated_config
from .models import GameState

logger = logging.getLogger(__name__)


@dataclass
class LeaverRecord:
    """A player who left a game after it had started.

    ``game`` is a weak back-reference: it resolves to None once the game
    entry has been discarded (bot restart, log teardown).
    """

    name: str
    left_at: float
    game_name: str
    ip: str | None = None
    _game_ref: weakref.ref[GameState] | None = field(default=None, repr=False, compare=False)

    @property
    def game(self) -> GameState | None:
        if self._game_ref is None:
            return None
        return self._game_ref()


class LeaverTracker:
    """Thread-safe recent-leaver index."""

    def __init__(self, retention_seconds: float | None = None) -> None:
        if retention_seconds is None:
            retention_seconds = get_validated_config().leavers.retention_seconds
        self.retention_seconds = retention_seconds
        self._by_name: dict[str, LeaverRecord] = {}
        self._by_ip: dict[str, LeaverRecord] = {}
        self._lock = threading.Lock()

    def record(
        self,
        name: str,
        ip: str | None,
        left_at: float,
        game: GameState | None = None,
    ) -> LeaverRecord:
        """Remember a leaver, replacing older records for the same name or IP."""
        leaver = LeaverRecord(
            name=name,
            ip=ip,
            left_at=left_at,
            game_name=game.name if game is not None else "",
            _game_ref=weakref.ref(game) if game is not None else None,
        )
        with self._lock:
            self._by_name[name] = leaver
            if ip:
                self._by_ip[ip] = leaver
        logger.info(
            f"Leaver {name} left {leaver.game_name or 'unknown game'}",
            extra={"player": name, "ip": ip},
        )
        return leaver

    def by_name(self, name: str) -> LeaverRecord | None:
        with self._lock:
            return self._by_name.get(name)

    def by_ip(self, ip: str) -> LeaverRecord | None:
        with self._lock:
            return self._by_ip.get(ip)

    def records(self) -> list[LeaverRecord]:
        """All records indexed by name, most recent first."""
        with self._lock:
            return sorted(self._by_name.values(), key=lambda r: r.left_at, reverse=True)

    def prune(self, now: float) -> int:
        """Drop records older than the retention window.

        Returns:
            Number of name records removed.
        """
        cutoff = now - self.retention_seconds
        with self._lock:
            old_names = [n for n, r in self._by_name.items() if r.left_at < cutoff]
            for n in old_names:
                del self._by_name[n]
            old_ips = [ip for ip, r in self._by_ip.items() if r.left_at < cutoff]
            for ip in old_ips:
                del self._by_ip[ip]
        return len(old_names)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_name)
