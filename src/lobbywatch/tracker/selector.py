"""Current game selection.

A bot log usually holds several game entries at once: the lobby that is
forming, games in progress, finished games not yet forgotten, and entries
left behind by rehosts we failed to follow. The current game is the first
entry of the ranking below.
"""

from __future__ import annotations

import heapq
from typing import Iterable

from .models import GameState


def _activity_key(game: GameState) -> tuple[bool, float, str]:
    # reliable first, then most recently active, then name
    return (not game.reliable, -game.last_seen, game.name)


def _creation_key(game: GameState) -> tuple[float, tuple[bool, float, str]]:
    return (-(game.created_at or 0.0), _activity_key(game))


def compare(a: GameState, b: GameState) -> int:
    """Order two candidate games; negative means ``a`` ranks first.

    Both created: the newer creation wins, guarding against entries that
    linger after the real current game was created. Otherwise reliable
    games rank before guessed ones, then the most recently active wins.

    The pairwise rules are not transitive over three or more games, so
    ``CurrentGameSelector.rank`` does not sort with them directly.
    """
    if a.was_created and b.was_created and a.created_at != b.created_at:
        key_a, key_b = _creation_key(a), _creation_key(b)
    else:
        key_a, key_b = _activity_key(a), _activity_key(b)
    return (key_a > key_b) - (key_a < key_b)


class CurrentGameSelector:
    """Picks the single lobby that represents what is forming right now."""

    def candidates(self, games: Iterable[GameState]) -> list[GameState]:
        """Games that may still be the current one (not started, not stopped)."""
        return [g for g in games if not g.is_obsolete]

    def rank(self, games: Iterable[GameState]) -> list[GameState]:
        """Order candidates independently of the order they are given in.

        Created games are ranked among themselves by creation time, the
        rest by activity; the two rankings are then merged by activity, so
        any two neighbours obey ``compare``.
        """
        created: list[GameState] = []
        others: list[GameState] = []
        for game in self.candidates(games):
            (created if game.was_created else others).append(game)
        created.sort(key=_creation_key)
        others.sort(key=_activity_key)
        return list(heapq.merge(created, others, key=_activity_key))

    def select(self, games: Iterable[GameState]) -> GameState | None:
        ranked = self.rank(games)
        return ranked[0] if ranked else None
