"""Players-still-needed estimation.

Easy when we followed the game from its creation (or an autostart
announcement): the counter maintained from joins and leaves is exact.
Otherwise guess from the lobby size implied by the game name.
"""

from __future__ import annotations

import re

from ..config import get_validated_config
from .models import GameState

SIX_V_SIX_RE = re.compile(r"6\s*v\s*6", re.IGNORECASE)


class NeedEstimator:
    """Computes how many players a lobby still needs."""

    def __init__(
        self,
        default_slots: int | None = None,
        six_v_six_slots: int | None = None,
    ) -> None:
        if default_slots is None or six_v_six_slots is None:
            tracker = get_validated_config().tracker
            default_slots = default_slots if default_slots is not None else tracker.default_slots
            six_v_six_slots = six_v_six_slots if six_v_six_slots is not None else tracker.six_v_six_slots
        self.default_slots = default_slots
        self.six_v_six_slots = six_v_six_slots

    def slots_for(self, game_name: str) -> int:
        """Lobby size inferred from the game name."""
        if SIX_V_SIX_RE.search(game_name):
            return self.six_v_six_slots
        return self.default_slots

    def estimate(self, game: GameState) -> int:
        """Players still needed; may be negative when leaves were missed."""
        if game.reliable:
            return game.need_count
        return self.slots_for(game.name) - len(game.present_players())
