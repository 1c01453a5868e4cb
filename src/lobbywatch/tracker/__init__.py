"""Log interpretation and game state.

Turns raw bot log lines into typed events and applies them to the shared
game state store.
"""

from .errors import AnomalyKind
from .leavers import LeaverRecord, LeaverTracker
from .models import GameState, PlayerState
from .need import NeedEstimator
from .parser import LogRecord, classify, parse_line, parse_log_timestamp, split_line
from .selector import CurrentGameSelector
from .store import GameStateStore, SourceState

__all__ = [
    "AnomalyKind",
    "CurrentGameSelector",
    "GameState",
    "GameStateStore",
    "LeaverRecord",
    "LeaverTracker",
    "LogRecord",
    "NeedEstimator",
    "PlayerState",
    "SourceState",
    "classify",
    "parse_line",
    "parse_log_timestamp",
    "split_line",
]
