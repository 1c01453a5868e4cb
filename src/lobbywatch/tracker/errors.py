"""Anomaly taxonomy for log interpretation.

Nothing in this list is fatal. Each kind is counted per source by the
game state store and logged at the level noted below, so the process keeps
running on best-effort heuristics.

Usage:
    from lobbywatch.tracker.errors import AnomalyKind

    store.record_anomaly(source, AnomalyKind.REFERENCE_MISS)
"""

from enum import Enum


class AnomalyKind(str, Enum):
    """Classes of non-fatal problems met while following a log.

    - PARSE_MISMATCH: line not in the log grammar (debug)
    - UNEXPECTED_CREATE: create line for a live, old game; bot restart (warning)
    - REFERENCE_MISS: event names a player never seen joining (debug)
    - SOURCE_STALE: log not modified within the staleness threshold (info)
    - SOURCE_UNREADABLE: log missing or not readable (info)
    """

    PARSE_MISMATCH = "parse_mismatch"
    UNEXPECTED_CREATE = "unexpected_create"
    REFERENCE_MISS = "reference_miss"
    SOURCE_STALE = "source_stale"
    SOURCE_UNREADABLE = "source_unreadable"
