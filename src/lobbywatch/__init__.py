"""lobbywatch source package.

Reconstructs currently open game lobbies from live hosting-bot logs:
- config: Configuration loading and management
- tracker: Line parsing, game state store, need estimation, current game selection
- monitor: Log discovery, tailing, per-log workers and their supervisor
- dashboard: Snapshot reporting, sinks and the HTTP status API
"""

from __future__ import annotations

__version__ = "0.3.0"

__all__: list[str] = ["__version__"]
