"""Pytest fixtures for lobbywatch tests.

Common fixtures for feeding log lines through the tracker.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator

import pytest

from lobbywatch.config import get_validated_config, load_config, reset_config
from lobbywatch.config_schema import AppConfig
from lobbywatch.tracker.leavers import LeaverTracker
from lobbywatch.tracker.need import NeedEstimator
from lobbywatch.tracker.store import GameStateStore

SOURCE = "/home/ghost1/ghost.log"
LOG_TIME = "Sat Oct  2 06:31:47 2010"


@pytest.fixture(autouse=True)
def default_config(tmp_path: Path) -> Iterator[AppConfig]:
    """Run every test against schema defaults, not the checked-in config file."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text("{}\n")
    load_config(config_path)
    yield get_validated_config()
    reset_config()


@pytest.fixture
def make_line() -> Callable[..., str]:
    """Build a raw bot log line."""

    def _make(context: str, payload: str, ts: str = LOG_TIME) -> str:
        return f"[{ts}] [{context}] {payload}\n"

    return _make


@pytest.fixture
def game_line(make_line: Callable[..., str]) -> Callable[[str, str], str]:
    """Build a line logged in a game's context."""

    def _make(name: str, payload: str) -> str:
        return make_line(f"GAME: {name}", payload)

    return _make


@pytest.fixture
def leavers() -> LeaverTracker:
    return LeaverTracker(retention_seconds=3600)


@pytest.fixture
def store(leavers: LeaverTracker) -> GameStateStore:
    """A store with the stock lobby sizes and grace window."""
    return GameStateStore(
        leavers=leavers,
        estimator=NeedEstimator(default_slots=10, six_v_six_slots=12),
        create_grace_seconds=10.0,
    )
