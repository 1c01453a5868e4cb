"""Tests for log discovery, file age and bot names."""

from __future__ import annotations

import os
from pathlib import Path

from lobbywatch.config import set_config_value
from lobbywatch.monitor.discovery import UNREADABLE_AGE, bot_name, discover_sources, file_age


class TestDiscoverSources:
    """Tests for discover_sources."""

    def test_sorted_files_only(self, tmp_path: Path) -> None:
        for bot in ("ghost2", "ghost1", "ghost10"):
            (tmp_path / bot).mkdir()
            (tmp_path / bot / "ghost.log").write_text("")
        # a directory matching the pattern is not a log
        (tmp_path / "ghost3" / "ghost.log").mkdir(parents=True)

        found = discover_sources(str(tmp_path / "ghost*" / "ghost.log"))

        assert found == sorted(str(tmp_path / b / "ghost.log") for b in ("ghost1", "ghost10", "ghost2"))

    def test_pattern_from_config(self, tmp_path: Path) -> None:
        (tmp_path / "ghost7").mkdir()
        (tmp_path / "ghost7" / "ghost.log").write_text("")
        set_config_value("discovery.pattern", str(tmp_path / "ghost*" / "ghost.log"))
        assert discover_sources() == [str(tmp_path / "ghost7" / "ghost.log")]

    def test_no_matches(self, tmp_path: Path) -> None:
        assert discover_sources(str(tmp_path / "nothing*.log")) == []


class TestFileAge:
    """Tests for file_age."""

    def test_age_from_mtime(self, tmp_path: Path) -> None:
        log = tmp_path / "ghost.log"
        log.write_text("x\n")
        os.utime(log, (1000.0, 1000.0))
        assert file_age(log, now=1600.0) == 600.0

    def test_future_mtime_is_zero(self, tmp_path: Path) -> None:
        log = tmp_path / "ghost.log"
        log.write_text("x\n")
        os.utime(log, (5000.0, 5000.0))
        assert file_age(log, now=1000.0) == 0.0

    def test_missing_file_is_maximally_stale(self, tmp_path: Path) -> None:
        assert file_age(tmp_path / "gone.log") == UNREADABLE_AGE


class TestBotName:
    """Tests for bot display names."""

    def test_ghost_directory(self) -> None:
        assert bot_name("/home/ghost1/ghost.log") == "ghostgraz1"
        assert bot_name("/home/ghost12/ghost.log") == "ghostgraz12"

    def test_non_numbered_directory_kept(self) -> None:
        assert bot_name("/home/ghostly/ghost.log") == "ghostly"
        assert bot_name("/var/log/bots/ghost.log") == "bots"

    def test_custom_prefixes(self) -> None:
        assert bot_name("/srv/bot3/ghost.log", prefix="bot", display_prefix="eu-bot") == "eu-bot3"

    def test_prefixes_from_config(self) -> None:
        set_config_value("tracker.bot_display_prefix", "ghostvie")
        assert bot_name("/home/ghost4/ghost.log") == "ghostvie4"
