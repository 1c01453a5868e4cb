"""Unit tests for line sources.

Tests incremental log reading including:
- Start position (end of file or beginning)
- Partial trailing lines
- Truncation and file replacement
- Async iteration and stop
- LineInbox ordering and close
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest

from lobbywatch.monitor.tailer import LineInbox, LogTailer


def _append(path: Path, data: bytes) -> None:
    with open(path, "ab") as f:
        f.write(data)


class TestReadAvailable:
    """Tests for LogTailer.read_available."""

    def test_starts_at_end(self, tmp_path: Path) -> None:
        log = tmp_path / "ghost.log"
        log.write_bytes(b"old line\n")
        tailer = LogTailer(log, start_at_end=True, use_watchdog=False)

        assert tailer.read_available() == []
        _append(log, b"new line\n")
        assert tailer.read_available() == ["new line"]

    def test_starts_at_beginning(self, tmp_path: Path) -> None:
        log = tmp_path / "ghost.log"
        log.write_bytes(b"one\ntwo\n")
        tailer = LogTailer(log, start_at_end=False, use_watchdog=False)
        assert tailer.read_available() == ["one", "two"]
        assert tailer.read_available() == []

    def test_partial_line_waits_for_newline(self, tmp_path: Path) -> None:
        log = tmp_path / "ghost.log"
        log.write_bytes(b"")
        tailer = LogTailer(log, start_at_end=False, use_watchdog=False)

        _append(log, b"half a li")
        assert tailer.read_available() == []
        _append(log, b"ne\r\nnext\n")
        assert tailer.read_available() == ["half a line", "next"]

    def test_invalid_utf8_is_replaced(self, tmp_path: Path) -> None:
        log = tmp_path / "ghost.log"
        log.write_bytes(b"caf\xe9\n")
        tailer = LogTailer(log, start_at_end=False, use_watchdog=False)
        assert tailer.read_available() == ["caf�"]

    def test_truncation_rereads_from_start(self, tmp_path: Path) -> None:
        log = tmp_path / "ghost.log"
        log.write_bytes(b"a fairly long first line\n")
        tailer = LogTailer(log, start_at_end=False, use_watchdog=False)
        tailer.read_available()

        log.write_bytes(b"short\n")
        assert tailer.read_available() == ["short"]

    def test_replaced_file_rereads_from_start(self, tmp_path: Path) -> None:
        log = tmp_path / "ghost.log"
        log.write_bytes(b"first\n")
        tailer = LogTailer(log, start_at_end=False, use_watchdog=False)
        tailer.read_available()

        replacement = tmp_path / "ghost.log.new"
        replacement.write_bytes(b"rotated\nfile here\n")
        os.replace(replacement, log)

        assert tailer.read_available() == ["rotated", "file here"]

    def test_missing_file(self, tmp_path: Path) -> None:
        tailer = LogTailer(tmp_path / "absent.log", use_watchdog=False)
        assert tailer.read_available() == []


class TestLines:
    """Tests for async iteration."""

    @pytest.mark.asyncio
    async def test_yields_appended_lines(self, tmp_path: Path) -> None:
        log = tmp_path / "ghost.log"
        log.write_bytes(b"before start\n")
        tailer = LogTailer(log, poll_interval=0.01, start_at_end=True, use_watchdog=False)
        received: list[str] = []

        async def consume() -> None:
            async for line in tailer.lines():
                received.append(line)

        task = asyncio.create_task(consume())
        await asyncio.sleep(0.05)
        _append(log, b"first\nsecond\n")
        for _ in range(100):
            if len(received) == 2:
                break
            await asyncio.sleep(0.01)

        tailer.stop()
        await asyncio.wait_for(task, timeout=1.0)
        assert received == ["first", "second"]

    @pytest.mark.asyncio
    async def test_stop_ends_idle_iteration(self, tmp_path: Path) -> None:
        log = tmp_path / "ghost.log"
        log.write_bytes(b"")
        tailer = LogTailer(log, poll_interval=10.0, use_watchdog=True)

        async def consume() -> list[str]:
            return [line async for line in tailer.lines()]

        task = asyncio.create_task(consume())
        await asyncio.sleep(0.05)
        tailer.stop()
        assert await asyncio.wait_for(task, timeout=2.0) == []


class TestLineInbox:
    """Tests for the in-memory line source."""

    @pytest.mark.asyncio
    async def test_preserves_order_until_closed(self) -> None:
        inbox = LineInbox()
        for line in ("a", "b", "c"):
            inbox.put(line)
        inbox.close()
        assert [line async for line in inbox.lines()] == ["a", "b", "c"]

    def test_put_after_close(self) -> None:
        inbox = LineInbox()
        inbox.close()
        with pytest.raises(RuntimeError):
            inbox.put("late")
