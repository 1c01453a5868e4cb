"""Line sources feeding source workers.

LogTailer follows a growing log file: it remembers its byte offset and
reads only what was appended since the last read. A watchdog observer wakes
it on filesystem events; the poll interval is the fallback when events are
missed (network filesystems, editors replacing the file, ...).

LineInbox is an in-memory line source for feeding a worker directly.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, AsyncIterator, Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..config import get_validated_config

logger = logging.getLogger(__name__)


class LineSource(Protocol):
    """What a source worker consumes: ordered lines and a way to stop them."""

    def lines(self) -> AsyncIterator[str]:
        """Yield lines in log order until exhausted or stopped."""
        ...

    def stop(self) -> None:
        """Ask the iterator to finish soon."""
        ...


class LogFileHandler(FileSystemEventHandler):
    """Signals a tailer when its log file changes."""

    def __init__(self, file_path: Path, notify: Any) -> None:
        self.file_path = file_path
        self.notify = notify

    def _matches(self, path: str | bytes) -> bool:
        if isinstance(path, bytes):
            path = path.decode()
        return Path(path).name == self.file_path.name

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.src_path):
            self.notify()

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.src_path):
            self.notify()

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.dest_path):
            self.notify()


class LogTailer:
    """Incrementally read complete lines appended to a log file."""

    def __init__(
        self,
        path: str | Path,
        poll_interval: float | None = None,
        use_watchdog: bool | None = None,
        encoding: str | None = None,
        start_at_end: bool | None = None,
    ) -> None:
        config = get_validated_config().tailer
        self.path = Path(path)
        self.poll_interval = poll_interval if poll_interval is not None else config.poll_interval
        self.use_watchdog = use_watchdog if use_watchdog is not None else config.use_watchdog
        self.encoding = encoding or config.encoding
        self.start_at_end = start_at_end if start_at_end is not None else config.start_at_end

        self.file_position: int | None = None
        self._inode: int | None = None
        self._partial = b""
        self._stopping = False
        self._changed: asyncio.Event | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._observer: Any = None

    def read_available(self) -> list[str]:
        """Read every complete line appended since the previous call.

        The first call positions the tailer (end of file unless
        start_at_end is off). A shrunken or replaced file is re-read from
        the start; a trailing line without newline waits for completion.
        """
        try:
            stat = os.stat(self.path)
        except OSError:
            return []

        if self.file_position is None:
            self.file_position = stat.st_size if self.start_at_end else 0
            self._inode = stat.st_ino
        elif stat.st_ino != self._inode or stat.st_size < self.file_position:
            logger.info(f"Log {self.path} was truncated or replaced, rereading")
            self.file_position = 0
            self._partial = b""
            self._inode = stat.st_ino

        if stat.st_size == self.file_position:
            return []

        try:
            with open(self.path, "rb") as f:
                f.seek(self.file_position)
                data = f.read()
                self.file_position = f.tell()
        except OSError as e:
            logger.warning(f"Could not read {self.path}: {e}")
            return []

        chunks = (self._partial + data).split(b"\n")
        self._partial = chunks.pop()
        return [c.decode(self.encoding, errors="replace").rstrip("\r") for c in chunks]

    async def lines(self) -> AsyncIterator[str]:
        """Yield lines as they are appended, until stop() is called."""
        self._loop = asyncio.get_running_loop()
        self._changed = asyncio.Event()
        self._start_observer()
        try:
            while not self._stopping:
                for line in self.read_available():
                    yield line
                    if self._stopping:
                        return
                try:
                    await asyncio.wait_for(self._changed.wait(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    pass
                self._changed.clear()
        finally:
            self._stop_observer()

    def stop(self) -> None:
        self._stopping = True
        self._notify()

    def _notify(self) -> None:
        if self._loop is None or self._changed is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._changed.set)

    def _start_observer(self) -> None:
        if not self.use_watchdog or self._observer is not None:
            return
        directory = self.path.resolve().parent
        if not directory.is_dir():
            logger.debug(f"{directory} does not exist, polling {self.path}")
            return
        observer = Observer()
        observer.schedule(LogFileHandler(self.path, self._notify), str(directory), recursive=False)
        observer.start()
        self._observer = observer

    def _stop_observer(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=1.0)
            self._observer = None


class LineInbox:
    """In-memory line source: lines put in come out in the same order."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._closed = False

    def put(self, line: str) -> None:
        if self._closed:
            raise RuntimeError("Inbox is closed")
        self._queue.put_nowait(line)

    def close(self) -> None:
        """End the stream once queued lines are consumed."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    def stop(self) -> None:
        self.close()

    async def lines(self) -> AsyncIterator[str]:
        while True:
            line = await self._queue.get()
            if line is None:
                return
            yield line
