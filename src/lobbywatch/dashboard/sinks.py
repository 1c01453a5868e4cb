"""Where snapshots go."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .models import SnapshotEntry


class SnapshotSink(Protocol):
    """Receives every snapshot the reporter produces."""

    def write(self, entries: list[SnapshotEntry]) -> None:
        ...


def snapshot_to_json(entries: list[SnapshotEntry]) -> str:
    return json.dumps([e.model_dump() for e in entries], indent=2, ensure_ascii=False)


class JsonFileSink:
    """Writes the snapshot as a JSON array, replacing the file atomically.

    Readers (a web page polling the file) never see a half-written file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def write(self, entries: list[SnapshotEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(snapshot_to_json(entries) + "\n")
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def __repr__(self) -> str:
        return f"JsonFileSink({str(self.path)!r})"
