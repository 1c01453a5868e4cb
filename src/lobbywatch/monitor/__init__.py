"""Log discovery, tailing and per-log workers."""

from .discovery import bot_name, discover_sources, file_age
from .supervisor import StalenessPolicy, Supervisor, WorkerStatus
from .tailer import LineInbox, LineSource, LogTailer
from .worker import SourceWorker, WorkerState

__all__ = [
    "LineInbox",
    "LineSource",
    "LogTailer",
    "SourceWorker",
    "StalenessPolicy",
    "Supervisor",
    "WorkerState",
    "WorkerStatus",
    "bot_name",
    "discover_sources",
    "file_age",
]
