"""Finding bot logs on disk.

Logs generally live in ``/home/ghostXX/ghost.log`` where XX is the bot
number, so both the list of sources and each bot's display name derive
from paths.
"""

from __future__ import annotations

import glob
import logging
import os
import re
import time
from pathlib import Path

from ..config import get_validated_config

logger = logging.getLogger(__name__)

# Age reported for logs we cannot read: older than any staleness threshold.
UNREADABLE_AGE: float = float("inf")


def discover_sources(pattern: str | None = None) -> list[str]:
    """List log files matching the discovery glob, sorted."""
    if pattern is None:
        pattern = get_validated_config().discovery.pattern
    return sorted(p for p in glob.glob(pattern, recursive=True) if os.path.isfile(p))


def file_age(path: str | Path, now: float | None = None) -> float:
    """Seconds since a log was last modified (UNREADABLE_AGE if inaccessible)."""
    if not os.access(path, os.R_OK):
        return UNREADABLE_AGE
    try:
        mtime = os.stat(path).st_mtime
    except OSError:
        return UNREADABLE_AGE
    if now is None:
        now = time.time()
    return max(0.0, now - mtime)


def bot_name(
    path: str | Path,
    prefix: str | None = None,
    display_prefix: str | None = None,
) -> str:
    """Display name of the bot writing a log.

    The bot is named after the directory holding its log, with the install
    prefix swapped for the display prefix (``/home/ghost1/ghost.log`` ->
    ``ghostgraz1``).
    """
    if prefix is None or display_prefix is None:
        tracker = get_validated_config().tracker
        prefix = prefix if prefix is not None else tracker.bot_prefix
        display_prefix = display_prefix if display_prefix is not None else tracker.bot_display_prefix

    directory = Path(os.path.abspath(path)).parent.name
    if not prefix:
        return directory
    return re.sub(rf"^{re.escape(prefix)}(?=\d)", lambda _: display_prefix, directory)
