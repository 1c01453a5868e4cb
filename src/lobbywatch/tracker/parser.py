"""Hosting bot log line parser.

Lines have the shape ``[timestamp] [context] payload``, e.g.::

    [Sat Oct  2 06:31:47 2010] [GAME: Dota -apem GhostGraz #2915] deleting player [fotis]: has left the game voluntarily

``split_line`` checks the grammar, ``classify`` turns a record into exactly
one event. Both are pure; the first matching pattern wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from .events import (
    BannedJoinAttempt,
    Event,
    GameCreateFailed,
    GameCreateRequested,
    GameEnded,
    HclCleared,
    HclEncoded,
    HclSet,
    InGameChat,
    LatencyWarning,
    LoadingStarted,
    LobbyChat,
    LobbyNeedAnnounced,
    LobbyPinging,
    PlayerJoined,
    PlayerLeft,
    RehostRequested,
    ShutdownAnnounced,
    Unrecognized,
)

LINE_RE = re.compile(r"^\[(.+?)\] \[(.+?)\] (.*)")

QUEUED_RE = re.compile(r"^QUEUED: ")
GAME_RE = re.compile(r"^GAME: (.*)")

CREATE_RE = re.compile(
    r"^(?:/w (?P<owner>.*?) )?Creating (?P<visibility>public|private) game \[(?P<name>.*)\]\.?\s*$"
)
ENDED_RE = re.compile(
    r"^Game \[(?P<name>.*?) : (?P<owner>.*?) : (?P<stayed>\d+)/(?P<total>\d+) : (?P<duration>.+)m\] is over\."
)
CREATE_FAILED_RE = re.compile(r"^Unable to create game \[(?P<name>.*?)\] (?P<reason>.*)")

LOCAL_RE = re.compile(r"^\[Local\]: (?P<message>.*)")
NEED_RE = re.compile(r"^Waiting for (?P<needed>\d+) more players? before the game will automatically start")
PINGING_RE = re.compile(r"^Waiting to start until players have been pinged")
LOBBY_CHAT_RE = re.compile(r"^\[Lobby\] \[(?P<speaker>.*?)\]: ")
HCL_SET_RE = re.compile(r"^admin \[(?P<admin>.*?)\] sent command \[hcl\] with payload \[(?P<value>.*)\]")
HCL_CLEAR_RE = re.compile(r"^admin \[(?P<admin>.*?)\] sent command \[clearhcl\]")
REHOST_RE = re.compile(r"^trying to rehost as (?P<visibility>public|private) game \[(?P<name>.*)\]")
LOADING_RE = re.compile(r"^started loading with (?P<count>\d+) players")
HCL_ENCODED_RE = re.compile(r"^successfully encoded HCL command string \[(?P<value>.*)\]")
JOIN_RE = re.compile(r"^player \[(?P<player>.*?)\|(?P<ip>[\d.]+)\] joined the game")
LEAVE_RE = re.compile(r"^deleting player \[(?P<player>.*?)\]: (?P<reason>.*)")
INGAME_CHAT_RE = re.compile(r"^\(\d+:")
BANNED_RE = re.compile(r"is trying to join the game but is banned")
LATENCY_RE = re.compile(r"^warning - the latency")

LOG_TIMESTAMP_FORMAT = "%a %b %d %H:%M:%S %Y"


@dataclass(frozen=True)
class LogRecord:
    """One grammatical log line split into its three fields."""

    timestamp: str
    context: str
    payload: str


def split_line(line: str) -> LogRecord | None:
    """Split a raw line into timestamp, context and payload.

    Returns None when the line does not follow the log grammar.
    """
    match = LINE_RE.match(line.rstrip("\r\n"))
    if match is None:
        return None
    return LogRecord(match.group(1), match.group(2), match.group(3))


def parse_log_timestamp(text: str) -> float | None:
    """Convert a ctime-style bot timestamp to epoch seconds (local time)."""
    try:
        parsed = datetime.strptime(" ".join(text.split()), LOG_TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return parsed.timestamp()


def _classify_queued(payload: str) -> Event:
    if m := CREATE_RE.match(payload):
        return GameCreateRequested(
            name=m.group("name"),
            visibility=m.group("visibility"),
            owner=m.group("owner"),
        )
    if m := ENDED_RE.match(payload):
        return GameEnded(
            name=m.group("name"),
            owner=m.group("owner"),
            stayed=int(m.group("stayed")),
            total=int(m.group("total")),
            duration_minutes=_to_minutes(m.group("duration")),
        )
    if m := CREATE_FAILED_RE.match(payload):
        return GameCreateFailed(name=m.group("name"), reason=m.group("reason"))
    # whois replies, whispers to the root admin, ...
    return Unrecognized(reason="queued message")


def _classify_game(name: str, payload: str) -> Event:
    # bot messages only; a player can type "[Local]:" into chat
    if m := LOCAL_RE.match(payload):
        message = m.group("message")
        if n := NEED_RE.match(message):
            return LobbyNeedAnnounced(name=name, needed=int(n.group("needed")))
        if PINGING_RE.match(message):
            return LobbyPinging(name=name)
        return LobbyChat(name=name)
    if m := LOBBY_CHAT_RE.match(payload):
        return LobbyChat(name=name, speaker=m.group("speaker"))
    if m := HCL_SET_RE.match(payload):
        return HclSet(name=name, value=m.group("value"), admin=m.group("admin"))
    if m := HCL_CLEAR_RE.match(payload):
        return HclCleared(name=name, admin=m.group("admin"))
    if m := REHOST_RE.match(payload):
        return RehostRequested(
            old_name=name, new_name=m.group("name"), visibility=m.group("visibility")
        )
    if m := LOADING_RE.match(payload):
        return LoadingStarted(name=name, player_count=int(m.group("count")))
    if m := HCL_ENCODED_RE.match(payload):
        return HclEncoded(name=name, value=m.group("value"))
    if m := JOIN_RE.match(payload):
        return PlayerJoined(name=name, player=m.group("player"), ip=m.group("ip"))
    if m := LEAVE_RE.match(payload):
        return PlayerLeft(name=name, player=m.group("player"), reason=m.group("reason"))
    if INGAME_CHAT_RE.match(payload):
        return InGameChat(name=name)
    if BANNED_RE.search(payload):
        return BannedJoinAttempt(name=name)
    if LATENCY_RE.match(payload):
        return LatencyWarning(name=name)
    return Unrecognized(reason="game message")


def _to_minutes(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def classify(record: LogRecord) -> Event:
    """Map a log record to exactly one event."""
    if QUEUED_RE.match(record.context):
        return _classify_queued(record.payload)
    if m := GAME_RE.match(record.context):
        return _classify_game(m.group(1), record.payload)
    if record.context == "GHOST" and record.payload.strip() == "shutting down":
        return ShutdownAnnounced()
    return Unrecognized(reason=f"context {record.context}")


def parse_line(line: str) -> Event:
    """Parse a raw log line into an event (Unrecognized if it is not understood)."""
    record = split_line(line)
    if record is None:
        return Unrecognized(reason="grammar", line=line.rstrip("\r\n"))
    return classify(record)
