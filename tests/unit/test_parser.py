"""Unit tests for the log line parser.

Covers the line grammar, queued (bot-level) messages, per-game messages,
first-match precedence and the log timestamp format.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

import pytest

from lobbywatch.tracker.events import (
    BannedJoinAttempt,
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
    game_name_of,
)
from lobbywatch.tracker.parser import (
    LogRecord,
    classify,
    parse_line,
    parse_log_timestamp,
    split_line,
)

GAME = "Dota -apem GhostGraz #2915"


class TestSplitLine:
    """Tests for the [timestamp] [context] payload grammar."""

    def test_splits_three_fields(self) -> None:
        record = split_line(f"[Sat Oct  2 06:31:47 2010] [GAME: {GAME}] player joined\n")
        assert record == LogRecord("Sat Oct  2 06:31:47 2010", f"GAME: {GAME}", "player joined")

    def test_strips_crlf(self) -> None:
        record = split_line("[t] [GHOST] shutting down\r\n")
        assert record is not None
        assert record.payload == "shutting down"

    @pytest.mark.parametrize(
        "line",
        ["", "no brackets at all", "[only timestamp] payload", "garbage [x] [y] z"],
    )
    def test_non_grammar_lines(self, line: str) -> None:
        assert split_line(line) is None

    def test_non_grammar_line_is_unrecognized(self) -> None:
        event = parse_line("random noise\n")
        assert isinstance(event, Unrecognized)
        assert event.reason == "grammar"
        assert event.line == "random noise"


class TestQueuedMessages:
    """Tests for QUEUED context classification."""

    def test_public_create(self, make_line: Callable[..., str]) -> None:
        event = parse_line(make_line("QUEUED: europe.battle.net", f"Creating public game [{GAME}]."))
        assert event == GameCreateRequested(name=GAME, visibility="public", owner=None)

    def test_whispered_private_create(self, make_line: Callable[..., str]) -> None:
        event = parse_line(make_line("QUEUED: europe.battle.net", f"/w fotis Creating private game [{GAME}]"))
        assert event == GameCreateRequested(name=GAME, visibility="private", owner="fotis")

    def test_game_over(self, make_line: Callable[..., str]) -> None:
        event = parse_line(
            make_line("QUEUED: europe.battle.net", f"Game [{GAME} : fotis : 9/10 : 42m] is over.")
        )
        assert isinstance(event, GameEnded)
        assert event.name == GAME
        assert event.owner == "fotis"
        assert (event.stayed, event.total) == (9, 10)
        assert event.duration_minutes == 42.0

    def test_create_failed(self, make_line: Callable[..., str]) -> None:
        event = parse_line(
            make_line("QUEUED: europe.battle.net", f"Unable to create game [{GAME}] because it is too long")
        )
        assert event == GameCreateFailed(name=GAME, reason="because it is too long")

    def test_other_queued_message(self, make_line: Callable[..., str]) -> None:
        event = parse_line(make_line("QUEUED: europe.battle.net", "/w root you are the root admin"))
        assert isinstance(event, Unrecognized)


class TestGameMessages:
    """Tests for GAME: context classification."""

    def test_need_announcement(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(
            GAME,
            "[Local]: Waiting for 3 more players before the game will automatically start.",
        )
        assert parse_line(line) == LobbyNeedAnnounced(name=GAME, needed=3)

    def test_need_announcement_singular(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(
            GAME,
            "[Local]: Waiting for 1 more player before the game will automatically start.",
        )
        assert parse_line(line) == LobbyNeedAnnounced(name=GAME, needed=1)

    def test_pinging(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(GAME, "[Local]: Waiting to start until players have been pinged")
        assert parse_line(line) == LobbyPinging(name=GAME)

    def test_other_local_message(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(GAME, "[Local]: HCL command string is [ap]")
        assert parse_line(line) == LobbyChat(name=GAME, speaker=None)

    def test_lobby_chat(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(GAME, "[Lobby] [fotis]: gogo")
        assert parse_line(line) == LobbyChat(name=GAME, speaker="fotis")

    def test_hcl_set_uses_payload(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(GAME, "admin [root] sent command [hcl] with payload [arso]")
        assert parse_line(line) == HclSet(name=GAME, value="arso", admin="root")

    def test_hcl_cleared(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(GAME, "admin [root] sent command [clearhcl] with payload []")
        assert parse_line(line) == HclCleared(name=GAME, admin="root")

    def test_rehost(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(GAME, "trying to rehost as public game [Dota -apem GhostGraz #2916]")
        event = parse_line(line)
        assert event == RehostRequested(
            old_name=GAME, new_name="Dota -apem GhostGraz #2916", visibility="public"
        )
        assert game_name_of(event) == GAME

    def test_loading(self, game_line: Callable[[str, str], str]) -> None:
        assert parse_line(game_line(GAME, "started loading with 10 players")) == LoadingStarted(
            name=GAME, player_count=10
        )

    def test_hcl_encoded(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(GAME, "successfully encoded HCL command string [apem]")
        assert parse_line(line) == HclEncoded(name=GAME, value="apem")

    def test_join(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(GAME, "player [fotis|84.112.3.4] joined the game")
        assert parse_line(line) == PlayerJoined(name=GAME, player="fotis", ip="84.112.3.4")

    def test_leave(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(GAME, "deleting player [fotis]: has left the game voluntarily")
        assert parse_line(line) == PlayerLeft(
            name=GAME, player="fotis", reason="has left the game voluntarily"
        )

    def test_ingame_chat(self, game_line: Callable[[str, str], str]) -> None:
        assert parse_line(game_line(GAME, "(12:31) [All] [fotis]: gg")) == InGameChat(name=GAME)

    def test_banned(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(GAME, "player [troll] is trying to join the game but is banned")
        assert parse_line(line) == BannedJoinAttempt(name=GAME)

    def test_latency(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(GAME, "warning - the latency is 200ms, it's too high")
        assert parse_line(line) == LatencyWarning(name=GAME)

    def test_unknown_game_message(self, game_line: Callable[[str, str], str]) -> None:
        event = parse_line(game_line(GAME, "something the bot says rarely"))
        assert isinstance(event, Unrecognized)

    def test_local_wins_over_later_patterns(self, game_line: Callable[[str, str], str]) -> None:
        """A [Local] message quoting a join line is still lobby chat."""
        line = game_line(GAME, "[Local]: player [x|1.2.3.4] joined the game")
        assert isinstance(parse_line(line), LobbyChat)

    def test_player_typed_local_prefix_is_chat(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(
            GAME,
            "[Lobby] [troll]: [Local]: Waiting for 1 more players before the game will automatically start.",
        )
        assert parse_line(line) == LobbyChat(name=GAME, speaker="troll")


class TestOtherContexts:
    """Tests for contexts that are neither QUEUED nor GAME."""

    def test_shutdown(self, make_line: Callable[..., str]) -> None:
        assert parse_line(make_line("GHOST", "shutting down")) == ShutdownAnnounced()

    def test_unknown_context(self, make_line: Callable[..., str]) -> None:
        event = parse_line(make_line("BNET: europe.battle.net", "connected"))
        assert isinstance(event, Unrecognized)

    def test_queued_needs_server_alias(self, make_line: Callable[..., str]) -> None:
        event = parse_line(make_line("QUEUED", f"Creating public game [{GAME}]."))
        assert event == Unrecognized(reason="context QUEUED")

    def test_parse_is_deterministic(self, game_line: Callable[[str, str], str]) -> None:
        line = game_line(GAME, "player [fotis|84.112.3.4] joined the game")
        assert parse_line(line) == parse_line(line)
        record = split_line(line)
        assert record is not None
        assert classify(record) == classify(record)


class TestLogTimestamp:
    """Tests for parse_log_timestamp."""

    def test_ctime_format(self) -> None:
        expected = datetime(2010, 10, 2, 6, 31, 47).timestamp()
        assert parse_log_timestamp("Sat Oct  2 06:31:47 2010") == expected

    def test_invalid_timestamp(self) -> None:
        assert parse_log_timestamp("yesterday") is None
