"""Game state store shared by all source workers.

Each source (one bot log) owns a map of game name -> GameState guarded by
its own re-entrant lock. Exactly one worker writes to a source, while the
reporter and the HTTP API read from any thread; the store-level lock only
guards adding and dropping whole sources.

Usage:
    store = GameStateStore()
    game = store.apply("/home/ghost1/ghost.log", event, observed_at=time.time())

    with store.locked(source) as state:
        current = selector.select(state.games.values())
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator

from ..config import get_validated_config
from .errors import AnomalyKind
from .events import (
    EVENT_TYPES,
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
from .leavers import LeaverTracker
from .models import NOT_STARTED, GameState, PlayerState
from .need import NeedEstimator

logger = logging.getLogger(__name__)


@dataclass
class SourceState:
    """All games of one source plus the lock serialising access to them."""

    source: str
    games: dict[str, GameState] = field(default_factory=dict)
    anomalies: Counter[str] = field(default_factory=Counter)
    last_event_at: float | None = None
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)


Handler = Callable[[SourceState, "Event", float], "GameState | None"]


class GameStateStore:
    """Per-source game maps with transactional event application."""

    def __init__(
        self,
        leavers: LeaverTracker | None = None,
        estimator: NeedEstimator | None = None,
        create_grace_seconds: float | None = None,
        forget_after_seconds: float | None = None,
    ) -> None:
        config = get_validated_config().tracker
        if create_grace_seconds is None:
            create_grace_seconds = config.create_grace_seconds
        if forget_after_seconds is None:
            forget_after_seconds = config.forget_after_seconds
        self.create_grace_seconds = create_grace_seconds
        self.forget_after_seconds = forget_after_seconds
        self.leavers = leavers if leavers is not None else LeaverTracker()
        self.estimator = estimator if estimator is not None else NeedEstimator()
        self._sources: dict[str, SourceState] = {}
        self._lock = threading.Lock()
        self._handlers: dict[type, Handler] = {
            GameCreateRequested: self._on_create,
            GameEnded: self._on_ended,
            GameCreateFailed: self._on_create_failed,
            LobbyNeedAnnounced: self._on_need,
            LobbyPinging: self._on_pinging,
            LobbyChat: self._on_lobby_chat,
            HclSet: self._on_hcl_set,
            HclCleared: self._on_hcl_cleared,
            RehostRequested: self._on_rehost,
            LoadingStarted: self._on_loading,
            HclEncoded: self._on_hcl_encoded,
            PlayerJoined: self._on_join,
            PlayerLeft: self._on_leave,
            InGameChat: self._on_ingame_chat,
            BannedJoinAttempt: self._on_banned,
            LatencyWarning: self._on_latency,
            ShutdownAnnounced: self._on_shutdown,
            Unrecognized: self._on_unrecognized,
        }
        missing = [t.__name__ for t in EVENT_TYPES if t not in self._handlers]
        if missing:
            raise RuntimeError(f"No store handler for events: {missing}")

    # -------------------------------------------------------------------------
    # Sources
    # -------------------------------------------------------------------------

    def add_source(self, source: str) -> SourceState:
        """Register a source (idempotent)."""
        with self._lock:
            state = self._sources.get(source)
            if state is None:
                state = SourceState(source=source)
                self._sources[source] = state
                logger.info(f"New log source: {source}", extra={"source": source})
            return state

    def drop_source(self, source: str) -> bool:
        """Forget a source and every game it owns."""
        with self._lock:
            state = self._sources.pop(source, None)
        if state is None:
            return False
        with state.lock:
            dropped = len(state.games)
            state.games.clear()
        logger.info(
            f"Dropped log source {source} ({dropped} games)",
            extra={"source": source},
        )
        return True

    def has_source(self, source: str) -> bool:
        with self._lock:
            return source in self._sources

    def sources(self) -> list[str]:
        with self._lock:
            return sorted(self._sources)

    def _source_state(self, source: str) -> SourceState:
        with self._lock:
            state = self._sources.get(source)
        if state is None:
            raise KeyError(source)
        return state

    @contextmanager
    def locked(self, source: str) -> Iterator[SourceState]:
        """Hold a source's lock for a consistent multi-game read."""
        state = self._source_state(source)
        with state.lock:
            yield state

    def games(self, source: str) -> list[GameState]:
        """Live games of a source (empty for unknown sources)."""
        try:
            state = self._source_state(source)
        except KeyError:
            return []
        with state.lock:
            return list(state.games.values())

    def find_game(self, source: str, name: str) -> GameState | None:
        """Look a game up without creating it."""
        try:
            state = self._source_state(source)
        except KeyError:
            return None
        with state.lock:
            return state.games.get(name)

    def get_game(self, source: str, name: str, observed_at: float) -> GameState:
        """Return a game, creating an entry for names seen for the first time."""
        state = self.add_source(source)
        with state.lock:
            return self._get_or_create(state, name, observed_at)

    def record_anomaly(self, source: str, kind: AnomalyKind) -> None:
        state = self.add_source(source)
        with state.lock:
            state.anomalies[kind.value] += 1

    def prune_games(self, now: float) -> int:
        """Forget games of every source unseen for longer than forget_after_seconds.

        Returns:
            Number of games dropped
        """
        dropped = 0
        for source in self.sources():
            try:
                state = self._source_state(source)
            except KeyError:
                continue
            with state.lock:
                idle = [
                    name for name, game in state.games.items()
                    if now - game.last_seen > self.forget_after_seconds
                ]
                for name in idle:
                    del state.games[name]
            if idle:
                logger.debug(
                    f"Forgot {len(idle)} idle games on {source}",
                    extra={"source": source},
                )
            dropped += len(idle)
        return dropped

    def anomalies(self, source: str) -> dict[str, int]:
        try:
            state = self._source_state(source)
        except KeyError:
            return {}
        with state.lock:
            return dict(state.anomalies)

    # -------------------------------------------------------------------------
    # Event application
    # -------------------------------------------------------------------------

    def apply(self, source: str, event: Event, observed_at: float) -> GameState | None:
        """Apply one event to a source's games.

        The whole application happens under the source lock, so readers
        never see a half-applied event.

        Returns:
            The game the event changed, or None if nothing changed.
        """
        handler = self._handlers[type(event)]
        state = self.add_source(source)
        with state.lock:
            game = handler(state, event, observed_at)
            if game is not None:
                game.touch(observed_at)
                state.last_event_at = observed_at
            return game

    def _new_game(self, state: SourceState, name: str, at: float) -> GameState:
        game = GameState(
            name=name,
            source=state.source,
            first_seen=at,
            last_seen=at,
            need_count=self.estimator.slots_for(name),
        )
        state.games[name] = game
        return game

    def _get_or_create(self, state: SourceState, name: str, at: float) -> GameState:
        game = state.games.get(name)
        if game is None:
            logger.debug(
                f"New game {name} on {state.source}",
                extra={"source": state.source, "game": name},
            )
            game = self._new_game(state, name, at)
        return game

    def _on_create(self, state: SourceState, event: GameCreateRequested, at: float) -> GameState | None:
        game = state.games.get(event.name)
        if game is not None:
            if at - game.first_seen > self.create_grace_seconds:
                logger.warning(
                    f"Create line for existing game {event.name} on {state.source}; "
                    "bot was probably restarted, discarding the old entry",
                    extra={"source": state.source, "game": event.name},
                )
                state.anomalies[AnomalyKind.UNEXPECTED_CREATE.value] += 1
                del state.games[event.name]
                game = None
            elif game.was_created:
                return None

        if game is None:
            game = self._new_game(state, event.name, at)
        elif not game.reliable:
            # adopting a lazily created entry: joins so far were not counted
            game.need_count = self.estimator.estimate(game)
        game.created_at = at
        game.owner = event.owner
        game.reliable = True
        return game

    def _on_ended(self, state: SourceState, event: GameEnded, at: float) -> GameState | None:
        game = self._get_or_create(state, event.name, at)
        if not game.has_stopped:
            game.stopped_at = at
        return game

    def _on_create_failed(self, state: SourceState, event: GameCreateFailed, at: float) -> GameState | None:
        logger.info(
            f"Bot on {state.source} could not create {event.name}: {event.reason}",
            extra={"source": state.source, "game": event.name},
        )
        return None

    def _on_need(self, state: SourceState, event: LobbyNeedAnnounced, at: float) -> GameState | None:
        game = self._get_or_create(state, event.name, at)
        game.mark_not_started()
        game.need_count = event.needed
        game.reliable = True
        return game

    def _on_pinging(self, state: SourceState, event: LobbyPinging, at: float) -> GameState | None:
        game = self._get_or_create(state, event.name, at)
        game.mark_not_started()
        game.lobby_state = "ping"
        return game

    def _on_lobby_chat(self, state: SourceState, event: LobbyChat, at: float) -> GameState | None:
        game = self._get_or_create(state, event.name, at)
        game.mark_not_started()
        return game

    def _on_hcl_set(self, state: SourceState, event: HclSet, at: float) -> GameState | None:
        game = self._get_or_create(state, event.name, at)
        game.hcl = event.value
        return game

    def _on_hcl_cleared(self, state: SourceState, event: HclCleared, at: float) -> GameState | None:
        game = self._get_or_create(state, event.name, at)
        game.hcl = ""
        return game

    def _on_hcl_encoded(self, state: SourceState, event: HclEncoded, at: float) -> GameState | None:
        game = self._get_or_create(state, event.name, at)
        game.hcl = event.value
        return game

    def _on_rehost(self, state: SourceState, event: RehostRequested, at: float) -> GameState | None:
        game = self._get_or_create(state, event.old_name, at)
        if event.new_name == event.old_name:
            return game
        displaced = state.games.get(event.new_name)
        if displaced is not None:
            logger.warning(
                f"Rehost of {event.old_name} replaces existing game {event.new_name}",
                extra={"source": state.source, "game": event.new_name},
            )
        del state.games[event.old_name]
        game.rename(event.new_name)
        state.games[event.new_name] = game
        return game

    def _on_loading(self, state: SourceState, event: LoadingStarted, at: float) -> GameState | None:
        game = self._get_or_create(state, event.name, at)
        game.mark_started(at)
        return game

    def _on_join(self, state: SourceState, event: PlayerJoined, at: float) -> GameState | None:
        game = self._get_or_create(state, event.name, at)
        game.players[event.player] = PlayerState(name=event.player, ip=event.ip, joined_at=at)
        if game.reliable:
            game.need_count -= 1
        return game

    def _on_leave(self, state: SourceState, event: PlayerLeft, at: float) -> GameState | None:
        game = self._get_or_create(state, event.name, at)
        # reading may have started after the player joined
        player = game.players.get(event.player)
        if player is not None:
            player.leave(at, event.reason)
        else:
            state.anomalies[AnomalyKind.REFERENCE_MISS.value] += 1
            logger.debug(
                f"{event.player} left {game.name} without a join we saw",
                extra={"source": state.source, "game": game.name},
            )

        if not game.has_started:
            if game.reliable:
                game.need_count += 1
        else:
            self.leavers.record(
                event.player,
                player.ip if player is not None else None,
                at,
                game,
            )
        return game

    def _on_ingame_chat(self, state: SourceState, event: InGameChat, at: float) -> GameState | None:
        game = self._get_or_create(state, event.name, at)
        game.mark_started(at)
        return game

    def _on_banned(self, state: SourceState, event: BannedJoinAttempt, at: float) -> GameState | None:
        game = self._get_or_create(state, event.name, at)
        if game.has_started:
            logger.warning(
                f"Banned join attempt resets start of running game {game.name}",
                extra={"source": state.source, "game": game.name},
            )
        game.started_at = NOT_STARTED
        return game

    def _on_latency(self, state: SourceState, event: LatencyWarning, at: float) -> GameState | None:
        game = self._get_or_create(state, event.name, at)
        # lag warnings only happen in game; the best start estimate we have
        game.mark_started(at)
        return game

    def _on_shutdown(self, state: SourceState, event: ShutdownAnnounced, at: float) -> GameState | None:
        logger.info(f"Bot on {state.source} is shutting down", extra={"source": state.source})
        return None

    def _on_unrecognized(self, state: SourceState, event: Unrecognized, at: float) -> GameState | None:
        return None
