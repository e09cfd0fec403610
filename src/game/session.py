from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Callable, Hashable, List, Optional, Sequence

from common.config import GameSettings, to_ms
from common.leaderboard import Leaderboard
from common.ticker import Ticker
from common.unlock import UnlockEvent, UnlockGate
from state.kv_store import KeyValueStore
from state.models import HighScoreEntry


logger = logging.getLogger(__name__)


class InvalidPaletteError(ValueError):
    """Raised when a round would start without any target to pick from."""


class RoundState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    ENDED = "ended"


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session handed to the presentation layer."""

    score: int
    time_left: float
    current_time_limit: float
    state: RoundState
    target_id: Optional[Hashable]
    ended_at_zero: bool


@dataclass(frozen=True)
class RoundResult:
    """Outcome of a finished round, produced once per Ended transition.

    Attributes
    - score: score at the moment the round ended (may be <= 0)
    - ended_at_zero: True if a wrong tap drained the score, False on timeout
    - player_name: name the score was recorded under
    - submitted: whether the score went to the leaderboard (score > 0)
    - is_new_high_score: score beat the best score ever recorded
    - leaderboard: leaderboard contents after the submission
    - unlock: unlock notification, if this round opened the gate
    """

    score: int
    ended_at_zero: bool
    player_name: str
    submitted: bool
    is_new_high_score: bool
    leaderboard: List[HighScoreEntry]
    unlock: Optional[UnlockEvent]


def _validate_palette(palette: Sequence[Hashable]) -> List[Hashable]:
    ids = list(palette)
    if not ids:
        raise InvalidPaletteError("palette must contain at least one target identifier")
    return ids


def _utcnow() -> datetime:
    return datetime.now(UTC)


class GameSession:
    """
    Round state machine for one player.

    Commands (`start`, `select_color`, `tick`, `reset`, `abandon`) return a
    `SessionSnapshot`. Commands issued in a state that does not accept them
    are ignored. Time is tracked in integer milliseconds so repeated tick
    decrements land exactly on zero.
    """

    def __init__(
        self,
        palette: Sequence[Hashable],
        *,
        leaderboard: Leaderboard,
        unlock_gate: UnlockGate,
        player_name: str = "",
        settings: Optional[GameSettings] = None,
        ticker: Optional[Ticker] = None,
        rng: Optional[random.Random] = None,
        now: Callable[[], datetime] = _utcnow,
        on_round_end: Optional[Callable[[RoundResult], None]] = None,
    ) -> None:
        self._settings = settings or GameSettings()
        self._palette = list(palette)
        self._leaderboard = leaderboard
        self._unlock_gate = unlock_gate
        self._ticker = ticker or Ticker(self._settings.tick_interval)
        self._rng = rng or random.Random()
        self._now = now
        self._on_round_end = on_round_end
        self.player_name = player_name

        self._tick_ms = to_ms(self._ticker.interval)
        self._default_limit_ms = to_ms(self._settings.default_time_limit)
        self._min_limit_ms = to_ms(self._settings.min_time_limit)
        self._decrease_ms = to_ms(self._settings.time_decrease_per_round)

        self._state = RoundState.IDLE
        self.last_result: Optional[RoundResult] = None
        self._reset_fields()

    @classmethod
    def from_store(
        cls,
        palette: Sequence[Hashable],
        store: KeyValueStore,
        *,
        settings: Optional[GameSettings] = None,
        on_unlock: Optional[Callable[[UnlockEvent], None]] = None,
        **kwargs,
    ) -> "GameSession":
        """Wire a session, leaderboard and unlock gate onto one store."""
        settings = settings or GameSettings()
        leaderboard = Leaderboard(store, capacity=settings.max_high_scores)
        leaderboard.load()
        gate = UnlockGate(store, threshold=settings.unlock_threshold, on_unlock=on_unlock)
        return cls(palette, leaderboard=leaderboard, unlock_gate=gate, settings=settings, **kwargs)

    @property
    def leaderboard(self) -> Leaderboard:
        return self._leaderboard

    @property
    def unlock_gate(self) -> UnlockGate:
        return self._unlock_gate

    # -------- Read surface --------
    @property
    def state(self) -> RoundState:
        return self._state

    @property
    def score(self) -> int:
        return self._score

    @property
    def time_left(self) -> float:
        return self._time_left_ms / 1000

    @property
    def current_time_limit(self) -> float:
        return self._limit_ms / 1000

    @property
    def target_id(self) -> Optional[Hashable]:
        return self._target_id

    @property
    def ended_at_zero(self) -> bool:
        return self._ended_at_zero

    @property
    def palette(self) -> List[Hashable]:
        return list(self._palette)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            score=self._score,
            time_left=self.time_left,
            current_time_limit=self.current_time_limit,
            state=self._state,
            target_id=self._target_id,
            ended_at_zero=self._ended_at_zero,
        )

    # -------- Commands --------
    def set_palette(self, palette: Sequence[Hashable]) -> None:
        """Switch target identifiers (e.g. on theme change); used from the next pick."""
        self._palette = _validate_palette(palette)

    def start(self, palette: Optional[Sequence[Hashable]] = None) -> SessionSnapshot:
        if self._state is RoundState.ACTIVE:
            logger.debug("[ignored] start while active")
            return self.snapshot()
        ids = _validate_palette(self._palette if palette is None else palette)
        self._palette = ids
        self._reset_fields()
        self._state = RoundState.ACTIVE
        self._begin_round()
        return self.snapshot()

    def reset(self) -> SessionSnapshot:
        """Play again after a round ended; also starts from Idle."""
        if self._state is RoundState.ACTIVE:
            logger.debug("[ignored] reset while active")
            return self.snapshot()
        return self.start()

    def abandon(self) -> SessionSnapshot:
        self._ticker.cancel()
        if self._state is not RoundState.IDLE:
            logger.info("[abandon] score=%s state=%s", self._score, self._state.value)
        self._state = RoundState.IDLE
        self._reset_fields()
        return self.snapshot()

    def select_color(self, color_id: Hashable) -> SessionSnapshot:
        if self._state is not RoundState.ACTIVE:
            logger.debug("[ignored] tap state=%s", self._state.value)
            return self.snapshot()

        if color_id == self._target_id:
            self._score += 1
            self._limit_ms = max(self._limit_ms - self._decrease_ms, self._min_limit_ms)
        else:
            self._score -= 1
            if self._score <= 0:
                self._end_round(ended_at_zero=True)
                return self.snapshot()

        self._begin_round()
        return self.snapshot()

    def tick(self) -> SessionSnapshot:
        if self._state is not RoundState.ACTIVE:
            logger.debug("[ignored] tick state=%s", self._state.value)
            return self.snapshot()
        self._time_left_ms = max(self._time_left_ms - self._tick_ms, 0)
        if self._time_left_ms <= 0:
            self._end_round(ended_at_zero=False)
        return self.snapshot()

    def pump(self) -> SessionSnapshot:
        """Deliver due ticks from a poll-driven ticker; call once per frame."""
        self._ticker.pump()
        return self.snapshot()

    # -------- Internals --------
    def _reset_fields(self) -> None:
        self._score = 0
        self._limit_ms = self._default_limit_ms
        self._time_left_ms = 0
        self._target_id: Optional[Hashable] = None
        self._ended_at_zero = False

    def _begin_round(self) -> None:
        self._target_id = self._rng.choice(self._palette)
        self._time_left_ms = self._limit_ms
        self._ticker.start(self._on_tick)
        logger.debug(
            "[round-start] target=%s limit=%.1f score=%s",
            self._target_id,
            self.current_time_limit,
            self._score,
        )

    def _on_tick(self) -> None:
        self.tick()

    def _end_round(self, *, ended_at_zero: bool) -> None:
        self._ticker.cancel()
        self._state = RoundState.ENDED
        self._ended_at_zero = ended_at_zero
        logger.info(
            "[round-end] player=%s score=%s cause=%s",
            self.player_name,
            self._score,
            "score" if ended_at_zero else "timeout",
        )
        self._finalize()

    def _finalize(self) -> None:
        score = self._score
        submitted = score > 0
        is_new_best = False
        if submitted:
            entries, is_new_best = self._leaderboard.submit(score, self.player_name, self._now())
        else:
            entries = self._leaderboard.entries
        unlock = self._unlock_gate.check(score)

        result = RoundResult(
            score=score,
            ended_at_zero=self._ended_at_zero,
            player_name=self.player_name,
            submitted=submitted,
            is_new_high_score=is_new_best,
            leaderboard=entries,
            unlock=unlock,
        )
        self.last_result = result
        if self._on_round_end is not None:
            self._on_round_end(result)
