from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from state.kv_store import NEON_UNLOCKED_KEY, KeyValueStore


logger = logging.getLogger(__name__)

NEON_UNLOCK_THRESHOLD = 60


class ColorTheme(str, Enum):
    CLASSIC = "Classic"
    PASTEL = "Pastel"
    NEON = "Neon"


@dataclass(frozen=True)
class UnlockEvent:
    """One-shot notification that a theme just became available."""

    theme: ColorTheme
    score: int
    message: str = "🔓 Neon Theme Unlocked!"


class UnlockGate:
    """
    One-way, persisted unlock of the Neon theme.

    The flag is read from the store once and cached. It only ever moves from
    False to True, and the transition happens at most once, so `check()`
    returns an event (and calls `on_unlock`) exactly one time.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        threshold: int = NEON_UNLOCK_THRESHOLD,
        on_unlock: Optional[Callable[[UnlockEvent], None]] = None,
    ) -> None:
        self._store = store
        self._threshold = threshold
        self._on_unlock = on_unlock
        self._unlocked: Optional[bool] = None

    @property
    def threshold(self) -> int:
        return self._threshold

    def is_unlocked(self) -> bool:
        if self._unlocked is None:
            self._unlocked = bool(self._store.get_bool(NEON_UNLOCKED_KEY))
        return self._unlocked

    def check(self, score: int) -> Optional[UnlockEvent]:
        if score < self._threshold or self.is_unlocked():
            return None
        self._store.set_bool(NEON_UNLOCKED_KEY, True)
        self._unlocked = True
        event = UnlockEvent(theme=ColorTheme.NEON, score=score)
        logger.info("[unlock] theme=%s score=%s", event.theme.value, score)
        if self._on_unlock is not None:
            self._on_unlock(event)
        return event

    def available_themes(self) -> List[ColorTheme]:
        if self.is_unlocked():
            return list(ColorTheme)
        return [t for t in ColorTheme if t is not ColorTheme.NEON]
