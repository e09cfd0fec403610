from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from pydantic import ValidationError

from state.kv_store import HIGH_SCORE_ENTRIES_KEY, HIGHEST_SCORE_KEY, KeyValueStore
from state.models import HighScoreEntry, dump_entries, load_entries


logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 5


def rank_entries(entries: Iterable[HighScoreEntry], capacity: int = DEFAULT_CAPACITY) -> List[HighScoreEntry]:
    """Return the top `capacity` entries by score, highest first.

    `sorted` is stable, so equal scores keep their incoming order; callers
    append new rows at the end, which makes ties resolve oldest-first.
    Only positive scores reach here: `HighScoreEntry` rejects anything else.
    """
    ranked = sorted(entries, key=lambda e: e.score, reverse=True)
    return ranked[:capacity]


class Leaderboard:
    """
    Persisted top-N list of positive scores plus the best score ever reached.

    - The list lives under `HighScoreEntries` as a JSON array and is rewritten
      whole on every change.
    - The best score lives under `HighestScore`; it is tracked separately so a
      personal best is reported even when the list is full of higher rows.
    """

    def __init__(self, store: KeyValueStore, *, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self._store = store
        self._capacity = capacity
        self._entries: Optional[List[HighScoreEntry]] = None

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def entries(self) -> List[HighScoreEntry]:
        if self._entries is None:
            return self.load()
        return list(self._entries)

    def load(self) -> List[HighScoreEntry]:
        """Read the persisted list; missing or undecodable data reads as empty."""
        data = self._store.get_json(HIGH_SCORE_ENTRIES_KEY)
        entries: List[HighScoreEntry] = []
        if data:
            try:
                entries = rank_entries(load_entries(data), self._capacity)
            except (ValidationError, ValueError) as e:
                logger.warning("[leaderboard] ignoring unreadable high scores: %s", e)
                entries = []
        self._entries = entries
        return list(entries)

    def best_score(self) -> int:
        return self._store.get_int(HIGHEST_SCORE_KEY) or 0

    def submit(self, score: int, player_name: str, timestamp: datetime) -> Tuple[List[HighScoreEntry], bool]:
        """Record a finished round. Returns (entries, is_new_personal_best).

        Scores <= 0 are rejected without touching the store.
        """
        if score <= 0:
            logger.debug("[leaderboard] rejected non-positive score=%s", score)
            return (self.entries, False)

        is_new_best = score > self.best_score()
        if is_new_best:
            self._store.set_int(HIGHEST_SCORE_KEY, score)

        entry = HighScoreEntry.create(score=score, player_name=player_name, date=timestamp)
        ranked = rank_entries([*self.entries, entry], self._capacity)
        self._store.set_json(HIGH_SCORE_ENTRIES_KEY, dump_entries(ranked))
        self._entries = ranked

        logger.info(
            "[leaderboard] player=%s score=%s new_best=%s kept=%s",
            player_name,
            score,
            is_new_best,
            any(e.id == entry.id for e in ranked),
        )
        return (list(ranked), is_new_best)
