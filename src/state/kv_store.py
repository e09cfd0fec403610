from __future__ import annotations

from typing import Dict, Optional, Protocol, Union


# Keys shared by every store implementation
NEON_UNLOCKED_KEY = "NeonUnlocked"
HIGHEST_SCORE_KEY = "HighestScore"
HIGH_SCORE_ENTRIES_KEY = "HighScoreEntries"


Value = Union[bool, int, str]


class KeyValueStore(Protocol):
    """
    Persistence contract used by the leaderboard and the unlock gate.

    Every setter is a whole-value replace. Getters return None when the key
    is absent or holds a value of another type.
    """

    def get_bool(self, key: str) -> Optional[bool]: ...

    def set_bool(self, key: str, value: bool) -> None: ...

    def get_int(self, key: str) -> Optional[int]: ...

    def set_int(self, key: str, value: int) -> None: ...

    def get_json(self, key: str) -> Optional[bytes]: ...

    def set_json(self, key: str, value: bytes) -> None: ...


def _as_bool(raw: Optional[Value]) -> Optional[bool]:
    return raw if isinstance(raw, bool) else None


def _as_int(raw: Optional[Value]) -> Optional[int]:
    # bool is an int subclass; a stored flag is not a score
    if isinstance(raw, bool) or not isinstance(raw, int):
        return None
    return raw


def _as_json(raw: Optional[Value]) -> Optional[bytes]:
    return raw.encode("utf-8") if isinstance(raw, str) else None


class DocumentStore:
    """
    Base for stores that keep every key in one JSON-compatible document.

    Subclasses implement `_read_values()` and `_write_values()`; JSON blobs
    are kept as UTF-8 text inside the document.
    """

    def _read_values(self) -> Dict[str, Value]:
        raise NotImplementedError

    def _write_values(self, values: Dict[str, Value]) -> None:
        raise NotImplementedError

    def _get(self, key: str) -> Optional[Value]:
        return self._read_values().get(key)

    def _set(self, key: str, value: Value) -> None:
        values = dict(self._read_values())
        values[key] = value
        self._write_values(values)

    def get_bool(self, key: str) -> Optional[bool]:
        return _as_bool(self._get(key))

    def set_bool(self, key: str, value: bool) -> None:
        self._set(key, bool(value))

    def get_int(self, key: str) -> Optional[int]:
        return _as_int(self._get(key))

    def set_int(self, key: str, value: int) -> None:
        self._set(key, int(value))

    def get_json(self, key: str) -> Optional[bytes]:
        return _as_json(self._get(key))

    def set_json(self, key: str, value: bytes) -> None:
        self._set(key, value.decode("utf-8"))


class MemoryStore(DocumentStore):
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, Value]] = None) -> None:
        self._values: Dict[str, Value] = dict(initial or {})

    def _read_values(self) -> Dict[str, Value]:
        return self._values

    def _write_values(self, values: Dict[str, Value]) -> None:
        self._values = values

    def snapshot(self) -> Dict[str, Value]:
        return dict(self._values)
