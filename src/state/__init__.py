"""
Persistence for player progress: leaderboard rows, best score, unlocks.

Everything is reached through the small `KeyValueStore` contract so the
game engine never depends on where the bytes end up (memory, a local JSON
file, or a Fernet-encrypted object in S3).
"""

import os

from .file_store import JsonFileStore
from .kv_store import (
    HIGH_SCORE_ENTRIES_KEY,
    HIGHEST_SCORE_KEY,
    NEON_UNLOCKED_KEY,
    KeyValueStore,
    MemoryStore,
)
from .models import HighScoreEntry
from .s3_store import ENV_BUCKET, S3KeyValueStore


def store_from_env() -> KeyValueStore:
    """Return the S3 store when a bucket is configured, else the local file store."""
    if os.environ.get(ENV_BUCKET):
        return S3KeyValueStore.from_env()
    return JsonFileStore()


__all__ = [
    "HIGH_SCORE_ENTRIES_KEY",
    "HIGHEST_SCORE_KEY",
    "NEON_UNLOCKED_KEY",
    "HighScoreEntry",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "S3KeyValueStore",
    "store_from_env",
]
