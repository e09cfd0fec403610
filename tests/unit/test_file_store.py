from __future__ import annotations

from datetime import UTC, datetime

from common.leaderboard import Leaderboard
from common.unlock import UnlockGate
from state import JsonFileStore, MemoryStore, store_from_env
from state.kv_store import HIGHEST_SCORE_KEY, NEON_UNLOCKED_KEY


def test_missing_file_reads_as_empty(tmp_path):
    store = JsonFileStore(tmp_path / "save.json")
    assert store.get_bool(NEON_UNLOCKED_KEY) is None
    assert store.get_int(HIGHEST_SCORE_KEY) is None


def test_progress_survives_new_instance(tmp_path):
    path = tmp_path / "nested" / "save.json"
    store = JsonFileStore(path)
    Leaderboard(store).submit(12, "Ana", datetime(2025, 5, 1, tzinfo=UTC))
    UnlockGate(store, threshold=10).check(12)

    reopened = JsonFileStore(path)
    board = Leaderboard(reopened)
    assert [e.score for e in board.load()] == [12]
    assert board.best_score() == 12
    assert UnlockGate(reopened).is_unlocked() is True
    assert not path.with_suffix(".json.tmp").exists()


def test_corrupt_file_is_ignored_then_replaced(tmp_path):
    path = tmp_path / "save.json"
    path.write_text("{broken", encoding="utf-8")

    store = JsonFileStore(path)
    assert store.get_int(HIGHEST_SCORE_KEY) is None
    store.set_int(HIGHEST_SCORE_KEY, 3)
    assert JsonFileStore(path).get_int(HIGHEST_SCORE_KEY) == 3


def test_default_path_honours_data_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("COLOR_DASH_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("COLOR_DASH_STATE_BUCKET", raising=False)

    store = store_from_env()
    assert isinstance(store, JsonFileStore)
    assert store.path == tmp_path / "save.json"


def test_memory_store_type_checks_values():
    store = MemoryStore({HIGHEST_SCORE_KEY: "7"})
    assert store.get_int(HIGHEST_SCORE_KEY) is None
    store.set_int(HIGHEST_SCORE_KEY, 7)
    assert store.get_int(HIGHEST_SCORE_KEY) == 7
    assert store.get_bool(HIGHEST_SCORE_KEY) is None
