from __future__ import annotations

import pytest
from pydantic import ValidationError

from common.config import GameSettings, to_ms


def test_defaults_match_game_rules():
    s = GameSettings()
    assert s.tick_interval == 0.1
    assert s.default_time_limit == 3.0
    assert s.min_time_limit == 1.0
    assert s.time_decrease_per_round == 0.2
    assert s.max_high_scores == 5
    assert s.unlock_threshold == 60


def test_from_env_overrides_and_ignores_empty(monkeypatch):
    monkeypatch.setenv("COLOR_DASH_DEFAULT_TIME_LIMIT", "5")
    monkeypatch.setenv("COLOR_DASH_UNLOCK_THRESHOLD", "25")
    monkeypatch.setenv("COLOR_DASH_MIN_TIME_LIMIT", "")

    s = GameSettings.from_env()
    assert s.default_time_limit == 5.0
    assert s.unlock_threshold == 25
    assert s.min_time_limit == 1.0


def test_rejects_inconsistent_limits():
    with pytest.raises(ValidationError):
        GameSettings(default_time_limit=1.0, min_time_limit=2.0)
    with pytest.raises(ValidationError):
        GameSettings(tick_interval=0)


def test_to_ms_rounds_float_noise():
    assert to_ms(0.1) == 100
    assert to_ms(3.0 - 0.2 * 5) == 2000
