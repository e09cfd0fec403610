from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field, model_validator


# Environment overrides; unset or empty means "use the default"
ENV_TICK_INTERVAL = "COLOR_DASH_TICK_INTERVAL"
ENV_DEFAULT_TIME_LIMIT = "COLOR_DASH_DEFAULT_TIME_LIMIT"
ENV_MIN_TIME_LIMIT = "COLOR_DASH_MIN_TIME_LIMIT"
ENV_TIME_DECREASE = "COLOR_DASH_TIME_DECREASE"
ENV_MAX_HIGH_SCORES = "COLOR_DASH_MAX_HIGH_SCORES"
ENV_UNLOCK_THRESHOLD = "COLOR_DASH_UNLOCK_THRESHOLD"


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


class GameSettings(BaseModel):
    """
    Tunable game constants. All durations are in seconds.

    - tick_interval: countdown step delivered by the ticker.
    - default_time_limit: time allowed per round at the start of a session.
    - min_time_limit: floor for the difficulty ramp.
    - time_decrease_per_round: how much each correct match shaves off the limit.
    - max_high_scores: leaderboard capacity.
    - unlock_threshold: score that permanently unlocks the Neon theme.
    """

    tick_interval: float = Field(default=0.1, gt=0)
    default_time_limit: float = Field(default=3.0, gt=0)
    min_time_limit: float = Field(default=1.0, gt=0)
    time_decrease_per_round: float = Field(default=0.2, ge=0)
    max_high_scores: int = Field(default=5, gt=0)
    unlock_threshold: int = Field(default=60, gt=0)

    @model_validator(mode="after")
    def _check_limits(self) -> "GameSettings":
        if self.min_time_limit > self.default_time_limit:
            raise ValueError("min_time_limit must not exceed default_time_limit")
        return self

    @classmethod
    def from_env(cls) -> "GameSettings":
        overrides = {
            "tick_interval": _getenv(ENV_TICK_INTERVAL),
            "default_time_limit": _getenv(ENV_DEFAULT_TIME_LIMIT),
            "min_time_limit": _getenv(ENV_MIN_TIME_LIMIT),
            "time_decrease_per_round": _getenv(ENV_TIME_DECREASE),
            "max_high_scores": _getenv(ENV_MAX_HIGH_SCORES),
            "unlock_threshold": _getenv(ENV_UNLOCK_THRESHOLD),
        }
        return cls.model_validate({k: v for k, v in overrides.items() if v is not None})


def to_ms(seconds: float) -> int:
    return int(round(seconds * 1000))
