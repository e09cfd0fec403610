"""
Color Match Dash game session engine.

`GameSession` owns the round state machine; the leaderboard, unlock gate,
ticker and settings it depends on live in `common`, persistence in `state`.
"""

from .session import (
    GameSession,
    InvalidPaletteError,
    RoundResult,
    RoundState,
    SessionSnapshot,
)

__all__ = [
    "GameSession",
    "InvalidPaletteError",
    "RoundResult",
    "RoundState",
    "SessionSnapshot",
]
