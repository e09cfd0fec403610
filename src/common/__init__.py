"""
Building blocks for the Color Match Dash engine.

Modules:
- config: GameSettings with environment overrides
- ticker: cancelable fixed-interval tick sources (poll-driven and asyncio)
- leaderboard: persisted top-5 ranking and best-score tracking
- unlock: one-way Neon theme unlock gate
"""

__all__ = [
    "config",
    "leaderboard",
    "ticker",
    "unlock",
]
