from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, TypeAdapter


class HighScoreEntry(BaseModel):
    """
    One leaderboard row, immutable once created.

    Fields
    - id: unique identifier for the row.
    - score: the positive score reached when the round ended.
    - player_name: name typed on the start screen (serialized as "playerName").
    - date: when the round ended (serialized as ISO-8601, so it sorts as text).

    Notes
    - Entries are created only at round end and only for scores > 0; the
      `gt=0` constraint also rejects non-positive rows when decoding a
      tampered or outdated save.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: UUID = Field(default_factory=uuid4)
    score: int = Field(gt=0)
    player_name: str = Field(alias="playerName")
    date: datetime

    @classmethod
    def create(cls, score: int, player_name: str, date: datetime) -> "HighScoreEntry":
        return cls(score=score, player_name=player_name, date=date)


_ENTRIES = TypeAdapter(List[HighScoreEntry])


def dump_entries(entries: List[HighScoreEntry]) -> bytes:
    return _ENTRIES.dump_json(list(entries), by_alias=True)


def load_entries(data: bytes) -> List[HighScoreEntry]:
    """Decode a persisted leaderboard; raises pydantic.ValidationError on bad input."""
    return _ENTRIES.validate_json(data)


class SaveDocument(BaseModel):
    """
    On-disk / in-bucket shape of a document-backed key/value store.

    Values are restricted to the three kinds the store contract knows about;
    strict types keep a stored flag from being read back as the integer 1.
    """

    values: Dict[str, Union[StrictBool, StrictInt, StrictStr]] = Field(default_factory=dict)

    @classmethod
    def empty(cls) -> "SaveDocument":
        """Convenience constructor for a fresh, empty document."""
        return cls()
