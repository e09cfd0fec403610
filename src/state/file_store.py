from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from pydantic import ValidationError

from .kv_store import DocumentStore, Value
from .models import SaveDocument


logger = logging.getLogger(__name__)


DEFAULT_DATA_DIR_ENV = "COLOR_DASH_DATA_DIR"


def _default_save_file() -> Path:
    # Prefer explicit env var, else project-local .cache folder
    base = os.environ.get(DEFAULT_DATA_DIR_ENV)
    if base:
        return Path(base) / "save.json"
    return Path(".cache") / "save.json"


class JsonFileStore(DocumentStore):
    """
    Key/value store backed by a single local JSON file.

    - File shape: {"values": {key: bool|int|str, ...}}
    - Loaded lazily on first access, then served from memory.
    - A missing or corrupt file reads as empty; the next write replaces it.
    """

    def __init__(self, path: Optional[os.PathLike[str] | str] = None) -> None:
        self._path = Path(path) if path else _default_save_file()
        self._doc = SaveDocument.empty()
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self._path.exists():
            return
        try:
            with self._path.open("r", encoding="utf-8") as f:
                self._doc = SaveDocument.model_validate(json.load(f))
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("[save-load] ignoring unreadable save file %s: %s", self._path, e)
            self._doc = SaveDocument.empty()

    def _read_values(self) -> Dict[str, Value]:
        self._ensure_loaded()
        return self._doc.values

    def _write_values(self, values: Dict[str, Value]) -> None:
        self._ensure_loaded()
        self._doc = SaveDocument(values=values)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling file first so a crash never leaves half a save behind
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(self._doc.model_dump(), f, indent=2, sort_keys=True)
        tmp.replace(self._path)
