"""Save slot persistence.

One save slot per store. The whole session is serialised to JSON through
the ``SaveGame`` model and kept under a single key.
"""

import json
import logging
import os
from typing import Dict, Optional, Protocol

from pydantic import ValidationError

from game.state import SaveGame

logger = logging.getLogger(__name__)

SAVE_SLOT = "first48_save"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store. Lost when the process exits."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """Keys stored as entries of a single JSON file on disk."""

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError:
                logger.warning("[SAVE] %s is not valid JSON, treating as empty", self.path)
                return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = self.path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class SaveStore:
    """Reads and writes the single save slot."""

    def __init__(self, store: Optional[KeyValueStore] = None, slot: str = SAVE_SLOT):
        self.store = store if store is not None else MemoryStore()
        self.slot = slot

    def save(self, save: SaveGame) -> None:
        self.store.set(self.slot, save.model_dump_json())
        logger.info("[SAVE] Saved to slot '%s'", self.slot)

    def load(self) -> Optional[SaveGame]:
        """Return the saved game, or None when the slot is empty or unreadable."""
        raw = self.store.get(self.slot)
        if not raw:
            return None
        try:
            return SaveGame.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("[SAVE] Slot '%s' could not be read: %s", self.slot, e)
            return None

    def has_save(self) -> bool:
        return bool(self.store.get(self.slot))

    def clear(self) -> None:
        self.store.delete(self.slot)
