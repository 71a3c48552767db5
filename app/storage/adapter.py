"""Key-value persistence for session, theme and claim list."""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from app.core.errors import StorageCorruption

logger = logging.getLogger(__name__)

SESSION_KEY = "autoclaim_session"
CLAIMS_KEY = "autoclaim_db"
THEME_KEY = "autoclaim_theme"


class Storage(ABC):
    """
    Durable key-value store holding JSON-serializable values.

    `load` returns None for a missing key and for an entry that cannot be
    decoded; corruption is logged, never raised to the caller.
    """

    @abstractmethod
    def load(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def save(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...

    @abstractmethod
    def clear_all(self) -> None:
        ...


class MemoryStorage(Storage):
    """Stores serialized JSON text in a dict, the same way a browser local store would."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._entries: Dict[str, str] = dict(initial or {})

    def load(self, key: str) -> Optional[Any]:
        raw = self._entries.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning(str(StorageCorruption.for_key(key, e)))
            return None

    def save(self, key: str, value: Any) -> None:
        self._entries[key] = json.dumps(value)

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear_all(self) -> None:
        self._entries.clear()


class JsonFileStorage(Storage):
    """
    One JSON file per key under a root directory.

    Writes go through a temporary file in the same directory followed by
    os.replace, so readers see either the previous value or the new one.
    """

    SUFFIX = ".json"

    def __init__(self, root_dir: str = "data/state"):
        self.root_dir = Path(root_dir)
        self.root_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initialized JsonFileStorage at {self.root_dir}")

    def _path(self, key: str) -> Path:
        return self.root_dir / f"{key}{self.SUFFIX}"

    def load(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(str(StorageCorruption.for_key(key, e)))
            return None

    def save(self, key: str, value: Any) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.root_dir, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path(key))
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
        logger.debug(f"Saved storage entry '{key}'")

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def clear_all(self) -> None:
        removed = 0
        for path in self.root_dir.glob(f"*{self.SUFFIX}"):
            path.unlink(missing_ok=True)
            removed += 1
        logger.info(f"Cleared storage: removed {removed} entries")
