"""JSON file cache adapter - one file per resource kind."""

import json
from pathlib import Path
from typing import Any, Optional

from cryptosage.adapters.storage.json_files import atomic_write_json, read_json
from cryptosage.domain.ports.storage_port import CachePort
from cryptosage.infrastructure.logging import get_logger

logger = get_logger(__name__)


class JsonFileCache(CachePort):
    """
    Disk cache storing each key as a JSON file in one directory.

    No expiry is enforced here; staleness is the fetch layer's concern.
    """

    def __init__(self, cache_dir: str = "data/cache"):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        """Resolve a key to a file inside the cache directory."""
        name = Path(key).name
        if not name or name in (".", ".."):
            raise ValueError(f"Invalid cache key: {key!r}")
        return self.cache_dir / name

    def save(self, key: str, payload: Any) -> bool:
        """Atomically replace the cache file for a key."""
        path = self._path_for(key)
        try:
            atomic_write_json(path, payload)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to write cache", key=key, error=str(e))
            return False

        logger.debug("Cache saved", key=key, path=str(path))
        return True

    def load(self, key: str) -> Optional[Any]:
        """Read the cache file for a key; None when missing or corrupt."""
        path = self._path_for(key)
        if not path.exists():
            return None

        try:
            data = read_json(path)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Could not load cache", key=key, error=str(e))
            return None

        logger.debug("Cache loaded", key=key)
        return data

    def delete(self, key: str) -> bool:
        """Remove the cache file for a key."""
        path = self._path_for(key)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Cache entry deleted", key=key)
        return True

    def clear(self) -> int:
        """Remove every cache file."""
        removed = 0
        for path in self.cache_dir.glob("*.json"):
            path.unlink()
            removed += 1
        logger.info("Cache cleared", removed=removed)
        return removed
