"""Favorites store persisted as a list under one key of a JSON file."""

import json
from pathlib import Path
from typing import Any, Callable

from cryptosage.adapters.storage.json_files import atomic_write_json, read_json
from cryptosage.domain.ports.storage_port import FavoritesListener, FavoritesPort
from cryptosage.infrastructure.logging import get_logger
from cryptosage.infrastructure.observable import Subject

logger = get_logger(__name__)


class JsonFavoritesStore(FavoritesPort):
    """
    Owner of the favorite coin id set.

    The set lives in a small key-value JSON file; other keys in the file
    are left untouched. Listeners are notified after every write that
    changes the set.
    """

    def __init__(self, file_path: str = "data/favorites.json", key: str = "favoriteCoinIDs"):
        self.file_path = Path(file_path)
        self.key = key
        self._ids: set[str] = set()
        self._changes: Subject[frozenset[str]] = Subject("favorites")
        self._load()

    def _read_document(self) -> dict[str, Any]:
        """Read the whole key-value document."""
        if not self.file_path.exists():
            return {}
        try:
            data = read_json(self.file_path)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Could not read favorites file", path=str(self.file_path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _load(self) -> None:
        saved = self._read_document().get(self.key, [])
        if isinstance(saved, list):
            self._ids = {str(coin_id) for coin_id in saved}
        logger.debug("Favorites loaded", count=len(self._ids))

    def _save(self, ids: set[str]) -> None:
        document = self._read_document()
        document[self.key] = sorted(ids)
        atomic_write_json(self.file_path, document)

    def _commit(self, ids: set[str]) -> None:
        """
        Persist a new set, adopt it, then notify listeners.

        Raises:
            OSError: If the file cannot be written; the current set is kept.
        """
        self._save(ids)
        self._ids = ids
        self._changes.emit(frozenset(ids))

    def is_favorite(self, coin_id: str) -> bool:
        return coin_id in self._ids

    def add(self, coin_id: str) -> None:
        if coin_id in self._ids:
            return
        self._commit(self._ids | {coin_id})
        logger.info("Favorite added", coin_id=coin_id)

    def remove(self, coin_id: str) -> None:
        if coin_id not in self._ids:
            return
        self._commit(self._ids - {coin_id})
        logger.info("Favorite removed", coin_id=coin_id)

    def toggle(self, coin_id: str) -> bool:
        if self.is_favorite(coin_id):
            self.remove(coin_id)
            return False
        self.add(coin_id)
        return True

    def get_all(self) -> frozenset[str]:
        return frozenset(self._ids)

    def subscribe(self, listener: FavoritesListener) -> Callable[[], None]:
        return self._changes.subscribe(listener)
