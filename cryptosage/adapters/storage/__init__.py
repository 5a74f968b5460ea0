"""Storage adapters."""

from cryptosage.adapters.storage.json_cache_adapter import JsonFileCache
from cryptosage.adapters.storage.json_favorites_store import JsonFavoritesStore

__all__ = [
    "JsonFileCache",
    "JsonFavoritesStore",
]
