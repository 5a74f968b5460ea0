"""
Storage Ports - Interfaces for the disk cache and the favorites store.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

FavoritesListener = Callable[[frozenset[str]], None]


class CachePort(ABC):
    """
    Port interface for whole-value JSON caching.

    Implementations:
        - JsonFileCache: one JSON file per key in a cache directory
    """

    @abstractmethod
    def save(self, key: str, payload: Any) -> bool:
        """
        Replace the cached value for a key.

        Args:
            key: Resource key (file name)
            payload: JSON-serializable value

        Returns:
            True if written successfully.
        """
        ...

    @abstractmethod
    def load(self, key: str) -> Optional[Any]:
        """
        Read the cached value for a key.

        Returns:
            The decoded value, or None when missing or unreadable.
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove the cached value for a key.

        Returns:
            True if something was removed.
        """
        ...

    @abstractmethod
    def clear(self) -> int:
        """
        Remove every cached value.

        Returns:
            Number of entries removed.
        """
        ...


class FavoritesPort(ABC):
    """
    Port interface for the persisted favorite coin id set.

    Implementations:
        - JsonFavoritesStore
    """

    @abstractmethod
    def is_favorite(self, coin_id: str) -> bool:
        ...

    @abstractmethod
    def add(self, coin_id: str) -> None:
        ...

    @abstractmethod
    def remove(self, coin_id: str) -> None:
        ...

    @abstractmethod
    def toggle(self, coin_id: str) -> bool:
        """
        Add the id if absent, remove it if present.

        Returns:
            True if the id is a favorite after the call.
        """
        ...

    @abstractmethod
    def get_all(self) -> frozenset[str]:
        ...

    @abstractmethod
    def subscribe(self, listener: FavoritesListener) -> Callable[[], None]:
        """
        Register a listener called with the new set after each change.

        Returns:
            Function that removes the listener.
        """
        ...


class ConnectivityPort(ABC):
    """
    Port interface for network reachability.

    Implementations:
        - TcpConnectivityMonitor
        - StaticConnectivity
    """

    @abstractmethod
    async def is_online(self) -> bool:
        ...
