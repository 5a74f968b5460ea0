"""
Market Data Port - Interfaces for fetching market data.
"""

from abc import ABC, abstractmethod

from cryptosage.domain.entities.coin import CoinRecord
from cryptosage.domain.entities.global_market import GlobalSnapshot


class MarketProviderPort(ABC):
    """
    Port interface for a single upstream market-data provider.

    Implementations raise MarketDataError subclasses and never consult
    any cache.

    Implementations:
        - CoinGeckoAdapter: primary provider
        - CoinPaprikaAdapter: secondary (fallback) provider
    """

    name: str = "provider"

    @abstractmethod
    async def fetch_coin_markets(self) -> list[CoinRecord]:
        """
        Fetch the top coins by market cap.

        Returns:
            Normalized coin records in provider order.
        """
        ...

    @abstractmethod
    async def fetch_global_data(self) -> GlobalSnapshot:
        """
        Fetch the global market snapshot.

        Returns:
            Normalized GlobalSnapshot.
        """
        ...

    async def close(self) -> None:
        """Release HTTP resources."""


class WatchlistProviderPort(MarketProviderPort):
    """Provider that can also fetch specific coins by identifier."""

    @abstractmethod
    async def fetch_watchlist(self, ids: list[str]) -> list[CoinRecord]:
        """
        Fetch market records for the given coin ids.

        Args:
            ids: Provider coin identifiers

        Returns:
            Records for the ids the provider knows about.
        """
        ...

    @abstractmethod
    async def fetch_spot_price(self, coin_id: str) -> float:
        """
        Fetch the current spot price for one coin.

        Args:
            coin_id: Provider coin identifier

        Returns:
            Price in the configured quote currency.
        """
        ...


class MarketDataPort(ABC):
    """
    Port interface for the fetch layer used by the market engine.

    Implementations apply retry, cache fallback and secondary-provider
    policy on top of MarketProviderPort adapters.

    Implementations:
        - MarketDataService
    """

    @abstractmethod
    async def fetch_coin_markets(self) -> list[CoinRecord]:
        """
        Fetch the coin list, fresh or served from cache.

        Returns:
            Sanitized coin records.

        Raises:
            MarketDataError: When no provider and no cache can serve data.
        """
        ...

    @abstractmethod
    async def fetch_global_data(self) -> GlobalSnapshot:
        """
        Fetch the global snapshot, fresh or served from cache.

        Raises:
            MarketDataError: When no provider and no cache can serve data.
        """
        ...

    @abstractmethod
    async def fetch_watchlist(self, ids: list[str]) -> list[CoinRecord]:
        """
        Fetch records for the given coin ids.

        Args:
            ids: Coin identifiers (typically the favorite set)

        Returns:
            Matching records; empty for an empty id list.
        """
        ...

    @abstractmethod
    async def fetch_spot_price(self, coin_id: str) -> float:
        """
        Fetch the current spot price for one coin (no cache fallback).
        """
        ...

    @abstractmethod
    def load_cached_coins(self) -> list[CoinRecord]:
        """
        Read the last cached coin list.

        Returns:
            Cached records, or an empty list when nothing is cached.
        """
        ...
