"""
Market Data Service - Fetch policy on top of the provider adapters.

Order of resort for the coin list and the global snapshot:
    1. Primary provider, retrying transient failures with backoff
    2. Disk cache (stale-but-available)
    3. Secondary provider, once
    4. The primary provider's error

When the connectivity monitor reports offline, steps 1 and 3 are skipped.
"""

from typing import Any, Awaitable, Callable, Optional, TypeVar

from cryptosage.application.services.market_derivation import sanitize_coins
from cryptosage.domain.entities.coin import CoinRecord
from cryptosage.domain.entities.global_market import GlobalSnapshot
from cryptosage.domain.exceptions import (
    DecodeError,
    MarketDataError,
    TransientNetworkError,
    is_transient,
)
from cryptosage.domain.ports.market_data_port import (
    MarketDataPort,
    MarketProviderPort,
    WatchlistProviderPort,
)
from cryptosage.domain.ports.storage_port import CachePort, ConnectivityPort
from cryptosage.infrastructure.config import Settings
from cryptosage.infrastructure.logging import get_logger
from cryptosage.infrastructure.retry import retry_with_backoff

logger = get_logger(__name__)

T = TypeVar("T")


class MarketDataService(MarketDataPort):
    """
    Fetch layer used by the market engine.

    Owns the cache key names and the typed cache helpers. Every
    successful fetch of the coin list or the global snapshot overwrites
    its cache entry; the watchlist never touches the cache.
    """

    def __init__(
        self,
        primary: WatchlistProviderPort,
        cache: CachePort,
        settings: Settings,
        secondary: Optional[MarketProviderPort] = None,
        connectivity: Optional[ConnectivityPort] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Initialize the service.

        Args:
            primary: Primary provider (also serves watchlist and spot price)
            cache: Disk cache
            settings: Application settings
            secondary: Optional fallback provider for list and global data
            connectivity: Optional reachability monitor; always online when omitted
            sleep: Backoff sleep override (tests)
        """
        self.primary = primary
        self.secondary = secondary
        self.cache = cache
        self.connectivity = connectivity
        self.settings = settings
        self._sleep = sleep

        self.coins_key = settings.coins_cache_file
        self.global_key = settings.global_cache_file

    # --- Typed cache helpers ---

    def save_coins(self, coins: list[CoinRecord]) -> bool:
        return self.cache.save(self.coins_key, [coin.to_dict() for coin in coins])

    def load_coins(self) -> Optional[list[CoinRecord]]:
        """Cached coin list, or None when missing, empty or unreadable."""
        payload = self.cache.load(self.coins_key)
        if not isinstance(payload, list) or not payload:
            return None
        try:
            return [CoinRecord.from_dict(item) for item in payload]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding malformed coin cache", error=str(e))
            return None

    def save_global(self, snapshot: GlobalSnapshot) -> bool:
        return self.cache.save(self.global_key, snapshot.to_dict())

    def load_global(self) -> Optional[GlobalSnapshot]:
        """Cached global snapshot, or None when missing or unreadable."""
        payload = self.cache.load(self.global_key)
        if not isinstance(payload, dict):
            return None
        try:
            return GlobalSnapshot.from_dict(payload)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding malformed global cache", error=str(e))
            return None

    def load_cached_coins(self) -> list[CoinRecord]:
        return self.load_coins() or []

    # --- Policy ---

    async def _is_online(self) -> bool:
        if self.connectivity is None:
            return True
        return await self.connectivity.is_online()

    async def _with_retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await retry_with_backoff(
            operation,
            attempts=self.settings.retry_attempts,
            base_delay=self.settings.retry_base_delay_seconds,
            is_retryable=is_transient,
            sleep=self._sleep,
        )

    async def _fetch_with_fallback(
        self,
        resource: str,
        primary_call: Callable[[], Awaitable[T]],
        secondary_call: Optional[Callable[[], Awaitable[T]]],
        load_cached: Callable[[], Optional[T]],
        store: Callable[[T], Any],
    ) -> T:
        """
        Run the primary call, falling back to cache then secondary.

        Each step runs at most once per call; no step re-enters another.
        """
        if not await self._is_online():
            cached = load_cached()
            if cached is not None:
                logger.info("Offline, serving cache", resource=resource)
                return cached
            raise TransientNetworkError("No network connection and no cached data.")

        try:
            result = await self._with_retry(primary_call)
        except MarketDataError as primary_error:
            logger.warning(
                "Primary provider failed",
                resource=resource,
                provider=primary_error.provider,
                error=str(primary_error),
            )

            cached = load_cached()
            if cached is not None:
                logger.info("Serving stale cache", resource=resource)
                return cached

            if secondary_call is None:
                raise

            try:
                result = await self._with_retry(secondary_call)
            except MarketDataError as secondary_error:
                logger.error(
                    "Secondary provider failed",
                    resource=resource,
                    provider=secondary_error.provider,
                    error=str(secondary_error),
                )
                raise primary_error from secondary_error

            logger.info("Served by secondary provider", resource=resource)

        store(result)
        return result

    async def fetch_coin_markets(self) -> list[CoinRecord]:
        """
        Fetch the sanitized coin list.

        Raises:
            MarketDataError: When neither provider nor cache can serve it.
        """
        fragments = self.settings.excluded_name_fragments

        async def from_primary() -> list[CoinRecord]:
            coins = sanitize_coins(await self.primary.fetch_coin_markets(), fragments)
            if not coins:
                raise DecodeError("Empty markets list", self.primary.name)
            return coins

        secondary_call = None
        if self.secondary is not None:
            secondary = self.secondary

            async def from_secondary() -> list[CoinRecord]:
                coins = sanitize_coins(await secondary.fetch_coin_markets(), fragments)
                if not coins:
                    raise DecodeError("Empty ticker list", secondary.name)
                return coins

            secondary_call = from_secondary

        return await self._fetch_with_fallback(
            "coins",
            from_primary,
            secondary_call,
            self.load_coins,
            self.save_coins,
        )

    async def fetch_global_data(self) -> GlobalSnapshot:
        """
        Fetch the global snapshot.

        Raises:
            MarketDataError: When neither provider nor cache can serve it.
        """
        secondary_call = self.secondary.fetch_global_data if self.secondary else None
        return await self._fetch_with_fallback(
            "global",
            self.primary.fetch_global_data,
            secondary_call,
            self.load_global,
            self.save_global,
        )

    def _cached_subset(self, ids: list[str]) -> list[CoinRecord]:
        wanted = set(ids)
        return [coin for coin in self.load_cached_coins() if coin.id in wanted]

    async def fetch_watchlist(self, ids: list[str]) -> list[CoinRecord]:
        """
        Fetch records for the given ids.

        Falls back to the cached coin list filtered to the ids when offline
        or when the primary provider fails.
        """
        if not ids:
            return []

        if not await self._is_online():
            logger.info("Offline, serving watchlist from cache", count=len(ids))
            return self._cached_subset(ids)

        try:
            coins = await self._with_retry(lambda: self.primary.fetch_watchlist(ids))
        except MarketDataError as e:
            logger.warning("Watchlist fetch failed, using cache", error=str(e))
            return self._cached_subset(ids)

        return sanitize_coins(coins, self.settings.excluded_name_fragments)

    async def fetch_spot_price(self, coin_id: str) -> float:
        """
        Fetch one coin's price. No cache fallback.

        Raises:
            MarketDataError: On any provider failure.
        """
        if not await self._is_online():
            raise TransientNetworkError("No network connection.")
        return await self._with_retry(lambda: self.primary.fetch_spot_price(coin_id))

    async def close(self) -> None:
        """Close provider HTTP clients."""
        await self.primary.close()
        if self.secondary is not None:
            await self.secondary.close()
