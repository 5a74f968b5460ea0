"""
Dependency injection container for the application.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from cryptosage.adapters.market.coingecko_adapter import CoinGeckoAdapter
from cryptosage.adapters.market.coinpaprika_adapter import CoinPaprikaAdapter
from cryptosage.adapters.network.connectivity import StaticConnectivity, TcpConnectivityMonitor
from cryptosage.adapters.storage.json_cache_adapter import JsonFileCache
from cryptosage.adapters.storage.json_favorites_store import JsonFavoritesStore
from cryptosage.application.services.market_data_service import MarketDataService
from cryptosage.application.services.refresh_scheduler import AutoRefreshScheduler
from cryptosage.application.use_cases.market_engine import MarketEngine
from cryptosage.domain.ports.storage_port import CachePort, ConnectivityPort, FavoritesPort
from cryptosage.infrastructure.config import Settings, get_settings


@dataclass
class Container:
    """
    Dependency injection container.

    Built once by the application root and passed to whatever needs it.
    """

    settings: Settings

    # Adapters
    coingecko: CoinGeckoAdapter
    coinpaprika: Optional[CoinPaprikaAdapter]
    cache: CachePort
    favorites: FavoritesPort
    connectivity: ConnectivityPort

    # Services
    market_data: MarketDataService
    scheduler: AutoRefreshScheduler

    # Use cases
    engine: MarketEngine


def create_container(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    connectivity: Optional[ConnectivityPort] = None,
) -> Container:
    """
    Create and wire every application component.

    Args:
        settings: Optional settings override
        transport: Optional httpx transport shared by both providers
        connectivity: Optional connectivity monitor override

    Returns:
        Configured Container instance.
    """
    if settings is None:
        settings = get_settings()

    coingecko = CoinGeckoAdapter(settings, transport=transport)
    coinpaprika: Optional[CoinPaprikaAdapter] = None
    if settings.enable_secondary_provider:
        coinpaprika = CoinPaprikaAdapter(settings, transport=transport)

    if connectivity is None:
        if settings.connectivity_check_enabled:
            connectivity = TcpConnectivityMonitor(
                host=settings.connectivity_probe_host,
                port=settings.connectivity_probe_port,
                timeout=settings.connectivity_probe_timeout_seconds,
            )
        else:
            connectivity = StaticConnectivity(online=True)

    cache = JsonFileCache(settings.cache_dir)
    favorites = JsonFavoritesStore(settings.favorites_path, key=settings.favorites_key)

    market_data = MarketDataService(
        primary=coingecko,
        secondary=coinpaprika,
        cache=cache,
        connectivity=connectivity,
        settings=settings,
    )

    engine = MarketEngine(
        market_data=market_data,
        favorites=favorites,
        settings=settings,
    )

    scheduler = AutoRefreshScheduler(
        engine,
        coin_interval=settings.coin_refresh_interval_seconds,
        global_interval=settings.global_refresh_interval_seconds,
    )

    return Container(
        settings=settings,
        coingecko=coingecko,
        coinpaprika=coinpaprika,
        cache=cache,
        favorites=favorites,
        connectivity=connectivity,
        market_data=market_data,
        scheduler=scheduler,
        engine=engine,
    )


async def cleanup_container(container: Container) -> None:
    """Stop background work and release HTTP resources."""
    await container.scheduler.stop()
    await container.engine.close()
    await container.market_data.close()
