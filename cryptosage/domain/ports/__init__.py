"""
Domain ports - Interface definitions for hexagonal architecture.
"""

from cryptosage.domain.ports.market_data_port import (
    MarketDataPort,
    MarketProviderPort,
    WatchlistProviderPort,
)
from cryptosage.domain.ports.storage_port import CachePort, ConnectivityPort, FavoritesPort

__all__ = [
    "MarketDataPort",
    "MarketProviderPort",
    "WatchlistProviderPort",
    "CachePort",
    "ConnectivityPort",
    "FavoritesPort",
]
