"""
Market data adapters - External API integrations.
"""

from cryptosage.adapters.market.coingecko_adapter import CoinGeckoAdapter
from cryptosage.adapters.market.coinpaprika_adapter import CoinPaprikaAdapter
from cryptosage.adapters.market.http_client import MarketHTTPClient

__all__ = [
    "CoinGeckoAdapter",
    "CoinPaprikaAdapter",
    "MarketHTTPClient",
]
