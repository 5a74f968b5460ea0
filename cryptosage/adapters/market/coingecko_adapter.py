"""
CoinGecko Adapter - Primary market-data provider.

API Documentation: https://www.coingecko.com/en/api/documentation
Free tier: ~30 calls/minute, no API key required for basic endpoints.
"""

from typing import Optional

import httpx

from cryptosage.adapters.market.http_client import MarketHTTPClient
from cryptosage.adapters.market.schemas import parse_global, parse_markets
from cryptosage.domain.entities.coin import CoinRecord
from cryptosage.domain.entities.global_market import GlobalSnapshot
from cryptosage.domain.exceptions import DecodeError
from cryptosage.domain.ports.market_data_port import WatchlistProviderPort
from cryptosage.infrastructure.config import Settings
from cryptosage.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CoinGeckoAdapter(WatchlistProviderPort):
    """
    Adapter for the CoinGecko v3 API.

    Requests 1h and 24h change windows and, optionally, the 7d sparkline
    so that one payload feeds every derived view.
    """

    name = "coingecko"
    PRICE_CHANGE_WINDOWS = "1h,24h"
    MAX_IDS_PER_REQUEST = 250

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the adapter.

        Args:
            settings: Application settings
            transport: Optional httpx transport override
        """
        self.settings = settings
        headers = {}
        if settings.coingecko_api_key:
            headers["x-cg-demo-api-key"] = settings.coingecko_api_key
        self.client = MarketHTTPClient(
            base_url=settings.coingecko_base_url,
            provider=self.name,
            request_timeout=settings.request_timeout_seconds,
            resource_timeout=settings.resource_timeout_seconds,
            headers=headers,
            transport=transport,
        )

    def _markets_params(self) -> dict[str, str]:
        return {
            "vs_currency": self.settings.vs_currency,
            "order": "market_cap_desc",
            "sparkline": str(self.settings.include_sparkline).lower(),
            "price_change_percentage": self.PRICE_CHANGE_WINDOWS,
        }

    async def fetch_coin_markets(self) -> list[CoinRecord]:
        """Fetch the top coins by market cap from /coins/markets."""
        params = self._markets_params()
        params["per_page"] = str(self.settings.markets_per_page)
        params["page"] = str(self.settings.markets_page)

        data = await self.client.get_json("/coins/markets", params=params)
        coins = parse_markets(self.name, data)

        logger.info("Fetched CoinGecko markets", count=len(coins))
        return coins

    async def fetch_watchlist(self, ids: list[str]) -> list[CoinRecord]:
        """Fetch /coins/markets filtered server-side to the given ids."""
        if not ids:
            return []

        unique_ids = list(dict.fromkeys(ids))[: self.MAX_IDS_PER_REQUEST]
        params = self._markets_params()
        params["ids"] = ",".join(unique_ids)
        params["per_page"] = str(len(unique_ids))

        data = await self.client.get_json("/coins/markets", params=params)
        coins = parse_markets(self.name, data)

        logger.debug("Fetched CoinGecko watchlist", requested=len(unique_ids), count=len(coins))
        return coins

    async def fetch_global_data(self) -> GlobalSnapshot:
        """Fetch the /global snapshot."""
        data = await self.client.get_json("/global")
        return parse_global(self.name, data)

    async def fetch_spot_price(self, coin_id: str) -> float:
        """Fetch one coin's price from /simple/price."""
        currency = self.settings.vs_currency.lower()
        data = await self.client.get_json(
            "/simple/price",
            params={"ids": coin_id, "vs_currencies": currency},
        )

        try:
            return float(data[coin_id][currency])
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"No {currency} price for {coin_id}", self.name) from e

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.close()
