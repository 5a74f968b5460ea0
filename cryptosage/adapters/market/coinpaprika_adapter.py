"""
CoinPaprika Adapter - Secondary (fallback) market-data provider.

API Documentation: https://api.coinpaprika.com/
Free tier: no API key required.
"""

from typing import Optional

import httpx

from cryptosage.adapters.market.http_client import MarketHTTPClient
from cryptosage.adapters.market.schemas import parse_global, parse_markets
from cryptosage.domain.entities.coin import CoinRecord
from cryptosage.domain.entities.global_market import GlobalSnapshot
from cryptosage.domain.ports.market_data_port import MarketProviderPort
from cryptosage.infrastructure.config import Settings
from cryptosage.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CoinPaprikaAdapter(MarketProviderPort):
    """
    Adapter for the CoinPaprika v1 API.

    Used only as a whole-list fallback. Identifiers use CoinPaprika's
    own scheme (e.g., "btc-bitcoin") and carry no sparkline or image.
    """

    name = "coinpaprika"

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.quote_currency = settings.vs_currency.upper()
        self.client = MarketHTTPClient(
            base_url=settings.coinpaprika_base_url,
            provider=self.name,
            request_timeout=settings.request_timeout_seconds,
            resource_timeout=settings.resource_timeout_seconds,
            transport=transport,
        )

    async def fetch_coin_markets(self) -> list[CoinRecord]:
        """Fetch /tickers with quotes in the configured currency."""
        data = await self.client.get_json(
            "/tickers",
            params={"quotes": self.quote_currency, "limit": str(self.settings.markets_per_page)},
        )
        coins = parse_markets(self.name, data, quote_currency=self.quote_currency)

        logger.info("Fetched CoinPaprika tickers", count=len(coins))
        return coins

    async def fetch_global_data(self) -> GlobalSnapshot:
        """Fetch the /global snapshot (USD only)."""
        data = await self.client.get_json("/global")
        return parse_global(self.name, data)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.close()
