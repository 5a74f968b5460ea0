"""
Shared fixtures and fakes for the test suite.
"""

from typing import Optional

import pytest

from cryptosage.domain.entities.coin import CoinRecord
from cryptosage.domain.entities.global_market import GlobalSnapshot
from cryptosage.domain.exceptions import MarketDataError
from cryptosage.domain.ports.market_data_port import (
    MarketDataPort,
    MarketProviderPort,
    WatchlistProviderPort,
)
from cryptosage.domain.ports.storage_port import ConnectivityPort
from cryptosage.infrastructure.config import Settings


def make_coin(
    coin_id: str,
    symbol: str,
    name: Optional[str] = None,
    market_cap: Optional[float] = None,
    volume: Optional[float] = None,
    change_24h: Optional[float] = None,
    price: Optional[float] = None,
) -> CoinRecord:
    """Build a coin record with only the fields a test cares about."""
    return CoinRecord(
        id=coin_id,
        symbol=symbol,
        name=name or coin_id.capitalize(),
        current_price=price,
        total_volume=volume,
        market_cap=market_cap,
        price_change_percentage_24h=change_24h,
    )


def make_snapshot(market_cap: float = 2.5e12, btc: float = 52.0) -> GlobalSnapshot:
    return GlobalSnapshot(
        total_market_cap={"usd": market_cap},
        total_volume={"usd": 9.0e10},
        market_cap_percentage={"btc": btc, "eth": 17.0},
    )


@pytest.fixture
def sample_coins() -> list[CoinRecord]:
    """Bitcoin, Ethereum and Dogecoin with distinct market caps."""
    return [
        make_coin("bitcoin", "BTC", "Bitcoin", market_cap=900e9, volume=30e9, change_24h=1.5),
        make_coin("ethereum", "ETH", "Ethereum", market_cap=400e9, volume=15e9, change_24h=-2.0),
        make_coin("dogecoin", "DOGE", "Dogecoin", market_cap=20e9, volume=1e9, change_24h=8.0),
    ]


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated to a temp directory, with no delays."""
    return Settings(
        _env_file=None,
        cache_dir=str(tmp_path / "cache"),
        favorites_path=str(tmp_path / "favorites.json"),
        retry_attempts=2,
        retry_base_delay_seconds=0.0,
        search_debounce_seconds=0.0,
        watchlist_debounce_seconds=0.0,
        connectivity_check_enabled=False,
        coingecko_api_key=None,
    )


async def no_sleep(_: float) -> None:
    """Backoff sleep replacement."""


class FakeProvider(WatchlistProviderPort):
    """
    Scripted provider.

    Each fetch pops the next outcome from its queue; an exception
    instance is raised, anything else is returned. The last outcome
    repeats once the queue is down to one entry.
    """

    def __init__(self, name: str = "fake", coins=None, snapshot=None, watchlist=None, price=None):
        self.name = name
        self.coin_outcomes = list(coins if coins is not None else [[]])
        self.global_outcomes = list(snapshot if snapshot is not None else [make_snapshot()])
        self.watchlist_outcomes = list(watchlist if watchlist is not None else [[]])
        self.price_outcomes = list(price if price is not None else [1.0])
        self.calls: dict[str, int] = {"coins": 0, "global": 0, "watchlist": 0, "price": 0}
        self.watchlist_requests: list[list[str]] = []
        self.closed = False

    @staticmethod
    def _next(outcomes: list):
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def fetch_coin_markets(self) -> list[CoinRecord]:
        self.calls["coins"] += 1
        return list(self._next(self.coin_outcomes))

    async def fetch_global_data(self) -> GlobalSnapshot:
        self.calls["global"] += 1
        return self._next(self.global_outcomes)

    async def fetch_watchlist(self, ids: list[str]) -> list[CoinRecord]:
        self.calls["watchlist"] += 1
        self.watchlist_requests.append(list(ids))
        return list(self._next(self.watchlist_outcomes))

    async def fetch_spot_price(self, coin_id: str) -> float:
        self.calls["price"] += 1
        return self._next(self.price_outcomes)

    async def close(self) -> None:
        self.closed = True


class FakeSecondaryProvider(MarketProviderPort):
    """Scripted fallback provider without watchlist support."""

    def __init__(self, coins=None, snapshot=None):
        self.name = "secondary"
        self._inner = FakeProvider("secondary", coins=coins, snapshot=snapshot)
        self.closed = False

    @property
    def calls(self) -> dict[str, int]:
        return self._inner.calls

    async def fetch_coin_markets(self) -> list[CoinRecord]:
        return await self._inner.fetch_coin_markets()

    async def fetch_global_data(self) -> GlobalSnapshot:
        return await self._inner.fetch_global_data()

    async def close(self) -> None:
        self.closed = True


class FakeConnectivity(ConnectivityPort):
    def __init__(self, online: bool = True):
        self.online = online

    async def is_online(self) -> bool:
        return self.online


class FakeMarketData(MarketDataPort):
    """
    Scripted fetch layer for engine tests.

    Outcomes work like FakeProvider's. Watchlist results are the
    scripted coins filtered to the requested ids unless an outcome
    is queued.
    """

    def __init__(self, coins=None, snapshot=None, cached=None):
        self.coin_outcomes = list(coins if coins is not None else [[]])
        self.global_outcomes = list(snapshot if snapshot is not None else [make_snapshot()])
        self.watchlist_outcomes: list = []
        self.cached = list(cached or [])
        self.calls: dict[str, int] = {"coins": 0, "global": 0, "watchlist": 0}
        self.watchlist_requests: list[list[str]] = []
        self.coins_gate = None
        self.watchlist_gate = None
        self._last_coins: list[CoinRecord] = []

    async def fetch_coin_markets(self) -> list[CoinRecord]:
        self.calls["coins"] += 1
        if self.coins_gate is not None:
            await self.coins_gate.wait()
        coins = FakeProvider._next(self.coin_outcomes)
        self._last_coins = list(coins)
        return list(coins)

    async def fetch_global_data(self) -> GlobalSnapshot:
        self.calls["global"] += 1
        return FakeProvider._next(self.global_outcomes)

    async def fetch_watchlist(self, ids: list[str]) -> list[CoinRecord]:
        self.calls["watchlist"] += 1
        self.watchlist_requests.append(list(ids))
        if self.watchlist_gate is not None:
            await self.watchlist_gate.wait()
        if self.watchlist_outcomes:
            outcome = self.watchlist_outcomes.pop(0)
            if isinstance(outcome, MarketDataError):
                raise outcome
            return list(outcome)
        wanted = set(ids)
        return [c for c in self._last_coins or self.cached if c.id in wanted]

    async def fetch_spot_price(self, coin_id: str) -> float:
        return 1.0

    def load_cached_coins(self) -> list[CoinRecord]:
        return list(self.cached)
