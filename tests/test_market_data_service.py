"""
Tests for the fetch policy: retry, cache fallback, secondary provider and offline gate.
"""

import pytest
from conftest import (
    FakeConnectivity,
    FakeProvider,
    FakeSecondaryProvider,
    make_coin,
    make_snapshot,
    no_sleep,
)

from cryptosage.adapters.storage.json_cache_adapter import JsonFileCache
from cryptosage.application.services.market_data_service import MarketDataService
from cryptosage.domain.exceptions import (
    BadServerResponseError,
    DecodeError,
    RateLimitedError,
    TransientNetworkError,
)


def build_service(settings, primary, secondary=None, online=True):
    cache = JsonFileCache(settings.cache_dir)
    service = MarketDataService(
        primary=primary,
        secondary=secondary,
        cache=cache,
        connectivity=FakeConnectivity(online),
        settings=settings,
        sleep=no_sleep,
    )
    return service, cache


class TestFetchCoinMarkets:
    """Tests for coin list fetching."""

    @pytest.mark.asyncio
    async def test_success_writes_cache(self, settings, sample_coins):
        """Test that a fresh list is returned and cached."""
        service, _ = build_service(settings, FakeProvider(coins=[sample_coins]))

        coins = await service.fetch_coin_markets()

        assert [c.id for c in coins] == ["bitcoin", "ethereum", "dogecoin"]
        assert service.load_cached_coins() == coins

    @pytest.mark.asyncio
    async def test_result_is_sanitized(self, settings):
        """Test that pegged copies and duplicate symbols are dropped."""
        raw = [
            make_coin("bitcoin", "btc", "Bitcoin"),
            make_coin("binance-peg-btc", "BTCB", "Binance-Peg BTC"),
            make_coin("bitcoin-2", "BTC", "Bitcoin Copy"),
        ]
        service, _ = build_service(settings, FakeProvider(coins=[raw]))

        coins = await service.fetch_coin_markets()

        assert [c.id for c in coins] == ["bitcoin"]
        assert [c.id for c in service.load_cached_coins()] == ["bitcoin"]

    @pytest.mark.asyncio
    async def test_transient_failure_retried_then_succeeds(self, settings, sample_coins):
        """Test a retry within one call."""
        primary = FakeProvider(coins=[TransientNetworkError("timeout"), sample_coins])
        service, _ = build_service(settings, primary)

        coins = await service.fetch_coin_markets()

        assert len(coins) == 3
        assert primary.calls["coins"] == 2

    @pytest.mark.asyncio
    async def test_falls_back_to_cache_after_retries(self, settings, sample_coins):
        """Test stale-but-available after every retry fails."""
        primary = FakeProvider(coins=[TransientNetworkError("down")])
        secondary = FakeSecondaryProvider(coins=[[make_coin("btc-bitcoin", "BTC")]])
        service, _ = build_service(settings, primary, secondary)
        service.save_coins(sample_coins)

        coins = await service.fetch_coin_markets()

        assert [c.id for c in coins] == ["bitcoin", "ethereum", "dogecoin"]
        assert primary.calls["coins"] == settings.retry_attempts
        assert secondary.calls["coins"] == 0

    @pytest.mark.asyncio
    async def test_rate_limit_falls_through_once(self, settings, sample_coins):
        """Test that 429 is not retried and falls to cache exactly once."""
        primary = FakeProvider(coins=[RateLimitedError("coingecko")])
        service, _ = build_service(settings, primary)
        service.save_coins(sample_coins)

        coins = await service.fetch_coin_markets()

        assert len(coins) == 3
        assert primary.calls["coins"] == 1

    @pytest.mark.asyncio
    async def test_secondary_used_without_cache(self, settings):
        """Test the fallback provider when no cache exists."""
        primary = FakeProvider(coins=[BadServerResponseError(500, "coingecko")])
        secondary = FakeSecondaryProvider(coins=[[make_coin("btc-bitcoin", "btc", "Bitcoin")]])
        service, _ = build_service(settings, primary, secondary)

        coins = await service.fetch_coin_markets()

        assert [c.id for c in coins] == ["btc-bitcoin"]
        assert secondary.calls["coins"] == 1
        assert [c.id for c in service.load_cached_coins()] == ["btc-bitcoin"]

    @pytest.mark.asyncio
    async def test_both_fail_raises_primary_error(self, settings):
        """Test that the primary error surfaces when everything fails."""
        primary = FakeProvider(coins=[RateLimitedError("coingecko")])
        secondary = FakeSecondaryProvider(coins=[BadServerResponseError(502, "secondary")])
        service, _ = build_service(settings, primary, secondary)

        with pytest.raises(RateLimitedError):
            await service.fetch_coin_markets()

        assert primary.calls["coins"] == 1
        assert secondary.calls["coins"] == 1

    @pytest.mark.asyncio
    async def test_empty_secondary_counts_as_failure(self, settings):
        """Test that an empty fallback list does not replace the error."""
        primary = FakeProvider(coins=[DecodeError("bad", "coingecko")])
        secondary = FakeSecondaryProvider(coins=[[]])
        service, _ = build_service(settings, primary, secondary)

        with pytest.raises(DecodeError) as exc_info:
            await service.fetch_coin_markets()

        assert exc_info.value.provider == "coingecko"

    @pytest.mark.asyncio
    async def test_offline_serves_cache_without_network(self, settings, sample_coins):
        """Test the connectivity gate with a cache."""
        primary = FakeProvider(coins=[sample_coins])
        service, _ = build_service(settings, primary, online=False)
        service.save_coins(sample_coins[:1])

        coins = await service.fetch_coin_markets()

        assert [c.id for c in coins] == ["bitcoin"]
        assert primary.calls["coins"] == 0

    @pytest.mark.asyncio
    async def test_offline_without_cache_raises(self, settings):
        """Test the connectivity gate without a cache."""
        primary = FakeProvider()
        secondary = FakeSecondaryProvider()
        service, _ = build_service(settings, primary, secondary, online=False)

        with pytest.raises(TransientNetworkError):
            await service.fetch_coin_markets()

        assert primary.calls["coins"] == 0
        assert secondary.calls["coins"] == 0

    @pytest.mark.asyncio
    async def test_corrupt_cache_treated_as_missing(self, settings):
        """Test that a malformed cache entry is not served."""
        primary = FakeProvider(coins=[TransientNetworkError("down")])
        service, cache = build_service(settings, primary)
        cache.save(settings.coins_cache_file, [{"no_id": True}])

        assert service.load_coins() is None
        with pytest.raises(TransientNetworkError):
            await service.fetch_coin_markets()

    @pytest.mark.asyncio
    async def test_empty_primary_list_keeps_cache(self, settings, sample_coins):
        """Test that an empty primary result never overwrites a good cache."""
        primary = FakeProvider(coins=[[]])
        service, _ = build_service(settings, primary)
        service.save_coins(sample_coins)

        coins = await service.fetch_coin_markets()

        assert [c.id for c in coins] == ["bitcoin", "ethereum", "dogecoin"]
        assert [c.id for c in service.load_cached_coins()] == ["bitcoin", "ethereum", "dogecoin"]
        assert primary.calls["coins"] == 1

    @pytest.mark.asyncio
    async def test_empty_primary_list_without_cache_uses_secondary(self, settings):
        """Test that an empty primary result falls through to the secondary."""
        primary = FakeProvider(coins=[[]])
        secondary = FakeSecondaryProvider(coins=[[make_coin("sol-solana", "SOL", "Solana")]])
        service, _ = build_service(settings, primary, secondary)

        coins = await service.fetch_coin_markets()

        assert [c.id for c in coins] == ["sol-solana"]
        assert secondary.calls["coins"] == 1

    @pytest.mark.asyncio
    async def test_empty_cached_list_treated_as_missing(self, settings):
        """Test that an empty cache file does not shadow the secondary provider."""
        primary = FakeProvider(coins=[TransientNetworkError("down")])
        secondary = FakeSecondaryProvider(coins=[[make_coin("sol-solana", "SOL", "Solana")]])
        service, cache = build_service(settings, primary, secondary)
        cache.save(settings.coins_cache_file, [])

        assert service.load_coins() is None

        coins = await service.fetch_coin_markets()

        assert [c.id for c in coins] == ["sol-solana"]
        assert secondary.calls["coins"] == 1
        assert [c.id for c in service.load_cached_coins()] == ["sol-solana"]


class TestFetchGlobalData:
    """Tests for the global snapshot."""

    @pytest.mark.asyncio
    async def test_success_writes_cache(self, settings):
        """Test that the snapshot is cached in its own entry."""
        service, _ = build_service(settings, FakeProvider(snapshot=[make_snapshot(btc=50.0)]))

        snapshot = await service.fetch_global_data()

        assert snapshot.btc_dominance == 50.0
        assert service.load_global() == snapshot
        assert service.load_coins() is None

    @pytest.mark.asyncio
    async def test_failure_serves_cached_snapshot(self, settings):
        """Test stale global data after a failure."""
        primary = FakeProvider(snapshot=[BadServerResponseError(500, "coingecko")])
        service, _ = build_service(settings, primary)
        service.save_global(make_snapshot(btc=48.0))

        snapshot = await service.fetch_global_data()

        assert snapshot.btc_dominance == 48.0

    @pytest.mark.asyncio
    async def test_secondary_global(self, settings):
        """Test the fallback provider for global data."""
        primary = FakeProvider(snapshot=[TransientNetworkError("down")])
        secondary = FakeSecondaryProvider(snapshot=[make_snapshot(btc=49.0)])
        service, _ = build_service(settings, primary, secondary)

        snapshot = await service.fetch_global_data()

        assert snapshot.btc_dominance == 49.0


class TestFetchWatchlist:
    """Tests for watchlist fetching."""

    @pytest.mark.asyncio
    async def test_empty_ids_no_io(self, settings):
        """Test that no provider call is made for no ids."""
        primary = FakeProvider()
        service, _ = build_service(settings, primary)

        assert await service.fetch_watchlist([]) == []
        assert primary.calls["watchlist"] == 0

    @pytest.mark.asyncio
    async def test_fetches_from_primary_without_touching_cache(self, settings, sample_coins):
        """Test that the watchlist never overwrites the coin cache."""
        primary = FakeProvider(watchlist=[sample_coins[:1]])
        service, _ = build_service(settings, primary)
        service.save_coins(sample_coins)

        coins = await service.fetch_watchlist(["bitcoin"])

        assert [c.id for c in coins] == ["bitcoin"]
        assert primary.watchlist_requests == [["bitcoin"]]
        assert len(service.load_cached_coins()) == 3

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_cached_subset(self, settings, sample_coins):
        """Test the cached-list filter on failure."""
        primary = FakeProvider(watchlist=[RateLimitedError("coingecko")])
        service, _ = build_service(settings, primary)
        service.save_coins(sample_coins)

        coins = await service.fetch_watchlist(["dogecoin", "missing"])

        assert [c.id for c in coins] == ["dogecoin"]

    @pytest.mark.asyncio
    async def test_offline_uses_cached_subset(self, settings, sample_coins):
        """Test the connectivity gate for the watchlist."""
        primary = FakeProvider(watchlist=[sample_coins])
        service, _ = build_service(settings, primary, online=False)
        service.save_coins(sample_coins)

        coins = await service.fetch_watchlist(["ethereum"])

        assert [c.id for c in coins] == ["ethereum"]
        assert primary.calls["watchlist"] == 0


class TestFetchSpotPrice:
    """Tests for spot prices."""

    @pytest.mark.asyncio
    async def test_price_from_primary(self, settings):
        """Test a plain price lookup."""
        service, _ = build_service(settings, FakeProvider(price=[64000.0]))
        assert await service.fetch_spot_price("bitcoin") == 64000.0

    @pytest.mark.asyncio
    async def test_offline_raises(self, settings):
        """Test that prices have no cache fallback."""
        service, _ = build_service(settings, FakeProvider(), online=False)
        with pytest.raises(TransientNetworkError):
            await service.fetch_spot_price("bitcoin")

    @pytest.mark.asyncio
    async def test_close_closes_providers(self, settings):
        """Test provider cleanup."""
        primary = FakeProvider()
        secondary = FakeSecondaryProvider()
        service, _ = build_service(settings, primary, secondary)

        await service.close()

        assert primary.closed and secondary.closed
