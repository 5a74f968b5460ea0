"""
Tests for domain entities.
"""

from datetime import datetime, timezone

from cryptosage.domain.entities.coin import CoinRecord
from cryptosage.domain.entities.global_market import GlobalSnapshot
from cryptosage.domain.entities.market_view import (
    FilterSortState,
    LoadingState,
    LoadStatus,
    MarketSegment,
    SortDirection,
    SortField,
)


class TestCoinRecord:
    """Tests for CoinRecord entity."""

    def test_from_dict_reads_markets_field_names(self):
        """Test decoding a CoinGecko-shaped dictionary."""
        coin = CoinRecord.from_dict({
            "id": "bitcoin",
            "symbol": "btc",
            "name": "Bitcoin",
            "current_price": 64000,
            "market_cap": "1260000000000",
            "market_cap_rank": 1,
            "total_volume": 30000000000.5,
            "price_change_percentage_1h_in_currency": 0.2,
            "price_change_percentage_24h_in_currency": -1.4,
            "sparkline_in_7d": {"price": [1, 2.5, 3]},
            "max_supply": 21000000,
        })

        assert coin.symbol == "BTC"
        assert coin.current_price == 64000.0
        assert coin.market_cap == 1.26e12
        assert coin.price_change_percentage_24h == -1.4
        assert coin.price_change_percentage_1h == 0.2
        assert coin.sparkline_7d == [1.0, 2.5, 3.0]
        assert coin.max_supply == 21e6

    def test_to_dict_round_trip(self):
        """Test that the cached shape decodes back to an equal record."""
        coin = CoinRecord(
            id="ethereum",
            symbol="ETH",
            name="Ethereum",
            current_price=3100.0,
            total_volume=1.5e10,
            market_cap=3.7e11,
            market_cap_rank=2,
            price_change_percentage_24h=2.1,
            sparkline_7d=[3000.0, 3100.0],
        )
        assert CoinRecord.from_dict(coin.to_dict()) == coin

    def test_missing_numbers_stay_none(self):
        """Test that absent optional fields decode as None."""
        coin = CoinRecord.from_dict({"id": "x", "symbol": "x", "name": "X", "current_price": None})
        assert coin.current_price is None
        assert coin.sparkline_7d is None
        assert coin.daily_change == 0.0
        assert coin.hourly_change == 0.0

    def test_hash_by_id(self):
        """Test that records hash by identifier."""
        a = CoinRecord(id="bitcoin", symbol="BTC", name="Bitcoin", current_price=1.0)
        b = CoinRecord(id="bitcoin", symbol="BTC", name="Bitcoin", current_price=2.0)
        assert hash(a) == hash(b)


class TestGlobalSnapshot:
    """Tests for GlobalSnapshot entity."""

    def test_accessors(self):
        """Test convenience accessors and their zero defaults."""
        snapshot = GlobalSnapshot(
            total_market_cap={"usd": 2.4e12},
            total_volume={"usd": 8.0e10},
            market_cap_percentage={"btc": 51.2},
        )
        assert snapshot.market_cap_usd == 2.4e12
        assert snapshot.volume_24h_usd == 8.0e10
        assert snapshot.btc_dominance == 51.2
        assert snapshot.eth_dominance == 0.0

    def test_round_trip_with_timestamp(self):
        """Test dictionary round trip including updated_at."""
        snapshot = GlobalSnapshot(
            total_market_cap={"usd": 1.0},
            active_cryptocurrencies=12000,
            updated_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        )
        restored = GlobalSnapshot.from_dict(snapshot.to_dict())
        assert restored == snapshot

    def test_from_dict_drops_non_numeric_entries(self):
        """Test that junk values in mappings are ignored."""
        snapshot = GlobalSnapshot.from_dict({"total_market_cap": {"USD": "5", "xyz": "n/a"}})
        assert snapshot.total_market_cap == {"usd": 5.0}


class TestFilterSortState:
    """Tests for FilterSortState."""

    def test_defaults_are_default_view(self):
        """Test that a fresh state is the default view."""
        assert FilterSortState().is_default_view

    def test_whitespace_search_is_still_default_view(self):
        """Test that a blank query does not leave the default view."""
        assert FilterSortState(search_text="   ").is_default_view

    def test_non_default_views(self):
        """Test that segment, search or sort changes leave the default view."""
        assert not FilterSortState(segment=MarketSegment.GAINERS).is_default_view
        assert not FilterSortState(search_text="btc").is_default_view
        assert not FilterSortState(sort_direction=SortDirection.ASC).is_default_view
        assert not FilterSortState(sort_field=SortField.PRICE).is_default_view

    def test_toggle_same_field_flips_direction(self):
        """Test toggling the current field."""
        state = FilterSortState().with_sort_toggled(SortField.MARKET_CAP)
        assert state.sort_field is SortField.MARKET_CAP
        assert state.sort_direction is SortDirection.ASC

    def test_toggle_new_field_starts_ascending(self):
        """Test toggling a different field."""
        state = FilterSortState().with_sort_toggled(SortField.NAME)
        assert state.sort_field is SortField.NAME
        assert state.sort_direction is SortDirection.ASC


class TestLoadingState:
    """Tests for LoadingState."""

    def test_constructors(self):
        """Test each state's status flags."""
        assert LoadingState.idle().status is LoadStatus.IDLE
        assert LoadingState.loading().is_loading
        assert LoadingState.failure("boom").message == "boom"

    def test_success_holds_immutable_copy(self, sample_coins):
        """Test that success captures the coins as a tuple."""
        state = LoadingState.success(sample_coins)
        sample_coins.clear()
        assert state.is_success
        assert len(state.coins) == 3
