"""
Market Derivation - Pure functions deriving views from the coin list.

Every function here is deterministic: the same inputs always give the
same output, and inputs are never mutated. Sorting is stable, so coins
with equal keys keep their input order in either direction.
"""

from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Optional

from cryptosage.domain.entities.coin import CoinRecord
from cryptosage.domain.entities.market_view import (
    FilterSortState,
    MarketSegment,
    MarketViews,
    SortDirection,
    SortField,
)
from cryptosage.infrastructure.config import DEFAULT_PINNED_SYMBOLS

DEFAULT_STABLECOINS = frozenset({"USDT", "USDC", "BUSD", "DAI"})
DEFAULT_EXCLUDED_NAME_FRAGMENTS = ("binance-peg", "bridged", "wormhole")


@dataclass(frozen=True)
class DerivationConfig:
    """Tunables for view derivation."""

    pinned_symbols: tuple[str, ...] = tuple(DEFAULT_PINNED_SYMBOLS)
    stablecoin_symbols: frozenset[str] = DEFAULT_STABLECOINS
    view_size: int = 10
    excluded_name_fragments: tuple[str, ...] = field(default=DEFAULT_EXCLUDED_NAME_FRAGMENTS)

    @classmethod
    def from_lists(
        cls,
        pinned_symbols: Iterable[str],
        stablecoin_symbols: Iterable[str],
        view_size: int,
        excluded_name_fragments: Iterable[str],
    ) -> "DerivationConfig":
        return cls(
            pinned_symbols=tuple(s.upper() for s in pinned_symbols),
            stablecoin_symbols=frozenset(s.upper() for s in stablecoin_symbols),
            view_size=view_size,
            excluded_name_fragments=tuple(f.lower() for f in excluded_name_fragments),
        )


SORT_KEYS: dict[SortField, Callable[[CoinRecord], object]] = {
    SortField.NAME: lambda c: c.name.lower(),
    SortField.PRICE: lambda c: c.current_price or 0.0,
    SortField.DAILY_CHANGE: lambda c: c.price_change_percentage_24h or 0.0,
    SortField.VOLUME: lambda c: c.total_volume or 0.0,
    SortField.MARKET_CAP: lambda c: c.market_cap or 0.0,
}


# --- Ingestion -------------------------------------------------------------


def merge_coin_lists(*sources: Iterable[CoinRecord]) -> list[CoinRecord]:
    """
    Concatenate sources, keeping the first record per id and per symbol.

    Duplicate tickers (the same symbol under a different identifier, e.g.
    a token bridged to another chain) collapse onto whichever record was
    seen first, in source order.
    """
    seen_ids: set[str] = set()
    seen_symbols: set[str] = set()
    merged: list[CoinRecord] = []

    for source in sources:
        for coin in source:
            symbol = coin.symbol.upper()
            if coin.id in seen_ids or symbol in seen_symbols:
                continue
            seen_ids.add(coin.id)
            seen_symbols.add(symbol)
            merged.append(coin)

    return merged


def sanitize_coins(
    coins: Iterable[CoinRecord],
    excluded_name_fragments: Iterable[str] = DEFAULT_EXCLUDED_NAME_FRAGMENTS,
) -> list[CoinRecord]:
    """
    Drop wrapped/bridged copies by name, upper-case symbols, then dedup
    by id and symbol.
    """
    fragments = tuple(f.lower() for f in excluded_name_fragments)
    kept = [
        coin if coin.symbol == coin.symbol.upper() else replace(coin, symbol=coin.symbol.upper())
        for coin in coins
        if not any(fragment in coin.name.lower() for fragment in fragments)
    ]
    return merge_coin_lists(kept)


# --- Derived slices --------------------------------------------------------


def derive_trending(coins: list[CoinRecord], config: DerivationConfig) -> list[CoinRecord]:
    """Top N by 24h volume, stablecoins excluded."""
    candidates = [c for c in coins if c.symbol.upper() not in config.stablecoin_symbols]
    ranked = sorted(candidates, key=SORT_KEYS[SortField.VOLUME], reverse=True)
    return ranked[: config.view_size]


def derive_gainers(coins: list[CoinRecord], config: DerivationConfig) -> list[CoinRecord]:
    """Top N by descending 24h change."""
    ranked = sorted(coins, key=SORT_KEYS[SortField.DAILY_CHANGE], reverse=True)
    return ranked[: config.view_size]


def derive_losers(coins: list[CoinRecord], config: DerivationConfig) -> list[CoinRecord]:
    """Top N by ascending 24h change."""
    ranked = sorted(coins, key=SORT_KEYS[SortField.DAILY_CHANGE])
    return ranked[: config.view_size]


def derive_favorites(coins: list[CoinRecord], favorite_ids: frozenset[str]) -> list[CoinRecord]:
    """Coins in the favorite set, in list order."""
    return [c for c in coins if c.id in favorite_ids]


# --- Filter and sort -------------------------------------------------------


def filter_by_search(coins: list[CoinRecord], query: str) -> list[CoinRecord]:
    """Case-insensitive substring match on name or symbol."""
    q = query.strip().lower()
    if not q:
        return list(coins)
    return [c for c in coins if q in c.name.lower() or q in c.symbol.lower()]


def sort_coins(
    coins: list[CoinRecord],
    sort_field: SortField,
    direction: SortDirection,
) -> list[CoinRecord]:
    """Stable sort by one field."""
    return sorted(
        coins,
        key=SORT_KEYS[sort_field],
        reverse=direction is SortDirection.DESC,
    )


def apply_pinned_order(coins: list[CoinRecord], pinned_symbols: tuple[str, ...]) -> list[CoinRecord]:
    """
    Pinned symbols first in declared order, the rest by market cap descending.
    """
    rank = {symbol.upper(): index for index, symbol in enumerate(pinned_symbols)}
    pinned = [c for c in coins if c.symbol.upper() in rank]
    others = [c for c in coins if c.symbol.upper() not in rank]

    pinned.sort(key=lambda c: rank[c.symbol.upper()])
    return pinned + sort_coins(others, SortField.MARKET_CAP, SortDirection.DESC)


def select_segment(
    segment: MarketSegment,
    coins: list[CoinRecord],
    views: MarketViews,
) -> list[CoinRecord]:
    """Base subset for a segment, using precomputed slices."""
    if segment is MarketSegment.TRENDING:
        return list(views.trending)
    if segment is MarketSegment.GAINERS:
        return list(views.gainers)
    if segment is MarketSegment.LOSERS:
        return list(views.losers)
    if segment is MarketSegment.FAVORITES:
        return list(views.favorites)
    return list(coins)


def filter_and_sort(
    coins: list[CoinRecord],
    views: MarketViews,
    state: FilterSortState,
    config: DerivationConfig,
) -> list[CoinRecord]:
    """
    Apply segment, search and sort to the coin list.

    The default view (no search, all coins, market cap descending) uses
    the pinned ordering instead of a plain sort.
    """
    subset = select_segment(state.segment, coins, views)
    subset = filter_by_search(subset, state.query)

    if state.is_default_view:
        return apply_pinned_order(subset, config.pinned_symbols)
    return sort_coins(subset, state.sort_field, state.sort_direction)


def derive_views(
    coins: list[CoinRecord],
    favorite_ids: frozenset[str],
    state: FilterSortState,
    config: Optional[DerivationConfig] = None,
) -> MarketViews:
    """
    Compute every derived view from the base inputs.

    Args:
        coins: Base coin list
        favorite_ids: Current favorite set
        state: Filter/sort selection
        config: Derivation tunables (defaults when omitted)

    Returns:
        MarketViews with trending, gainers, losers, favorites and filtered.
    """
    config = config or DerivationConfig()
    views = MarketViews(
        trending=derive_trending(coins, config),
        gainers=derive_gainers(coins, config),
        losers=derive_losers(coins, config),
        favorites=derive_favorites(coins, favorite_ids),
    )
    views.filtered = filter_and_sort(coins, views, state, config)
    return views


def derive_view(
    coins: list[CoinRecord],
    favorite_ids: frozenset[str],
    state: FilterSortState,
    config: Optional[DerivationConfig] = None,
) -> list[CoinRecord]:
    """The filtered-and-sorted list for the given inputs."""
    return derive_views(coins, favorite_ids, state, config).filtered
