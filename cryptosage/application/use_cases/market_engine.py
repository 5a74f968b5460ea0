"""
Market Engine Use Case - Owns the coin list and publishes derived views.
"""

import asyncio
from contextlib import suppress
from dataclasses import replace
from typing import Callable, Optional

from cryptosage.application.services.market_derivation import DerivationConfig, derive_views
from cryptosage.domain.entities.coin import CoinRecord
from cryptosage.domain.entities.global_market import GlobalSnapshot
from cryptosage.domain.entities.market_view import (
    ChangeTopic,
    FilterSortState,
    LoadingState,
    MarketSegment,
    MarketViews,
    SortDirection,
    SortField,
    StateChanged,
)
from cryptosage.domain.exceptions import (
    MarketDataError,
    NoDataAvailableError,
    TransientNetworkError,
)
from cryptosage.domain.ports.market_data_port import MarketDataPort
from cryptosage.domain.ports.storage_port import FavoritesPort
from cryptosage.infrastructure.config import Settings
from cryptosage.infrastructure.logging import get_logger
from cryptosage.infrastructure.observable import Subject

logger = get_logger(__name__)


def describe_error(error: MarketDataError) -> str:
    """User-facing message for a fetch failure."""
    if isinstance(error, TransientNetworkError):
        return "Network unavailable. Check your connection and try again."
    return error.message


class MarketEngine:
    """
    Aggregation engine for the market screen.

    Load state moves idle -> loading -> success | failure. A failed
    refresh with data already on hand keeps that data and publishes
    success again with last_error set; failure is published only when
    there is nothing to show.

    All mutation happens on the event loop. Every publish emits a
    StateChanged event on `events`.
    """

    def __init__(
        self,
        market_data: MarketDataPort,
        favorites: FavoritesPort,
        settings: Settings,
    ):
        """
        Initialize the engine.

        Args:
            market_data: Fetch layer
            favorites: Favorite set owner
            settings: Application settings
        """
        self.market_data = market_data
        self.favorites = favorites
        self.config = DerivationConfig.from_lists(
            pinned_symbols=settings.pinned_symbols,
            stablecoin_symbols=settings.stablecoin_symbols,
            view_size=settings.derived_view_size,
            excluded_name_fragments=settings.excluded_name_fragments,
        )
        self.search_debounce = settings.search_debounce_seconds
        self.watchlist_debounce = settings.watchlist_debounce_seconds

        self.events: Subject[StateChanged] = Subject("market_engine")

        self.state = LoadingState.idle()
        self.coins: list[CoinRecord] = []
        self.views = MarketViews()
        self.watchlist: list[CoinRecord] = []
        self.global_snapshot: Optional[GlobalSnapshot] = None
        self.global_error: Optional[str] = None
        self.last_error: Optional[str] = None
        self.filter_state = FilterSortState()

        self._favorite_ids = favorites.get_all()
        self._refreshing = False
        self._refreshing_global = False
        self._watchlist_generation = 0
        self._search_task: Optional[asyncio.Task] = None
        self._watchlist_task: Optional[asyncio.Task] = None
        self._unsubscribe_favorites: Optional[Callable[[], None]] = None

    @property
    def filtered_coins(self) -> list[CoinRecord]:
        return self.views.filtered

    @property
    def is_refreshing(self) -> bool:
        return self._refreshing

    # --- Publishing ---

    def _emit(self, topic: ChangeTopic) -> None:
        self.events.emit(StateChanged(topic=topic, state=self.state))

    def _publish_state(self, state: LoadingState) -> None:
        self.state = state
        self._emit(ChangeTopic.LOAD_STATE)

    def _recompute(self) -> None:
        self.views = derive_views(self.coins, self._favorite_ids, self.filter_state, self.config)
        self._emit(ChangeTopic.VIEWS)

    def _apply_coins(self, coins: list[CoinRecord]) -> None:
        self.coins = list(coins)
        self.last_error = None
        self._publish_state(LoadingState.success(self.coins))
        self._recompute()

    def _apply_failure(self, error: MarketDataError) -> None:
        message = describe_error(error)
        self.last_error = message

        if self.coins:
            logger.warning(
                "Refresh failed, keeping previous data",
                count=len(self.coins),
                error=str(error),
            )
            self._publish_state(LoadingState.success(self.coins))
            return

        logger.error("Refresh failed with no data to show", error=str(error))
        self._publish_state(LoadingState.failure(message))

    # --- Lifecycle ---

    async def start(self) -> None:
        """
        Seed from cache, follow the favorite set, then load everything.
        """
        if self._unsubscribe_favorites is not None:
            return

        self._favorite_ids = self.favorites.get_all()
        cached = self.market_data.load_cached_coins()
        if cached:
            logger.info("Seeded from cache", count=len(cached))
            self._apply_coins(cached)

        self._unsubscribe_favorites = self.favorites.subscribe(self._on_favorites_changed)
        await self.load_all_data()

    async def load_all_data(self) -> None:
        """Coin list and watchlist, then the global snapshot."""
        await self.refresh()
        await self.refresh_global()

    async def close(self) -> None:
        """Cancel pending debounced work and stop following favorites."""
        for task in (self._search_task, self._watchlist_task):
            if task is not None and not task.done():
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
        self._search_task = None
        self._watchlist_task = None

        if self._unsubscribe_favorites is not None:
            self._unsubscribe_favorites()
            self._unsubscribe_favorites = None

    async def wait_pending(self) -> None:
        """Wait for any debounced search or watchlist work to finish."""
        for task in (self._search_task, self._watchlist_task):
            if task is not None and not task.done():
                with suppress(asyncio.CancelledError):
                    await task

    # --- Loading ---

    async def refresh(self) -> bool:
        """
        Reload the coin list, then the watchlist.

        Returns:
            False if skipped because a refresh is already in flight.
        """
        if self._refreshing:
            logger.debug("Refresh already in flight, skipping")
            return False

        self._refreshing = True
        try:
            await self._load_coins()
            await self.load_watchlist()
        finally:
            self._refreshing = False
        return True

    async def _load_coins(self) -> None:
        self._publish_state(LoadingState.loading())

        try:
            coins = await self.market_data.fetch_coin_markets()
        except MarketDataError as e:
            self._apply_failure(e)
            return

        if not coins:
            self._apply_failure(NoDataAvailableError())
            return

        logger.info("Coin list loaded", count=len(coins))
        self._apply_coins(coins)

    async def load_watchlist(self) -> None:
        """
        Fetch the favorite coins' records.

        Results from a fetch superseded by a later one, or by a favorites
        change, are dropped. Errors are logged and otherwise ignored.
        """
        self._watchlist_generation += 1
        generation = self._watchlist_generation
        ids = sorted(self._favorite_ids)

        try:
            coins = await self.market_data.fetch_watchlist(ids)
        except MarketDataError as e:
            logger.warning("Watchlist fetch failed", error=str(e))
            return

        if generation != self._watchlist_generation:
            logger.debug("Discarding superseded watchlist", generation=generation)
            return

        self.watchlist = coins
        self._emit(ChangeTopic.WATCHLIST)

    async def refresh_global(self) -> bool:
        """
        Reload the global snapshot, keeping the previous one on failure.

        Returns:
            False if skipped because a global refresh is already in flight.
        """
        if self._refreshing_global:
            return False

        self._refreshing_global = True
        try:
            snapshot = await self.market_data.fetch_global_data()
        except MarketDataError as e:
            self.global_error = describe_error(e)
            logger.warning("Global snapshot refresh failed", error=str(e))
        else:
            self.global_snapshot = snapshot
            self.global_error = None
        finally:
            self._refreshing_global = False

        self._emit(ChangeTopic.GLOBAL)
        return True

    # --- Filter and sort ---

    def set_segment(self, segment: MarketSegment) -> None:
        if segment is self.filter_state.segment:
            return
        self.filter_state = replace(self.filter_state, segment=segment)
        self._recompute()

    def set_sort(self, sort_field: SortField, direction: SortDirection) -> None:
        state = replace(self.filter_state, sort_field=sort_field, sort_direction=direction)
        if state == self.filter_state:
            return
        self.filter_state = state
        self._recompute()

    def toggle_sort(self, sort_field: SortField) -> None:
        """Same field flips direction; a new field starts ascending."""
        self.filter_state = self.filter_state.with_sort_toggled(sort_field)
        self._recompute()

    def set_search_text(self, text: str) -> None:
        """
        Update the search text.

        Applied after the search debounce interval; each call restarts
        the interval.
        """
        if self._search_task is not None and not self._search_task.done():
            self._search_task.cancel()
            self._search_task = None

        if self.search_debounce <= 0:
            self._apply_search(text)
            return

        self._search_task = asyncio.create_task(self._debounced_search(text))

    async def _debounced_search(self, text: str) -> None:
        await asyncio.sleep(self.search_debounce)
        self._apply_search(text)

    def _apply_search(self, text: str) -> None:
        if text == self.filter_state.search_text:
            return
        self.filter_state = replace(self.filter_state, search_text=text)
        self._recompute()

    # --- Favorites ---

    def is_favorite(self, coin_id: str) -> bool:
        return self.favorites.is_favorite(coin_id)

    def toggle_favorite(self, coin_id: str) -> bool:
        """
        Toggle a coin's favorite membership.

        Returns:
            True if the coin is a favorite after the call.
        """
        return self.favorites.toggle(coin_id)

    def remove_favorite(self, coin_id: str) -> None:
        self.favorites.remove(coin_id)

    def _on_favorites_changed(self, ids: frozenset[str]) -> None:
        self._favorite_ids = ids
        self._watchlist_generation += 1
        self._emit(ChangeTopic.FAVORITES)
        self._recompute()
        self._schedule_watchlist()

    def _schedule_watchlist(self) -> None:
        if self._watchlist_task is not None and not self._watchlist_task.done():
            self._watchlist_task.cancel()
        self._watchlist_task = asyncio.create_task(self._debounced_watchlist())

    async def _debounced_watchlist(self) -> None:
        await asyncio.sleep(self.watchlist_debounce)
        await self.load_watchlist()
