"""
Market view entities - Segments, sort state, load state and derived views.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from cryptosage.domain.entities.coin import CoinRecord


class MarketSegment(str, Enum):
    """Which slice of the market to display."""

    ALL = "all"
    TRENDING = "trending"
    GAINERS = "gainers"
    LOSERS = "losers"
    FAVORITES = "favorites"


class SortField(str, Enum):
    """Fields by which to sort."""

    NAME = "name"
    PRICE = "price"
    DAILY_CHANGE = "daily_change"
    VOLUME = "volume"
    MARKET_CAP = "market_cap"


class SortDirection(str, Enum):
    """Ascending or descending sort direction."""

    ASC = "asc"
    DESC = "desc"

    def toggled(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


@dataclass(frozen=True)
class FilterSortState:
    """Transient filter and sort selection. Never persisted."""

    segment: MarketSegment = MarketSegment.ALL
    search_text: str = ""
    sort_field: SortField = SortField.MARKET_CAP
    sort_direction: SortDirection = SortDirection.DESC

    @property
    def query(self) -> str:
        """Normalized search query."""
        return self.search_text.strip().lower()

    @property
    def is_default_view(self) -> bool:
        """No search, all coins, market cap descending."""
        return (
            not self.query
            and self.segment is MarketSegment.ALL
            and self.sort_field is SortField.MARKET_CAP
            and self.sort_direction is SortDirection.DESC
        )

    def with_sort_toggled(self, sort_field: SortField) -> "FilterSortState":
        """Same field flips direction; a new field starts ascending."""
        if sort_field is self.sort_field:
            return replace(self, sort_direction=self.sort_direction.toggled())
        return replace(self, sort_field=sort_field, sort_direction=SortDirection.ASC)


class LoadStatus(str, Enum):
    """Coin list load status."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class LoadingState:
    """Load state of the coin list: idle, loading, success(coins) or failure(message)."""

    status: LoadStatus = LoadStatus.IDLE
    coins: tuple[CoinRecord, ...] = ()
    message: Optional[str] = None

    @classmethod
    def idle(cls) -> "LoadingState":
        return cls(LoadStatus.IDLE)

    @classmethod
    def loading(cls) -> "LoadingState":
        return cls(LoadStatus.LOADING)

    @classmethod
    def success(cls, coins: list[CoinRecord]) -> "LoadingState":
        return cls(LoadStatus.SUCCESS, coins=tuple(coins))

    @classmethod
    def failure(cls, message: str) -> "LoadingState":
        return cls(LoadStatus.FAILURE, message=message)

    @property
    def is_loading(self) -> bool:
        return self.status is LoadStatus.LOADING

    @property
    def is_success(self) -> bool:
        return self.status is LoadStatus.SUCCESS

    @property
    def is_failure(self) -> bool:
        return self.status is LoadStatus.FAILURE


@dataclass
class MarketViews:
    """Derived views over the coin list."""

    trending: list[CoinRecord] = field(default_factory=list)
    gainers: list[CoinRecord] = field(default_factory=list)
    losers: list[CoinRecord] = field(default_factory=list)
    favorites: list[CoinRecord] = field(default_factory=list)
    filtered: list[CoinRecord] = field(default_factory=list)


class ChangeTopic(str, Enum):
    """What part of the engine's published state changed."""

    LOAD_STATE = "load_state"
    VIEWS = "views"
    WATCHLIST = "watchlist"
    GLOBAL = "global"
    FAVORITES = "favorites"


@dataclass(frozen=True)
class StateChanged:
    """Event emitted by the market engine after each publish."""

    topic: ChangeTopic
    state: LoadingState
