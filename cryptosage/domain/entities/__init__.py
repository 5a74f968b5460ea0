"""
Domain entities - Core business objects.
"""

from cryptosage.domain.entities.coin import CoinRecord
from cryptosage.domain.entities.global_market import GlobalSnapshot
from cryptosage.domain.entities.market_view import (
    ChangeTopic,
    FilterSortState,
    LoadingState,
    LoadStatus,
    MarketSegment,
    MarketViews,
    SortDirection,
    SortField,
    StateChanged,
)

__all__ = [
    "CoinRecord",
    "GlobalSnapshot",
    "ChangeTopic",
    "FilterSortState",
    "LoadingState",
    "LoadStatus",
    "MarketSegment",
    "MarketViews",
    "SortDirection",
    "SortField",
    "StateChanged",
]
