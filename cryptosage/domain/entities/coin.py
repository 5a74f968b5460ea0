"""
Coin entity - One tradable asset's market data at a point in time.
"""

from dataclasses import dataclass
from typing import Any, Optional


def _to_float(value: Any) -> Optional[float]:
    """Coerce a JSON number (or numeric string) to float, keeping None."""
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class CoinRecord:
    """
    Canonical coin market record.

    Field names follow CoinGecko's /coins/markets payload so that the
    cached JSON and the provider JSON share one shape.
    """

    id: str  # Provider identifier (e.g., "bitcoin")
    symbol: str  # Ticker symbol, upper-case (e.g., "BTC")
    name: str  # Display name (e.g., "Bitcoin")
    current_price: Optional[float] = None  # USD
    total_volume: Optional[float] = None  # 24h volume, USD
    market_cap: Optional[float] = None
    market_cap_rank: Optional[int] = None
    price_change_percentage_24h: Optional[float] = None
    price_change_percentage_1h: Optional[float] = None
    sparkline_7d: Optional[list[float]] = None
    image: Optional[str] = None
    max_supply: Optional[float] = None

    @property
    def daily_change(self) -> float:
        """24h change with missing treated as zero."""
        return self.price_change_percentage_24h or 0.0

    @property
    def hourly_change(self) -> float:
        """1h change with missing treated as zero."""
        return self.price_change_percentage_1h or 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to the cached JSON representation."""
        return {
            "id": self.id,
            "symbol": self.symbol,
            "name": self.name,
            "image": self.image,
            "current_price": self.current_price,
            "market_cap": self.market_cap,
            "market_cap_rank": self.market_cap_rank,
            "total_volume": self.total_volume,
            "price_change_percentage_1h_in_currency": self.price_change_percentage_1h,
            "price_change_percentage_24h_in_currency": self.price_change_percentage_24h,
            "sparkline_in_7d": (
                {"price": list(self.sparkline_7d)} if self.sparkline_7d is not None else None
            ),
            "max_supply": self.max_supply,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CoinRecord":
        """
        Create from the cached JSON representation.

        Raises:
            KeyError: If id, symbol or name is missing.
        """
        sparkline = data.get("sparkline_in_7d") or {}
        prices = sparkline.get("price") if isinstance(sparkline, dict) else None
        rank = data.get("market_cap_rank")

        return cls(
            id=str(data["id"]),
            symbol=str(data["symbol"]).upper(),
            name=str(data["name"]),
            current_price=_to_float(data.get("current_price")),
            total_volume=_to_float(data.get("total_volume")),
            market_cap=_to_float(data.get("market_cap")),
            market_cap_rank=int(rank) if rank is not None else None,
            price_change_percentage_24h=_to_float(
                data.get("price_change_percentage_24h_in_currency")
            ),
            price_change_percentage_1h=_to_float(
                data.get("price_change_percentage_1h_in_currency")
            ),
            sparkline_7d=[float(p) for p in prices] if prices is not None else None,
            image=data.get("image"),
            max_supply=_to_float(data.get("max_supply")),
        )

    def __hash__(self) -> int:
        return hash(self.id)

