"""
Global market entity - Aggregate market figures across all coins.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


def _float_map(value: Any) -> dict[str, float]:
    """Coerce a {key: number} mapping, dropping non-numeric entries."""
    result: dict[str, float] = {}
    if not isinstance(value, dict):
        return result
    for key, amount in value.items():
        try:
            result[str(key).lower()] = float(amount)
        except (TypeError, ValueError):
            continue
    return result


@dataclass
class GlobalSnapshot:
    """
    Global market snapshot.

    Mappings are keyed by lower-case currency code ("usd") for totals
    and by lower-case asset symbol ("btc") for dominance percentages.
    """

    total_market_cap: dict[str, float] = field(default_factory=dict)
    total_volume: dict[str, float] = field(default_factory=dict)
    market_cap_percentage: dict[str, float] = field(default_factory=dict)
    active_cryptocurrencies: Optional[int] = None
    markets: Optional[int] = None
    market_cap_change_percentage_24h_usd: Optional[float] = None
    updated_at: Optional[datetime] = None

    @property
    def market_cap_usd(self) -> float:
        return self.total_market_cap.get("usd", 0.0)

    @property
    def volume_24h_usd(self) -> float:
        return self.total_volume.get("usd", 0.0)

    @property
    def btc_dominance(self) -> float:
        return self.market_cap_percentage.get("btc", 0.0)

    @property
    def eth_dominance(self) -> float:
        return self.market_cap_percentage.get("eth", 0.0)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for caching."""
        return {
            "total_market_cap": dict(self.total_market_cap),
            "total_volume": dict(self.total_volume),
            "market_cap_percentage": dict(self.market_cap_percentage),
            "active_cryptocurrencies": self.active_cryptocurrencies,
            "markets": self.markets,
            "market_cap_change_percentage_24h_usd": self.market_cap_change_percentage_24h_usd,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GlobalSnapshot":
        """Create from dictionary."""
        updated_at = data.get("updated_at")
        if isinstance(updated_at, str):
            updated_at = datetime.fromisoformat(updated_at)
        elif not isinstance(updated_at, datetime):
            updated_at = None

        change = data.get("market_cap_change_percentage_24h_usd")

        return cls(
            total_market_cap=_float_map(data.get("total_market_cap")),
            total_volume=_float_map(data.get("total_volume")),
            market_cap_percentage=_float_map(data.get("market_cap_percentage")),
            active_cryptocurrencies=data.get("active_cryptocurrencies"),
            markets=data.get("markets"),
            market_cap_change_percentage_24h_usd=float(change) if change is not None else None,
            updated_at=updated_at,
        )
