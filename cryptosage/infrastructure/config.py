"""
Application configuration using Pydantic Settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_PINNED_SYMBOLS = [
    "BTC", "ETH", "BNB", "XRP", "ADA", "DOGE", "MATIC", "SOL",
    "DOT", "LTC", "SHIB", "TRX", "AVAX", "LINK", "UNI", "BCH",
]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # CoinGecko (primary provider)
    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="CoinGecko API base URL",
    )
    coingecko_api_key: Optional[str] = Field(
        default=None,
        description="CoinGecko demo API key (optional, for higher rate limits)",
    )

    # CoinPaprika (secondary provider)
    coinpaprika_base_url: str = Field(
        default="https://api.coinpaprika.com/v1",
        description="CoinPaprika API base URL",
    )
    enable_secondary_provider: bool = Field(
        default=True,
        description="Fall back to CoinPaprika when CoinGecko fails and no cache exists",
    )

    # Market query
    vs_currency: str = Field(default="usd", description="Quote currency for prices")
    markets_per_page: int = Field(default=100, description="Coins per markets page")
    markets_page: int = Field(default=1, description="Markets page number")
    include_sparkline: bool = Field(default=True, description="Request 7d sparkline")

    # HTTP policy
    request_timeout_seconds: float = Field(
        default=30.0,
        description="Per-request timeout",
    )
    resource_timeout_seconds: float = Field(
        default=60.0,
        description="Total time allowed for one request including body download",
    )
    retry_attempts: int = Field(
        default=2,
        description="Total attempts for transient network failures",
    )
    retry_base_delay_seconds: float = Field(
        default=0.5,
        description="First backoff delay; doubles on each attempt",
    )

    # Connectivity
    connectivity_check_enabled: bool = Field(
        default=True,
        description="Probe connectivity before hitting the network",
    )
    connectivity_probe_host: str = Field(default="1.1.1.1", description="Probe host")
    connectivity_probe_port: int = Field(default=53, description="Probe TCP port")
    connectivity_probe_timeout_seconds: float = Field(
        default=2.0,
        description="Probe connect timeout",
    )

    # Storage
    cache_dir: str = Field(default="data/cache", description="Disk cache directory")
    coins_cache_file: str = Field(default="coins_cache.json", description="Coin list cache file")
    global_cache_file: str = Field(default="global_cache.json", description="Global snapshot cache file")
    favorites_path: str = Field(
        default="data/favorites.json",
        description="Key-value file holding the favorite coin ids",
    )
    favorites_key: str = Field(
        default="favoriteCoinIDs",
        description="Key under which favorite ids are stored",
    )

    # Refresh policy
    coin_refresh_interval_seconds: float = Field(
        default=30.0,
        description="Seconds between coin list refreshes",
    )
    global_refresh_interval_seconds: float = Field(
        default=90.0,
        description="Seconds between global snapshot refreshes",
    )
    search_debounce_seconds: float = Field(
        default=0.3,
        description="Quiet period before a search text change is applied",
    )
    watchlist_debounce_seconds: float = Field(
        default=0.5,
        description="Quiet period before favorites changes trigger a watchlist fetch",
    )

    # Derivation
    derived_view_size: int = Field(
        default=10,
        description="Number of coins in trending/gainers/losers views",
    )
    pinned_symbols: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PINNED_SYMBOLS),
        description="Symbols pinned to the top of the default view, in order",
    )
    stablecoin_symbols: list[str] = Field(
        default_factory=lambda: ["USDT", "USDC", "BUSD", "DAI"],
        description="Symbols excluded from the trending view",
    )
    excluded_name_fragments: list[str] = Field(
        default_factory=lambda: ["binance-peg", "bridged", "wormhole"],
        description="Coins whose lower-cased name contains any of these are dropped",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    def validate_required(self) -> list[str]:
        """
        Validate that settings are usable.

        Returns:
            List of problems found (empty when valid).
        """
        problems = []

        if self.coin_refresh_interval_seconds <= 0:
            problems.append("COIN_REFRESH_INTERVAL_SECONDS must be positive")
        if self.global_refresh_interval_seconds <= 0:
            problems.append("GLOBAL_REFRESH_INTERVAL_SECONDS must be positive")
        if self.retry_attempts < 1:
            problems.append("RETRY_ATTEMPTS must be at least 1")
        if self.markets_per_page < 1 or self.markets_per_page > 250:
            problems.append("MARKETS_PER_PAGE must be between 1 and 250")
        if self.derived_view_size < 1:
            problems.append("DERIVED_VIEW_SIZE must be at least 1")
        if not self.coingecko_base_url:
            problems.append("COINGECKO_BASE_URL is required")

        return problems


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
