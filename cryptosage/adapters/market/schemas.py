"""
Provider response schemas.

Each provider's payload is modelled explicitly and normalized into the
canonical CoinRecord / GlobalSnapshot. Payloads are tagged with the
provider whose endpoint answered, so the decoder never sniffs shapes.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from cryptosage.domain.entities.coin import CoinRecord
from cryptosage.domain.entities.global_market import GlobalSnapshot
from cryptosage.domain.exceptions import DecodeError


class _ProviderModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


# --- CoinGecko -------------------------------------------------------------


class CoinGeckoSparkline(_ProviderModel):
    price: list[Optional[float]] = Field(default_factory=list)


class CoinGeckoMarketItem(_ProviderModel):
    """One entry of CoinGecko /coins/markets."""

    id: str
    symbol: str
    name: str
    image: Optional[str] = None
    current_price: Optional[float] = None
    market_cap: Optional[float] = None
    market_cap_rank: Optional[int] = None
    total_volume: Optional[float] = None
    max_supply: Optional[float] = None
    price_change_percentage_24h: Optional[float] = None
    price_change_percentage_1h_in_currency: Optional[float] = None
    price_change_percentage_24h_in_currency: Optional[float] = None
    sparkline_in_7d: Optional[CoinGeckoSparkline] = None

    def to_coin_record(self) -> CoinRecord:
        change_24h = self.price_change_percentage_24h_in_currency
        if change_24h is None:
            change_24h = self.price_change_percentage_24h

        sparkline = None
        if self.sparkline_in_7d is not None:
            sparkline = [p for p in self.sparkline_in_7d.price if p is not None]

        return CoinRecord(
            id=self.id,
            symbol=self.symbol.upper(),
            name=self.name,
            current_price=self.current_price,
            total_volume=self.total_volume,
            market_cap=self.market_cap,
            market_cap_rank=self.market_cap_rank,
            price_change_percentage_24h=change_24h,
            price_change_percentage_1h=self.price_change_percentage_1h_in_currency,
            sparkline_7d=sparkline,
            image=self.image,
            max_supply=self.max_supply,
        )


class CoinGeckoMarkets(_ProviderModel):
    provider: Literal["coingecko"] = "coingecko"
    items: list[CoinGeckoMarketItem]

    def to_coin_records(self) -> list[CoinRecord]:
        return [item.to_coin_record() for item in self.items]


class CoinGeckoGlobalData(_ProviderModel):
    active_cryptocurrencies: Optional[int] = None
    markets: Optional[int] = None
    total_market_cap: dict[str, float] = Field(default_factory=dict)
    total_volume: dict[str, float] = Field(default_factory=dict)
    market_cap_percentage: dict[str, float] = Field(default_factory=dict)
    market_cap_change_percentage_24h_usd: Optional[float] = None
    updated_at: Optional[int] = None


class CoinGeckoGlobal(_ProviderModel):
    """CoinGecko /global wraps the snapshot in a "data" object."""

    provider: Literal["coingecko"] = "coingecko"
    data: CoinGeckoGlobalData

    def to_snapshot(self) -> GlobalSnapshot:
        data = self.data
        return GlobalSnapshot(
            total_market_cap=dict(data.total_market_cap),
            total_volume=dict(data.total_volume),
            market_cap_percentage=dict(data.market_cap_percentage),
            active_cryptocurrencies=data.active_cryptocurrencies,
            markets=data.markets,
            market_cap_change_percentage_24h_usd=data.market_cap_change_percentage_24h_usd,
            updated_at=_from_timestamp(data.updated_at),
        )


# --- CoinPaprika -----------------------------------------------------------


class CoinPaprikaQuote(_ProviderModel):
    price: Optional[float] = None
    volume_24h: Optional[float] = None
    market_cap: Optional[float] = None
    percent_change_1h: Optional[float] = None
    percent_change_24h: Optional[float] = None


class CoinPaprikaTicker(_ProviderModel):
    """One entry of CoinPaprika /tickers, prices nested under quotes[CURRENCY]."""

    id: str
    name: str
    symbol: str
    rank: Optional[int] = None
    max_supply: Optional[float] = None
    quotes: dict[str, CoinPaprikaQuote] = Field(default_factory=dict)

    def to_coin_record(self, quote_currency: str) -> CoinRecord:
        quote = self.quotes.get(quote_currency.upper(), CoinPaprikaQuote())
        return CoinRecord(
            id=self.id,
            symbol=self.symbol.upper(),
            name=self.name,
            current_price=quote.price,
            total_volume=quote.volume_24h,
            market_cap=quote.market_cap,
            market_cap_rank=self.rank if self.rank else None,
            price_change_percentage_24h=quote.percent_change_24h,
            price_change_percentage_1h=quote.percent_change_1h,
            # CoinPaprika reports 0 for uncapped supply
            max_supply=self.max_supply or None,
        )


class CoinPaprikaTickers(_ProviderModel):
    provider: Literal["coinpaprika"] = "coinpaprika"
    quote_currency: str = "USD"
    items: list[CoinPaprikaTicker]

    def to_coin_records(self) -> list[CoinRecord]:
        return [item.to_coin_record(self.quote_currency) for item in self.items]


class CoinPaprikaGlobal(_ProviderModel):
    """CoinPaprika /global is flat and USD-only."""

    provider: Literal["coinpaprika"] = "coinpaprika"
    market_cap_usd: float = 0.0
    volume_24h_usd: float = 0.0
    bitcoin_dominance_percentage: float = 0.0
    cryptocurrencies_number: Optional[int] = None
    market_cap_change_24h: Optional[float] = None
    last_updated: Optional[int] = None

    def to_snapshot(self) -> GlobalSnapshot:
        return GlobalSnapshot(
            total_market_cap={"usd": self.market_cap_usd},
            total_volume={"usd": self.volume_24h_usd},
            market_cap_percentage={"btc": self.bitcoin_dominance_percentage},
            active_cryptocurrencies=self.cryptocurrencies_number,
            market_cap_change_percentage_24h_usd=self.market_cap_change_24h,
            updated_at=_from_timestamp(self.last_updated),
        )


# --- Tagged unions ---------------------------------------------------------

MarketsResponse = Annotated[
    Union[CoinGeckoMarkets, CoinPaprikaTickers],
    Field(discriminator="provider"),
]
GlobalResponse = Annotated[
    Union[CoinGeckoGlobal, CoinPaprikaGlobal],
    Field(discriminator="provider"),
]

_markets_adapter: TypeAdapter[MarketsResponse] = TypeAdapter(MarketsResponse)
_global_adapter: TypeAdapter[GlobalResponse] = TypeAdapter(GlobalResponse)


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def parse_markets(provider: str, payload: Any, **extra: Any) -> list[CoinRecord]:
    """
    Decode a markets payload from the named provider into coin records.

    Args:
        provider: Tag of the endpoint that answered ("coingecko", "coinpaprika")
        payload: Decoded JSON body (a list of coin objects)
        **extra: Additional envelope fields (e.g., quote_currency)

    Raises:
        DecodeError: If the payload does not match the provider's schema.
    """
    try:
        response = _markets_adapter.validate_python(
            {"provider": provider, "items": payload, **extra}
        )
    except ValidationError as e:
        raise DecodeError(f"Unexpected markets payload: {e.error_count()} errors", provider) from e
    return response.to_coin_records()


def parse_global(provider: str, payload: Any) -> GlobalSnapshot:
    """
    Decode a global payload from the named provider into a snapshot.

    Raises:
        DecodeError: If the payload does not match the provider's schema.
    """
    if not isinstance(payload, dict):
        raise DecodeError("Unexpected global payload: not an object", provider)
    try:
        response = _global_adapter.validate_python({**payload, "provider": provider})
    except ValidationError as e:
        raise DecodeError(f"Unexpected global payload: {e.error_count()} errors", provider) from e
    return response.to_snapshot()
