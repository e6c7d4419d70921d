"""Feed value types and the ordering used for every tie-break.

A Feed is one venue's observation of one currency pair, enriched with
identity/rank and liquidity information. Feeds are immutable: transforms
derive new Feeds with ``model_copy(update=...)``.
"""

import json
import math
from collections import defaultdict
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from marketmap_generator.common.utils.scaling import scale_price_to_uint
from marketmap_generator.shared.models.market_map import Ticker, VenueConfig

VENUE_COINMARKETCAP = "coinmarketcap"

# CoinMarketCap ids of wrapped assets -> id of the native asset
KNOWN_WRAPPED_ASSET_ALIASES: dict[int, int] = {
    16116: 5426,  # Wrapped SOL -> SOL
}


def resolve_wrapped_asset_alias(asset_id: int) -> int:
    return KNOWN_WRAPPED_ASSET_ALIASES.get(asset_id, asset_id)


class IdentityInfo(BaseModel):
    """Third-party (CoinMarketCap) ids and ranks. Rank 0 means unranked."""

    model_config = ConfigDict(frozen=True)

    base_id: int = Field(default=0)
    quote_id: int = Field(default=0)
    base_rank: int = Field(default=0)
    quote_rank: int = Field(default=0)

    @field_validator("base_id", "quote_id")
    @classmethod
    def resolve_alias(cls, v: int) -> int:
        return resolve_wrapped_asset_alias(v)

    @property
    def has_rank(self) -> bool:
        return self.base_rank > 0

    def invert(self) -> "IdentityInfo":
        return IdentityInfo(
            base_id=self.quote_id,
            quote_id=self.base_id,
            base_rank=self.quote_rank,
            quote_rank=self.base_rank,
        )


class LiquidityInfo(BaseModel):
    """Signed 2% depth on each side of the book, in USD."""

    model_config = ConfigDict(frozen=True)

    negative_depth_two: float = Field(default=0.0)
    positive_depth_two: float = Field(default=0.0)

    @property
    def total_liquidity(self) -> float:
        return self.negative_depth_two + self.positive_depth_two

    def is_zero(self) -> bool:
        return self.total_liquidity == 0

    def is_sufficient(self, required: float) -> bool:
        """Both sides must independently meet the requirement."""
        return (
            self.negative_depth_two >= required and self.positive_depth_two >= required
        )


class Feed(BaseModel):
    """One venue's observation of one currency pair."""

    model_config = ConfigDict(frozen=True)

    ticker: Ticker
    provider_config: VenueConfig
    daily_quote_volume: float = Field(default=0.0)
    daily_usd_volume: float = Field(default=0.0)
    reference_price: float = Field(default=0.0)
    cmc_info: IdentityInfo = Field(default_factory=IdentityInfo)
    liquidity_info: LiquidityInfo = Field(default_factory=LiquidityInfo)

    @property
    def ticker_string(self) -> str:
        return str(self.ticker)

    @property
    def provider_name(self) -> str:
        return self.provider_config.name

    def unique_id(self) -> str:
        """Identity key of the asset pair: "<baseId>-<quoteId>"."""
        base_id = resolve_wrapped_asset_alias(self.cmc_info.base_id)
        quote_id = resolve_wrapped_asset_alias(self.cmc_info.quote_id)
        return f"{base_id}-{quote_id}"

    def invert(self) -> "Feed":
        """
        Swap base and quote.

        The reference price becomes its reciprocal (a zero price stays zero),
        identity ids and ranks are swapped and the venue config is flagged
        as inverted.
        """
        price = self.reference_price
        if price != 0:
            price = 1 / price

        return self.model_copy(
            update={
                "ticker": self.ticker.model_copy(
                    update={"currency_pair": self.ticker.currency_pair.invert()}
                ),
                "provider_config": self.provider_config.model_copy(
                    update={"invert": True}
                ),
                "reference_price": price,
                "cmc_info": self.cmc_info.invert(),
            }
        )

    def summary(self) -> dict:
        """Compact form for log events."""
        return {
            "ticker": self.ticker_string,
            "provider": self.provider_name,
            "off_chain_ticker": self.provider_config.off_chain_ticker,
            "reference_price": self.reference_price,
        }


def _effective_rank(feed: Feed) -> float:
    # unranked sorts after every ranked feed
    return feed.cmc_info.base_rank if feed.cmc_info.has_rank else math.inf


def sort_key(feed: Feed) -> tuple[float, float, float]:
    """Best feed first: lowest rank, then most liquidity, then most USD volume."""
    return (
        _effective_rank(feed),
        -feed.liquidity_info.total_liquidity,
        -feed.daily_usd_volume,
    )


def compare(a: Feed, b: Feed) -> bool:
    """Return True if b is strictly better than a."""
    return sort_key(b) < sort_key(a)


def sort_feeds(feeds: Iterable[Feed]) -> list[Feed]:
    """Stable sort, best first. Feeds equal on all keys keep input order."""
    return sorted(feeds, key=sort_key)


def group_by_provider(feeds: Iterable[Feed]) -> dict[str, list[Feed]]:
    grouped: dict[str, list[Feed]] = defaultdict(list)
    for feed in feeds:
        grouped[feed.provider_name].append(feed)
    return dict(grouped)


def calculate_average_reference_prices(feeds: Iterable[Feed]) -> dict[str, float]:
    """Arithmetic mean of reference prices per canonical ticker string."""
    sums: dict[str, float] = defaultdict(float)
    counts: dict[str, int] = defaultdict(int)

    for feed in feeds:
        sums[feed.ticker_string] += feed.reference_price
        counts[feed.ticker_string] += 1

    return {ticker: sums[ticker] / counts[ticker] for ticker in sums}


def to_ticker_metadata_json(
    feed: Feed, reference_price: float, total_liquidity: float
) -> str:
    """
    Serialize ticker metadata for a market.

    Args:
        feed: Feed that created the market (source of the base asset id)
        reference_price: Average reference price of the market
        total_liquidity: Liquidity summed across feeds of the same identity

    Returns:
        Compact JSON string
    """
    metadata = {
        "reference_price": scale_price_to_uint(reference_price),
        "liquidity": max(int(total_liquidity), 0),
        "aggregate_ids": [
            {"venue": VENUE_COINMARKETCAP, "ID": str(feed.cmc_info.base_id)},
        ],
    }
    return json.dumps(metadata, separators=(",", ":"))
