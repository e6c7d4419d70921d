"""
Market map value types.

- CurrencyPair: "BASE/QUOTE" pair
- VenueConfig, Ticker, Market, MarketMap: the generated artifact
- Feed, IdentityInfo, LiquidityInfo: venue observations and their ordering
- RemovalReasons: audit trail of dropped feeds and markets
"""

from .currency_pair import CurrencyPair
from .feed import (
    Feed,
    IdentityInfo,
    LiquidityInfo,
    calculate_average_reference_prices,
    compare,
    sort_feeds,
)
from .market_map import Market, MarketMap, Ticker, VenueConfig
from .removal import ExclusionReasons, RemovalReason, RemovalReasons

__all__ = [
    "CurrencyPair",
    "ExclusionReasons",
    "Feed",
    "IdentityInfo",
    "LiquidityInfo",
    "Market",
    "MarketMap",
    "RemovalReason",
    "RemovalReasons",
    "Ticker",
    "VenueConfig",
    "calculate_average_reference_prices",
    "compare",
    "sort_feeds",
]
