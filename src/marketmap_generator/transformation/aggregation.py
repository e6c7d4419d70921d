"""Fold the final feed collection into a canonical MarketMap."""

from collections import defaultdict

from marketmap_generator.common.utils.scaling import decimal_places_from_price
from marketmap_generator.infrastructure.observability import get_processing_logger
from marketmap_generator.shared.models import (
    Feed,
    Market,
    MarketMap,
    calculate_average_reference_prices,
)
from marketmap_generator.shared.models.feed import to_ticker_metadata_json

log = get_processing_logger("aggregator")


def feeds_to_market_map(feeds: list[Feed]) -> MarketMap:
    """
    Convert feeds to a market map.

    Feeds sharing a ticker string become one Market. The first feed of a
    ticker fixes its decimals and metadata; later feeds append their venue
    config and raise the minimum provider count to the largest seen. Venue
    lists are sorted by name.

    Args:
        feeds: Feeds that passed the feed-level chain

    Returns:
        MarketMap with a (possibly empty) market mapping
    """
    log.info("aggregation_started", feeds=len(feeds))

    liquidity_per_identity: dict[str, float] = defaultdict(float)
    for feed in feeds:
        liquidity_per_identity[feed.unique_id()] += feed.liquidity_info.total_liquidity

    average_prices = calculate_average_reference_prices(feeds)

    markets: dict[str, Market] = {}
    for feed in feeds:
        ticker = feed.ticker_string
        market = markets.get(ticker)

        if market is not None:
            if feed.ticker.min_provider_count > market.ticker.min_provider_count:
                market.ticker = market.ticker.model_copy(
                    update={"min_provider_count": feed.ticker.min_provider_count}
                )
            market.provider_configs.append(feed.provider_config)
            continue

        metadata_json = to_ticker_metadata_json(
            feed,
            average_prices[ticker],
            liquidity_per_identity[feed.unique_id()],
        )
        markets[ticker] = Market(
            ticker=feed.ticker.model_copy(
                update={
                    "decimals": decimal_places_from_price(feed.reference_price),
                    "enabled": False,
                    "metadata_json": metadata_json,
                }
            ),
            provider_configs=[feed.provider_config],
        )

    for market in markets.values():
        market.provider_configs.sort(key=lambda pc: pc.name)

    log.info("aggregation_completed", markets=len(markets))
    return MarketMap(markets=markets)
