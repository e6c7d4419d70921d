"""Feed-level transform stages.

Each stage takes the generation config and the full feed collection and
returns the remaining feeds plus removal reasons for every dropped feed.
Stages never mutate their input; derived feeds are produced with
``model_copy``. Whenever a stage folds feeds through a dict it re-sorts
before returning so output order never depends on grouping order.

Stage order (see ``FEED_TRANSFORMS``):
    1. invert_or_drop
    2. prune_by_liquidity
    3. prune_by_quote_volume
    4. prune_by_provider_liquidity
    5. prune_by_provider_usd_volume
    6. resolve_naming_aliases
    7. normalize_by
    8. drop_feeds_without_aggregator_ids
    9. resolve_cmc_conflicts_for_market
    10. resolve_conflicts_for_provider
    11. top_feeds_for_provider
"""

import math
from collections import defaultdict

from marketmap_generator.config import GenerateConfig
from marketmap_generator.infrastructure.observability import get_processing_logger
from marketmap_generator.shared.exceptions import (
    InternalConsistencyError,
    MissingAdjustmentPriceError,
    MissingQuoteConfigError,
    UnknownProviderError,
)
from marketmap_generator.shared.models import (
    Feed,
    RemovalReasons,
    calculate_average_reference_prices,
    compare,
    sort_feeds,
)
from marketmap_generator.shared.models.feed import group_by_provider

log = get_processing_logger("feed-transforms")


def invert_or_drop(
    cfg: GenerateConfig, feeds: list[Feed]
) -> tuple[list[Feed], RemovalReasons]:
    """
    Invert feeds that can be expressed in a configured quote, drop the rest.

    A BTC/MOG feed with quotes [BTC, ETH, USD] becomes MOG/BTC with the
    venue config flagged as inverted.
    """
    stage_log = log.bind(transform="invert_or_drop")
    stage_log.info("transform_started", feeds=len(feeds))

    out: list[Feed] = []
    removals = RemovalReasons()
    quotes = "[" + " ".join(sorted(cfg.quotes)) + "]"

    for feed in feeds:
        pair = feed.ticker.currency_pair
        if pair.quote in cfg.quotes:
            out.append(feed)
            continue

        if pair.base in cfg.quotes:
            inverted = feed.invert()
            stage_log.debug(
                "feed_inverted", ticker=inverted.ticker_string, provider=feed.provider_name
            )
            out.append(inverted)
            continue

        removals.add_from_feed(
            feed,
            feed.provider_name,
            f"Transform InvertOrDrop: {feed.ticker_string}, "
            f"feed cannot be inverted to quotes: {quotes}",
        )
        stage_log.debug(
            "feed_dropped", ticker=feed.ticker_string, provider=feed.provider_name
        )

    stage_log.info("transform_completed", feeds_remaining=len(out))
    return out, removals


def prune_by_liquidity(
    cfg: GenerateConfig, feeds: list[Feed]
) -> tuple[list[Feed], RemovalReasons]:
    """Drop feeds whose 2% depth is under their quote's liquidity floor."""
    stage_log = log.bind(transform="prune_by_liquidity")
    stage_log.info("transform_started", feeds=len(feeds))

    out: list[Feed] = []
    removals = RemovalReasons()

    for feed in feeds:
        provider_cfg = cfg.providers.get(feed.provider_name)
        if provider_cfg is not None and provider_cfg.ignore_liquidity:
            out.append(feed)
            continue

        quote_cfg = cfg.quotes.get(feed.ticker.currency_pair.quote)
        if quote_cfg is not None and feed.liquidity_info.is_sufficient(
            quote_cfg.min_provider_liquidity
        ):
            out.append(feed)
            continue

        if quote_cfg is None:
            reason = "PruneByLiquidity: Not Found"
        else:
            reason = (
                f"PruneByLiquidity: NegativeDepthTwo: {feed.liquidity_info.negative_depth_two:f}, "
                f"PositiveDepthTwo: {feed.liquidity_info.positive_depth_two:f}, "
                f"MinProviderLiquidity: {quote_cfg.min_provider_liquidity:f}"
            )
        removals.add_from_feed(feed, feed.provider_name, reason)
        stage_log.debug(
            "feed_dropped", ticker=feed.ticker_string, provider=feed.provider_name
        )

    stage_log.info("transform_completed", feeds_remaining=len(out))
    return out, removals


def prune_by_quote_volume(
    cfg: GenerateConfig, feeds: list[Feed]
) -> tuple[list[Feed], RemovalReasons]:
    """Drop feeds whose 24h quote volume is under their quote's volume floor."""
    stage_log = log.bind(transform="prune_by_quote_volume")
    stage_log.info("transform_started", feeds=len(feeds))

    out: list[Feed] = []
    removals = RemovalReasons()

    for feed in feeds:
        provider_cfg = cfg.providers.get(feed.provider_name)
        if provider_cfg is not None and provider_cfg.ignore_volume:
            out.append(feed)
            continue

        quote_cfg = cfg.quotes.get(feed.ticker.currency_pair.quote)
        if (
            quote_cfg is not None
            and feed.daily_quote_volume >= quote_cfg.min_provider_volume
        ):
            out.append(feed)
            continue

        if quote_cfg is None:
            reason = "PruneByQuote: Not Found"
        else:
            reason = (
                f"PruneByQuote: DailyQuoteVolume: {feed.daily_quote_volume:f}, "
                f"MinProviderVolume: {quote_cfg.min_provider_volume:f}"
            )
        removals.add_from_feed(feed, feed.provider_name, reason)
        stage_log.debug(
            "feed_dropped", ticker=feed.ticker_string, provider=feed.provider_name
        )

    stage_log.info("transform_completed", feeds_remaining=len(out))
    return out, removals


def prune_by_provider_liquidity(
    cfg: GenerateConfig, feeds: list[Feed]
) -> tuple[list[Feed], RemovalReasons]:
    """Drop feeds whose 2% depth is under their venue's liquidity floor."""
    stage_log = log.bind(transform="prune_by_provider_liquidity")
    stage_log.info("transform_started", feeds=len(feeds))

    out: list[Feed] = []
    removals = RemovalReasons()

    for feed in feeds:
        provider_cfg = cfg.providers.get(feed.provider_name)
        if provider_cfg is not None and (
            provider_cfg.ignore_liquidity
            or feed.liquidity_info.is_sufficient(provider_cfg.min_provider_liquidity)
        ):
            out.append(feed)
            continue

        if provider_cfg is None:
            reason = "PruneByProviderLiquidity: Not Found"
        else:
            reason = (
                f"PruneByProviderLiquidity: NegativeDepthTwo: {feed.liquidity_info.negative_depth_two:f}, "
                f"PositiveDepthTwo: {feed.liquidity_info.positive_depth_two:f}, "
                f"MinProviderLiquidity: {provider_cfg.min_provider_liquidity:f}"
            )
        removals.add_from_feed(feed, feed.provider_name, reason)
        stage_log.debug(
            "feed_dropped", ticker=feed.ticker_string, provider=feed.provider_name
        )

    stage_log.info("transform_completed", feeds_remaining=len(out))
    return out, removals


def prune_by_provider_usd_volume(
    cfg: GenerateConfig, feeds: list[Feed]
) -> tuple[list[Feed], RemovalReasons]:
    """Drop feeds whose 24h USD volume is under their venue's volume floor."""
    stage_log = log.bind(transform="prune_by_provider_usd_volume")
    stage_log.info("transform_started", feeds=len(feeds))

    out: list[Feed] = []
    removals = RemovalReasons()

    for feed in feeds:
        provider_cfg = cfg.providers.get(feed.provider_name)
        if provider_cfg is not None and (
            provider_cfg.ignore_volume
            or feed.daily_usd_volume >= provider_cfg.min_provider_volume
        ):
            out.append(feed)
            continue

        if provider_cfg is None:
            reason = "PruneByProviderUsdVolume: Not Found"
        else:
            reason = (
                f"PruneByProviderUsdVolume: Volume24H: {feed.daily_usd_volume:f}, "
                f"MinProviderVolume: {provider_cfg.min_provider_volume:f}"
            )
        removals.add_from_feed(feed, feed.provider_name, reason)
        stage_log.debug(
            "feed_dropped", ticker=feed.ticker_string, provider=feed.provider_name
        )

    stage_log.info("transform_completed", feeds_remaining=len(out))
    return out, removals


def _highest_rank_group(groups: dict[str, list[Feed]]) -> str | None:
    """
    Pick the identity group with the lowest base rank, ties broken by quote rank.

    Groups without rank information are never chosen. Group ids are visited
    in sorted order so the first of two identical ranks wins deterministically.
    """
    best_group: str | None = None
    best_base_rank = math.inf
    best_quote_rank = math.inf

    for group_id in sorted(groups):
        # every feed in a group shares the same identity
        info = groups[group_id][0].cmc_info
        if not info.has_rank:
            continue

        if info.base_rank < best_base_rank or (
            info.base_rank == best_base_rank and info.quote_rank < best_quote_rank
        ):
            best_group = group_id
            best_base_rank = info.base_rank
            best_quote_rank = info.quote_rank

    return best_group


def resolve_naming_aliases(
    cfg: GenerateConfig, feeds: list[Feed]
) -> tuple[list[Feed], RemovalReasons]:
    """
    Keep one asset identity per ticker string.

    Two different assets may both be listed as e.g. "GOAT/USD". Feeds are
    grouped by ticker string, then by "<baseId>-<quoteId>"; the best ranked
    identity group survives and every other group is dropped.
    """
    stage_log = log.bind(transform="resolve_naming_aliases")
    stage_log.info("transform_started", feeds=len(feeds))

    groups_per_ticker: dict[str, dict[str, list[Feed]]] = defaultdict(
        lambda: defaultdict(list)
    )
    for feed in feeds:
        groups_per_ticker[feed.ticker_string][feed.unique_id()].append(feed)

    out: list[Feed] = []
    removals = RemovalReasons()

    for ticker in sorted(groups_per_ticker):
        groups = groups_per_ticker[ticker]
        best_group = _highest_rank_group(groups)
        if best_group is None:
            stage_log.info("no_ranked_group_for_ticker", ticker=ticker)
            continue

        out.extend(groups[best_group])

        for group_id in sorted(groups):
            if group_id == best_group:
                continue
            for feed in groups[group_id]:
                removals.add_from_feed(
                    feed,
                    feed.provider_name,
                    f"removing due to naming alias for ticker {ticker}, "
                    f"pair {feed.unique_id()}, CMC pair {best_group} chosen instead",
                )
                stage_log.debug(
                    "feed_dropped", ticker=ticker, provider=feed.provider_name
                )

    out = sort_feeds(out)
    stage_log.info("transform_completed", feeds_remaining=len(out))
    return out, removals


def normalize_by(
    cfg: GenerateConfig, feeds: list[Feed]
) -> tuple[list[Feed], RemovalReasons]:
    """
    Rewrite feeds into their quote's normalize-by quote.

    A BTC/USDT feed at 10 with USDT normalized by USDT/USD (average 1.1)
    becomes BTC/USD at 11 with normalizeByPair USDT/USD on its venue config.

    Raises:
        MissingQuoteConfigError: A feed's quote has no quote config
        MissingAdjustmentPriceError: No feed prices the normalize-by pair
    """
    stage_log = log.bind(transform="normalize_by")
    stage_log.info("transform_started", feeds=len(feeds))

    average_prices = calculate_average_reference_prices(feeds)

    out: list[Feed] = []
    for feed in feeds:
        quote = feed.ticker.currency_pair.quote
        quote_cfg = cfg.quotes.get(quote)
        if quote_cfg is None:
            raise MissingQuoteConfigError(
                f"quote {quote} not found in config for normalizing pair",
                transform="normalize_by",
            )

        normalize_pair = quote_cfg.parsed_normalize_by_pair()
        if normalize_pair is None:
            out.append(feed)
            continue

        adjust_price = average_prices.get(str(normalize_pair))
        if adjust_price is None:
            raise MissingAdjustmentPriceError(
                f"adjust price for {normalize_pair} not found",
                transform="normalize_by",
            )

        # BTC in terms of USD = (BTC in terms of USDT) * (USDT in terms of USD)
        normalized = feed.model_copy(
            update={
                "ticker": feed.ticker.model_copy(
                    update={
                        "currency_pair": feed.ticker.currency_pair.with_quote(
                            normalize_pair.quote
                        )
                    }
                ),
                "provider_config": feed.provider_config.model_copy(
                    update={"normalize_by_pair": normalize_pair}
                ),
                "reference_price": feed.reference_price * adjust_price,
            }
        )
        stage_log.debug(
            "feed_normalized",
            ticker=normalized.ticker_string,
            provider=feed.provider_name,
            normalize_by_pair=str(normalize_pair),
        )
        out.append(normalized)

    stage_log.info("transform_completed", feeds_remaining=len(out))
    return out, RemovalReasons()


def drop_feeds_without_aggregator_ids(
    cfg: GenerateConfig, feeds: list[Feed]
) -> tuple[list[Feed], RemovalReasons]:
    """Drop feeds without a base asset id from venues that require one."""
    stage_log = log.bind(transform="drop_feeds_without_aggregator_ids")
    stage_log.info("transform_started", feeds=len(feeds))

    out: list[Feed] = []
    removals = RemovalReasons()

    for feed in feeds:
        provider_cfg = cfg.providers.get(feed.provider_name)
        require_ids = provider_cfg is not None and provider_cfg.require_aggregate_ids
        if not require_ids or feed.cmc_info.base_id != 0:
            out.append(feed)
            continue

        removals.add_from_feed(
            feed,
            feed.provider_name,
            f"Transform DropFeedsWithoutAggregatorIDs: BaseCMCID: {feed.cmc_info.base_id}, "
            f"RequireAggregateIDs: {str(require_ids).lower()}",
        )
        stage_log.debug(
            "feed_dropped", ticker=feed.ticker_string, provider=feed.provider_name
        )

    stage_log.info("transform_completed", feeds_remaining=len(out))
    return out, removals


def _rank_or_inf(feed: Feed) -> float:
    return feed.cmc_info.base_rank if feed.cmc_info.has_rank else math.inf


def resolve_cmc_conflicts_for_market(
    cfg: GenerateConfig, feeds: list[Feed]
) -> tuple[list[Feed], RemovalReasons]:
    """
    Keep only feeds of a ticker that refer to the same base asset as its best feed.

    Raises:
        InternalConsistencyError: A feed outranks the sorted-first feed
    """
    stage_log = log.bind(transform="resolve_cmc_conflicts_for_market")
    stage_log.info("transform_started", feeds=len(feeds))

    feeds_per_ticker: dict[str, list[Feed]] = defaultdict(list)
    for feed in feeds:
        feeds_per_ticker[feed.ticker_string].append(feed)

    out: list[Feed] = []
    removals = RemovalReasons()

    for ticker in sorted(feeds_per_ticker):
        ticker_feeds = sort_feeds(feeds_per_ticker[ticker])
        best = ticker_feeds[0].cmc_info

        for feed in ticker_feeds:
            if _rank_or_inf(feed) < _rank_or_inf(ticker_feeds[0]):
                raise InternalConsistencyError(
                    f"found feed for {feed.provider_name} with lower CMC rank than the "
                    f"best one for ticker {ticker}. best CMC rank {best.base_rank}, "
                    f"feed CMC rank {feed.cmc_info.base_rank}",
                    transform="resolve_cmc_conflicts_for_market",
                )

            if feed.cmc_info.base_id == best.base_id:
                out.append(feed)
                continue

            removals.add_from_feed(
                feed,
                feed.provider_name,
                f"Transform ResolveCMCConflictsForMarket: BestCMCID: {best.base_id}, "
                f"FeedCMCID: {feed.cmc_info.base_id}, BestCMCRank: {best.base_rank}, "
                f"FeedCMCRank: {feed.cmc_info.base_rank}",
            )
            stage_log.debug("feed_dropped", ticker=ticker, provider=feed.provider_name)

    stage_log.info("transform_completed", feeds_remaining=len(out))
    return out, removals


def resolve_conflicts_for_provider(
    cfg: GenerateConfig, feeds: list[Feed]
) -> tuple[list[Feed], RemovalReasons]:
    """
    Keep one feed per (ticker, venue).

    Conflicts are produced by normalization: kraken BTC/USD and kraken
    BTC/USDT normalized by USDT/USD both become BTC/USD. The better feed
    wins; the loser is not recorded as a removal.
    """
    stage_log = log.bind(transform="resolve_conflicts_for_provider")
    stage_log.info("transform_started", feeds=len(feeds))

    chosen: dict[tuple[str, str], Feed] = {}
    for feed in feeds:
        key = (feed.ticker_string, feed.provider_name)
        current = chosen.get(key)
        if current is None:
            chosen[key] = feed
            continue

        if compare(current, feed):
            stage_log.debug(
                "conflict_replaced",
                ticker=feed.ticker_string,
                provider=feed.provider_name,
                old=current.provider_config.off_chain_ticker,
                new=feed.provider_config.off_chain_ticker,
            )
            chosen[key] = feed
        else:
            stage_log.debug(
                "conflict_kept",
                ticker=feed.ticker_string,
                provider=feed.provider_name,
                old=current.provider_config.off_chain_ticker,
                new=feed.provider_config.off_chain_ticker,
            )

    out = sort_feeds(chosen[key] for key in sorted(chosen))
    stage_log.info("transform_completed", feeds_remaining=len(out))
    return out, RemovalReasons()


def top_feeds_for_provider(
    cfg: GenerateConfig, feeds: list[Feed]
) -> tuple[list[Feed], RemovalReasons]:
    """
    Keep only the best N feeds of each venue with a top-markets filter.

    Raises:
        UnknownProviderError: A feed's venue is not configured
    """
    stage_log = log.bind(transform="top_feeds_for_provider")
    stage_log.info("transform_started", feeds=len(feeds))

    per_provider = group_by_provider(feeds)
    removals = RemovalReasons()

    for provider in sorted(per_provider):
        provider_cfg = cfg.providers.get(provider)
        if provider_cfg is None:
            raise UnknownProviderError(
                f"provider {provider} not found", transform="top_feeds_for_provider"
            )

        provider_feeds = per_provider[provider]
        keep = provider_cfg.filters.top_markets
        if keep == 0 or len(provider_feeds) <= keep:
            continue

        stage_log.info(
            "filtering_top_markets", provider=provider, feeds=len(provider_feeds)
        )
        ranked = sort_feeds(provider_feeds)
        per_provider[provider] = ranked[:keep]

        for feed in ranked[keep:]:
            removals.add_from_feed(
                feed, provider, f"only selecting top {keep} feeds for this provider"
            )
            stage_log.debug("feed_dropped", ticker=feed.ticker_string, provider=provider)

    out = sort_feeds(
        feed for provider in sorted(per_provider) for feed in per_provider[provider]
    )
    stage_log.info("transform_completed", feeds_remaining=len(out))
    return out, removals


FEED_TRANSFORMS = (
    invert_or_drop,
    prune_by_liquidity,
    prune_by_quote_volume,
    prune_by_provider_liquidity,
    prune_by_provider_usd_volume,
    resolve_naming_aliases,
    normalize_by,
    drop_feeds_without_aggregator_ids,
    resolve_cmc_conflicts_for_market,
    resolve_conflicts_for_provider,
    top_feeds_for_provider,
)
