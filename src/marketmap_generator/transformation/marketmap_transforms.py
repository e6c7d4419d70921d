"""Market-map-level transform stages.

Each stage takes the generation config and the aggregated MarketMap and
returns the map plus exclusion reasons. The map is owned by the pipeline
for the duration of the run, so stages update it in place; markets are
always visited in sorted key order.

Stage order (see ``MARKET_MAP_TRANSFORMS``):
    1. prune_markets
    2. exclude_disabled_providers
    3. enable_markets
    4. process_defi_markets
    5. prune_insufficiently_provided_markets
    6. override_min_provider_count
    7. override_markets (always last so overrides cannot be undone)
"""

from marketmap_generator.config import GenerateConfig
from marketmap_generator.infrastructure.observability import get_processing_logger
from marketmap_generator.shared.exceptions import InvalidCurrencyPairError
from marketmap_generator.shared.models import (
    CurrencyPair,
    ExclusionReasons,
    MarketMap,
)

log = get_processing_logger("marketmap-transforms")


def prune_markets(
    cfg: GenerateConfig, market_map: MarketMap
) -> tuple[MarketMap, ExclusionReasons]:
    """Remove markets whose pair is excluded or missing from the allow list."""
    stage_log = log.bind(transform="prune_markets")
    stage_log.info("transform_started", markets=len(market_map))

    exclusions = ExclusionReasons()
    for name in sorted(market_map.markets):
        market = market_map.markets[name]
        pair = market.ticker.currency_pair
        if cfg.is_currency_pair_allowed(pair):
            continue

        exclusions.add_from_market(
            market, str(pair), f"PruneMarkets: disallowed currency pair: {pair}"
        )
        del market_map.markets[name]
        stage_log.debug("market_pruned", market=name)

    stage_log.info("transform_completed", markets_remaining=len(market_map))
    return market_map, exclusions


def exclude_disabled_providers(
    cfg: GenerateConfig, market_map: MarketMap
) -> tuple[MarketMap, ExclusionReasons]:
    """Remove venues listed as disabled for a market."""
    stage_log = log.bind(transform="exclude_disabled_providers")
    stage_log.info("transform_started", markets=len(market_map))

    exclusions = ExclusionReasons()
    for ticker in sorted(cfg.disable_providers):
        market = market_map.markets.get(ticker)
        if market is None:
            stage_log.debug("market_not_found", market=ticker)
            continue

        disabled = set(cfg.disable_providers[ticker])
        kept = []
        for pc in market.provider_configs:
            if pc.name not in disabled:
                kept.append(pc)
                continue
            exclusions.add_from_market(
                market,
                pc.name,
                f'ExcludeDisabledProviders: provider "{pc.name}" is disabled '
                f'for market "{ticker}"',
            )
            stage_log.debug("provider_excluded", market=ticker, provider=pc.name)

        market.provider_configs = kept

    stage_log.info("transform_completed", markets_remaining=len(market_map))
    return market_map, exclusions


def enable_markets(
    cfg: GenerateConfig, market_map: MarketMap
) -> tuple[MarketMap, ExclusionReasons]:
    if not cfg.enable_all:
        return market_map, ExclusionReasons()

    log.info("enabling_all_markets", transform="enable_markets", markets=len(market_map))
    for market in market_map.markets.values():
        market.ticker = market.ticker.model_copy(update={"enabled": True})

    return market_map, ExclusionReasons()


def replace_normalize_by(
    market_map: MarketMap, old: CurrencyPair, new: CurrencyPair
) -> MarketMap:
    """Point every venue normalized by ``old`` at ``new`` instead."""
    for market in market_map.markets.values():
        market.provider_configs = [
            pc.model_copy(update={"normalize_by_pair": new})
            if pc.normalize_by_pair == old
            else pc
            for pc in market.provider_configs
        ]
    return market_map


def process_defi_markets(
    cfg: GenerateConfig, market_map: MarketMap
) -> tuple[MarketMap, ExclusionReasons]:
    """
    Re-key markets served by a single DeFi venue under their on-chain ticker.

    The venue's off-chain ticker (e.g. "PEPE,UNISWAP_V3,0XABC/WETH,UNISWAP_V3,0XDEF")
    becomes the market's pair, inverted if the venue is inverted and quoted
    in the normalize-by quote if the venue is normalized. Normalization
    references to the old pair are rewritten across the whole map. Markets
    whose off-chain ticker is not a pair are dropped.
    """
    stage_log = log.bind(transform="process_defi_markets")
    stage_log.info("transform_started", markets=len(market_map))

    rekeyed: set[str] = set()
    for name in sorted(market_map.markets):
        if name in rekeyed:
            continue

        market = market_map.markets.get(name)
        if market is None or len(market.provider_configs) != 1:
            continue

        pc = market.provider_configs[0]
        if not cfg.is_provider_defi(pc.name):
            continue

        old_pair = market.ticker.currency_pair
        del market_map.markets[name]

        try:
            new_pair = CurrencyPair.from_string(pc.off_chain_ticker)
        except InvalidCurrencyPairError:
            stage_log.debug(
                "market_dropped_invalid_ticker",
                market=name,
                off_chain_ticker=pc.off_chain_ticker,
            )
            continue

        if pc.invert:
            new_pair = new_pair.invert()
        if pc.normalize_by_pair is not None:
            new_pair = new_pair.with_quote(pc.normalize_by_pair.quote)

        market.ticker = market.ticker.model_copy(update={"currency_pair": new_pair})
        market_map.markets[market.ticker_string] = market
        rekeyed.add(market.ticker_string)
        replace_normalize_by(market_map, old_pair, new_pair)
        stage_log.debug("market_rekeyed", old=name, new=market.ticker_string)

    stage_log.info("transform_completed", markets_remaining=len(market_map))
    return market_map, ExclusionReasons()


def prune_insufficiently_provided_markets(
    cfg: GenerateConfig, market_map: MarketMap
) -> tuple[MarketMap, ExclusionReasons]:
    """Remove markets with fewer non-supplemental venues than required."""
    stage_log = log.bind(transform="prune_insufficiently_provided_markets")
    stage_log.info("transform_started", markets=len(market_map))

    exclusions = ExclusionReasons()
    for name in sorted(market_map.markets):
        market = market_map.markets[name]
        providers = sum(
            1
            for pc in market.provider_configs
            if not cfg.is_provider_supplemental(pc.name)
        )
        if providers >= market.ticker.min_provider_count:
            continue

        exclusions.add_from_market(
            market,
            market.ticker_string,
            "PruneInsufficientlyProvidedMarkets: insufficient # of providers: "
            f"{','.join(market.provider_names)}, min: {market.ticker.min_provider_count}",
        )
        del market_map.markets[name]
        stage_log.debug("market_pruned", market=name, providers=providers)

    stage_log.info("transform_completed", markets_remaining=len(market_map))
    return market_map, exclusions


def override_min_provider_count(
    cfg: GenerateConfig, market_map: MarketMap
) -> tuple[MarketMap, ExclusionReasons]:
    if cfg.min_provider_count_override == 0:
        return market_map, ExclusionReasons()

    log.info(
        "overriding_min_provider_count",
        transform="override_min_provider_count",
        min_provider_count=cfg.min_provider_count_override,
    )
    for market in market_map.markets.values():
        market.ticker = market.ticker.model_copy(
            update={"min_provider_count": cfg.min_provider_count_override}
        )

    return market_map, ExclusionReasons()


def override_markets(
    cfg: GenerateConfig, market_map: MarketMap
) -> tuple[MarketMap, ExclusionReasons]:
    """Replace (or insert) every market present in the override map."""
    stage_log = log.bind(transform="override_markets")
    overrides = cfg.market_map_override.markets or {}

    for name in sorted(overrides):
        stage_log.info("market_overridden", market=name)
        market_map.markets[name] = overrides[name].model_copy(deep=True)

    stage_log.info("transform_completed", markets_remaining=len(market_map))
    return market_map, ExclusionReasons()


MARKET_MAP_TRANSFORMS = (
    prune_markets,
    exclude_disabled_providers,
    enable_markets,
    process_defi_markets,
    prune_insufficiently_provided_markets,
    override_min_provider_count,
    override_markets,
)
