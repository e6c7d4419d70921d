"""Comparisons between an on-chain market map and a generated one."""

from collections.abc import Iterable

from marketmap_generator.shared.models import Market, MarketMap


def find_removed_markets(actual: MarketMap, generated: MarketMap) -> list[Market]:
    """Markets present in ``actual`` but missing from ``generated``, in key order."""
    actual_markets = actual.markets or {}
    generated_markets = generated.markets or {}
    return [
        actual_markets[name]
        for name in sorted(actual_markets)
        if str(actual_markets[name].ticker.currency_pair) not in generated_markets
    ]


def find_intersection_and_exclusion(
    actual: MarketMap, markets: Iterable[Market]
) -> tuple[list[Market], list[Market]]:
    """
    Split ``markets`` into those already in ``actual`` and those that are new.

    Returns:
        (intersection, exclusion), each in input order
    """
    actual_markets = actual.markets or {}
    intersection: list[Market] = []
    exclusion: list[Market] = []

    for market in markets:
        if str(market.ticker.currency_pair) in actual_markets:
            intersection.append(market)
        else:
            exclusion.append(market)

    return intersection, exclusion
