"""
Tests for the Transformer stage runner.
"""

import pytest

from marketmap_generator.config import GenerateConfig, ProviderConfig, QuoteConfig
from marketmap_generator.shared.exceptions import (
    MarketMapValidationError,
    MissingAdjustmentPriceError,
)
from marketmap_generator.shared.models import MarketMap, RemovalReasons
from marketmap_generator.transformation import Transformer, feeds_to_market_map


def _recording_stage(name, calls):
    def stage(cfg, items):
        calls.append(name)
        return items, RemovalReasons()

    return stage


class TestStageRunner:
    def test_runs_stages_in_order(self, generate_config):
        calls = []
        transformer = Transformer(
            feed_transforms=[_recording_stage(n, calls) for n in ("a", "b", "c")],
            market_map_transforms=[],
        )

        transformer.transform_feeds(generate_config, [])

        assert calls == ["a", "b", "c"]

    def test_merges_removals_of_every_stage(self, generate_config, feed_factory):
        def drop_eth(cfg, feeds):
            removals = RemovalReasons()
            for feed in feeds:
                if feed.ticker.currency_pair.base == "ETH":
                    removals.add_from_feed(feed, feed.provider_name, "eth")
            return [f for f in feeds if f.ticker.currency_pair.base != "ETH"], removals

        def drop_sol(cfg, feeds):
            removals = RemovalReasons()
            for feed in feeds:
                if feed.ticker.currency_pair.base == "SOL":
                    removals.add_from_feed(feed, feed.provider_name, "sol")
            return [f for f in feeds if f.ticker.currency_pair.base != "SOL"], removals

        transformer = Transformer(feed_transforms=[drop_eth, drop_sol])
        feeds = [feed_factory(b, "USD") for b in ("BTC", "ETH", "SOL")]

        out, removals = transformer.transform_feeds(generate_config, feeds)

        assert [f.ticker_string for f in out] == ["BTC/USD"]
        assert sorted(removals) == ["ETH/USD", "SOL/USD"]

    def test_stage_failure_propagates(self, generate_config, feed_factory):
        with pytest.raises(MissingAdjustmentPriceError):
            Transformer().transform_feeds(
                generate_config, [feed_factory("BTC", "USDT", provider="binance_ws")]
            )


class TestTransformMarketMap:
    def test_nil_markets_rejected(self, generate_config):
        with pytest.raises(MarketMapValidationError, match="markets cannot be nil"):
            Transformer().transform_market_map(generate_config, MarketMap(markets=None))

    def test_final_map_is_validated(self, generate_config, market_factory):
        market_map = MarketMap(
            markets={
                "BTC/USD": market_factory(
                    "BTC/USD", ["binance_ws"], normalize_by={"binance_ws": "USDT/USD"}
                ),
            }
        )

        with pytest.raises(MarketMapValidationError, match="pair for normalization"):
            Transformer(market_map_transforms=[]).transform_market_map(
                generate_config, market_map
            )

    def test_empty_map_passes(self, generate_config):
        out, exclusions = Transformer().transform_market_map(generate_config, MarketMap())

        assert out.markets == {}
        assert exclusions == {}


# ============================================================================
# FULL CHAIN
# ============================================================================


@pytest.fixture
def chain_config():
    return GenerateConfig(
        providers={
            "binance_ws": ProviderConfig(),
            "coinbase_ws": ProviderConfig(),
            "okx_ws": ProviderConfig(),
        },
        quotes={
            "USD": QuoteConfig(min_provider_liquidity=100),
            "USDT": QuoteConfig(normalize_by_pair="USDT/USD"),
        },
        exclude_pairs={"DOGE/USD"},
    )


@pytest.fixture
def chain_feeds(feed_factory):
    return [
        feed_factory("BTC", "USD", provider="coinbase_ws", price=100_000.0),
        feed_factory("BTC", "USDT", provider="binance_ws", price=100_100.0),
        feed_factory("USDT", "USD", provider="coinbase_ws", base_id=825, base_rank=3),
        feed_factory("USDT", "USD", provider="okx_ws", base_id=825, base_rank=3),
        feed_factory("DOGE", "USD", provider="okx_ws", base_id=74, base_rank=8),
        feed_factory("ETH", "USD", provider="okx_ws", base_id=1027, base_rank=2, liquidity=5),
    ]


def _run_chain(cfg, feeds):
    transformer = Transformer()
    feeds, removals = transformer.transform_feeds(cfg, feeds)
    market_map, exclusions = transformer.transform_market_map(
        cfg, feeds_to_market_map(feeds)
    )
    return market_map, removals.merge(exclusions)


def test_full_chain(chain_config, chain_feeds):
    market_map, reasons = _run_chain(chain_config, chain_feeds)

    assert sorted(market_map.markets) == ["BTC/USD", "USDT/USD"]
    btc = market_map.markets["BTC/USD"]
    assert btc.provider_names == ["binance_ws", "coinbase_ws"]
    assert str(btc.provider_configs[0].normalize_by_pair) == "USDT/USD"
    assert sorted(reasons) == ["DOGE/USD", "ETH/USD"]


def test_full_chain_is_deterministic(chain_config, chain_feeds):
    first, first_reasons = _run_chain(chain_config, chain_feeds)
    second, second_reasons = _run_chain(chain_config, list(reversed(chain_feeds)))

    assert first.to_dict() == second.to_dict()
    assert first_reasons.to_dict() == second_reasons.to_dict()
