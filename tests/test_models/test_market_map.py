"""
Tests for MarketMap structure, validation and serialization.
"""

import pytest
from pydantic import ValidationError

from marketmap_generator.shared.exceptions import MarketMapValidationError
from marketmap_generator.shared.models import (
    CurrencyPair,
    Market,
    MarketMap,
    RemovalReasons,
    Ticker,
    VenueConfig,
)


@pytest.fixture
def btc_market(market_factory):
    return market_factory(
        "BTC/USD", ["coinbase_ws", "binance_ws"], min_provider_count=2
    )


class TestValidateBasic:
    def test_valid_map(self, btc_market, market_factory):
        market_map = MarketMap(
            markets={
                "BTC/USD": btc_market,
                "USDT/USD": market_factory("USDT/USD", ["coinbase_ws"]),
            }
        )

        market_map.validate_basic()

    def test_empty_map_is_valid(self):
        MarketMap().validate_basic()

    def test_nil_markets(self):
        with pytest.raises(MarketMapValidationError, match="markets cannot be nil"):
            MarketMap(markets=None).validate_basic()

    def test_key_must_match_ticker(self, btc_market):
        with pytest.raises(MarketMapValidationError, match="does not match"):
            MarketMap(markets={"ETH/USD": btc_market}).validate_basic()

    def test_too_few_providers(self, market_factory):
        market = market_factory("BTC/USD", ["coinbase_ws"], min_provider_count=2)

        with pytest.raises(MarketMapValidationError, match="at least 2 providers"):
            MarketMap(markets={"BTC/USD": market}).validate_basic()

    def test_duplicate_provider(self, market_factory):
        market = market_factory("BTC/USD", ["coinbase_ws", "coinbase_ws"])

        with pytest.raises(MarketMapValidationError, match="duplicate provider"):
            MarketMap(markets={"BTC/USD": market}).validate_basic()

    @pytest.mark.parametrize("decimals", [0, 37])
    def test_decimals_out_of_range(self, decimals):
        market = Market(
            ticker=Ticker(
                currency_pair=CurrencyPair(base="BTC", quote="USD"), decimals=decimals
            ),
            provider_configs=[VenueConfig(name="coinbase_ws", off_chain_ticker="BTC-USD")],
        )

        with pytest.raises(MarketMapValidationError, match="decimals"):
            MarketMap(markets={"BTC/USD": market}).validate_basic()

    def test_empty_off_chain_ticker(self):
        market = Market(
            ticker=Ticker(currency_pair=CurrencyPair(base="BTC", quote="USD")),
            provider_configs=[VenueConfig(name="coinbase_ws", off_chain_ticker="")],
        )

        with pytest.raises(MarketMapValidationError, match="off-chain ticker"):
            MarketMap(markets={"BTC/USD": market}).validate_basic()

    def test_normalize_pair_must_be_present(self, market_factory):
        market = market_factory(
            "BTC/USD", ["binance_ws"], normalize_by={"binance_ws": "USDT/USD"}
        )

        with pytest.raises(
            MarketMapValidationError, match="pair for normalization USDT/USD"
        ):
            MarketMap(markets={"BTC/USD": market}).validate_basic()


class TestSerialization:
    def test_to_dict_shape(self, market_factory):
        market = market_factory(
            "BTC/USD", ["binance_ws"], normalize_by={"binance_ws": "USDT/USD"}
        )

        out = MarketMap(markets={"BTC/USD": market}).to_dict()

        assert out == {
            "BTC/USD": {
                "ticker": {
                    "base": "BTC",
                    "quote": "USD",
                    "decimals": 8,
                    "minProviderCount": 1,
                    "enabled": False,
                    "metadata": "",
                },
                "providers": [
                    {
                        "name": "binance_ws",
                        "offChainTicker": "BTC-USD",
                        "normalizeByPair": {"base": "USDT", "quote": "USD"},
                        "invert": False,
                        "metadata": "",
                    }
                ],
            }
        }

    def test_normalize_pair_omitted_when_unset(self, btc_market):
        providers = btc_market.to_dict()["providers"]

        assert all("normalizeByPair" not in pc for pc in providers)

    def test_keys_sorted(self, market_factory):
        market_map = MarketMap(
            markets={
                "ETH/USD": market_factory("ETH/USD", ["coinbase_ws"]),
                "BTC/USD": market_factory("BTC/USD", ["coinbase_ws"]),
            }
        )

        assert list(market_map.to_dict()) == ["BTC/USD", "ETH/USD"]

    def test_from_dict(self, market_factory):
        original = MarketMap(
            markets={
                "BTC/USD": market_factory(
                    "BTC/USD", ["binance_ws"], normalize_by={"binance_ws": "USDT/USD"}
                ),
            }
        )

        assert MarketMap.from_dict(original.to_dict()) == original

    @pytest.mark.parametrize(
        "entry",
        [
            {"providers": []},
            {"ticker": {"quote": "USD"}, "providers": []},
            {"ticker": {"base": "BTC", "quote": "USD"}, "providers": [{}]},
            [],
        ],
    )
    def test_from_dict_malformed_entry(self, entry):
        with pytest.raises(ValidationError):
            MarketMap.from_dict({"BTC/USD": entry})


class TestRemovalReasons:
    def test_add_and_merge(self, feed_factory, btc_market):
        feed = feed_factory()
        first = RemovalReasons()
        first.add_from_feed(feed, "coinbase_ws", "dropped")
        second = RemovalReasons()
        second.add_from_market(btc_market, "BTC/USD", "pruned")
        second.add_from_feed(feed_factory("ETH", "USD"), "okx_ws", "dropped")

        merged = first.merge(second)

        assert merged is first
        assert [r.reason for r in merged["BTC/USD"]] == ["dropped", "pruned"]
        assert merged.count() == 3

    def test_merge_none(self):
        reasons = RemovalReasons()

        assert reasons.merge(None) is reasons

    def test_to_dict_sorted(self, feed_factory):
        reasons = RemovalReasons()
        reasons.add_from_feed(feed_factory("ETH", "USD"), "okx_ws", "b")
        reasons.add_from_feed(feed_factory("BTC", "USD"), "okx_ws", "a")

        out = reasons.to_dict()

        assert list(out) == ["BTC/USD", "ETH/USD"]
        assert out["BTC/USD"][0]["reason"] == "a"
        assert out["BTC/USD"][0]["provider"] == "okx_ws"
        assert out["BTC/USD"][0]["feed"]["ticker"]["currency_pair"] == {
            "base": "BTC",
            "quote": "USD",
        }
