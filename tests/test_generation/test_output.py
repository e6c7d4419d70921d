"""
Tests for the JSON artifact writers.
"""

import json

from marketmap_generator.generation.output import (
    dumps,
    write_market_map,
    write_removal_reasons,
)
from marketmap_generator.shared.models import MarketMap, RemovalReasons


def test_dumps_is_stable():
    assert dumps({"b": 1, "a": [1, 2]}) == dumps({"a": [1, 2], "b": 1})
    assert dumps({}).endswith("\n")


def test_write_market_map(tmp_path, market_factory):
    market_map = MarketMap(
        markets={
            "ETH/USD": market_factory("ETH/USD", ["coinbase_ws"]),
            "BTC/USD": market_factory("BTC/USD", ["coinbase_ws"]),
        }
    )
    path = tmp_path / "out" / "market_map.json"

    write_market_map(path, market_map)

    data = json.loads(path.read_text())
    assert list(data) == ["BTC/USD", "ETH/USD"]
    assert MarketMap.from_dict(data) == market_map


def test_write_removal_reasons(tmp_path, feed_factory):
    reasons = RemovalReasons()
    reasons.add_from_feed(feed_factory("ETH", "USD"), "coinbase_ws", "too thin")
    path = tmp_path / "removals.json"

    write_removal_reasons(path, reasons)

    data = json.loads(path.read_text())
    assert data["ETH/USD"][0]["reason"] == "too thin"
    assert data["ETH/USD"][0]["feed"]["provider_config"]["name"] == "coinbase_ws"
