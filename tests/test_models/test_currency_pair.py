"""
Tests for CurrencyPair parsing and manipulation.
"""

import pytest

from marketmap_generator.shared.exceptions import InvalidCurrencyPairError
from marketmap_generator.shared.models import CurrencyPair


class TestFromString:
    def test_parses_and_upper_cases(self):
        pair = CurrencyPair.from_string("btc/usd")

        assert pair.base == "BTC"
        assert pair.quote == "USD"
        assert str(pair) == "BTC/USD"

    def test_defi_symbols_keep_commas(self):
        pair = CurrencyPair.from_string("pepe,uniswap_v3,0xabc/weth,uniswap_v3,0xdef")

        assert pair.base == "PEPE,UNISWAP_V3,0XABC"
        assert pair.quote == "WETH,UNISWAP_V3,0XDEF"

    @pytest.mark.parametrize("value", ["BTCUSD", "BTC/", "/USD", "A/B/C", ""])
    def test_rejects_malformed(self, value):
        with pytest.raises(InvalidCurrencyPairError) as exc_info:
            CurrencyPair.from_string(value)

        assert exc_info.value.value == value

    def test_invalid_pair_error_is_value_error(self):
        with pytest.raises(ValueError):
            CurrencyPair.from_string("nope")


class TestModel:
    def test_accepts_pair_string_when_validating(self):
        assert CurrencyPair.model_validate("eth/usdt") == CurrencyPair(
            base="ETH", quote="USDT"
        )

    def test_rejects_empty_symbol(self):
        with pytest.raises(ValueError):
            CurrencyPair(base="BTC", quote="")

    def test_invert_twice_is_identity(self):
        pair = CurrencyPair(base="BTC", quote="USD")

        assert pair.invert() == CurrencyPair(base="USD", quote="BTC")
        assert pair.invert().invert() == pair

    def test_with_quote(self):
        pair = CurrencyPair(base="BTC", quote="USDT").with_quote("USD")

        assert str(pair) == "BTC/USD"

    def test_is_hashable(self):
        pairs = {CurrencyPair(base="BTC", quote="USD"), CurrencyPair.from_string("btc/usd")}

        assert len(pairs) == 1
