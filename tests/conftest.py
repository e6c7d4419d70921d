"""
Shared fixtures: feed/market factories and generation configs.
"""

import pytest

from marketmap_generator.config import (
    Filters,
    GenerateConfig,
    ProviderConfig,
    QuoteConfig,
)
from marketmap_generator.infrastructure.observability import setup_logging
from marketmap_generator.shared.models import (
    CurrencyPair,
    Feed,
    IdentityInfo,
    LiquidityInfo,
    Market,
    Ticker,
    VenueConfig,
)

# CoinMarketCap ids used across tests
CMC_BTC = 1
CMC_ETH = 1027
CMC_USDT = 825
CMC_USD = 2781


@pytest.fixture(autouse=True, scope="session")
def _route_logs_through_stdlib():
    """Route structlog through stdlib logging before any module logger is used."""
    setup_logging(level="DEBUG", json_logs=False, include_timestamp=False)


def make_feed(
    base: str = "BTC",
    quote: str = "USD",
    provider: str = "coinbase_ws",
    *,
    price: float = 1.0,
    base_id: int = CMC_BTC,
    quote_id: int = CMC_USD,
    base_rank: int = 1,
    quote_rank: int = 0,
    liquidity: float = 1000.0,
    negative_depth: float | None = None,
    positive_depth: float | None = None,
    quote_volume: float = 1000.0,
    usd_volume: float = 1000.0,
    min_provider_count: int = 1,
    off_chain_ticker: str | None = None,
    normalize_by_pair: str | None = None,
    invert: bool = False,
) -> Feed:
    """Build a Feed; depth defaults to ``liquidity`` on each side."""
    return Feed(
        ticker=Ticker(
            currency_pair=CurrencyPair(base=base, quote=quote),
            decimals=8,
            min_provider_count=min_provider_count,
        ),
        provider_config=VenueConfig(
            name=provider,
            off_chain_ticker=off_chain_ticker or f"{base}-{quote}",
            normalize_by_pair=normalize_by_pair,
            invert=invert,
        ),
        daily_quote_volume=quote_volume,
        daily_usd_volume=usd_volume,
        reference_price=price,
        cmc_info=IdentityInfo(
            base_id=base_id,
            quote_id=quote_id,
            base_rank=base_rank,
            quote_rank=quote_rank,
        ),
        liquidity_info=LiquidityInfo(
            negative_depth_two=liquidity if negative_depth is None else negative_depth,
            positive_depth_two=liquidity if positive_depth is None else positive_depth,
        ),
    )


def make_market(
    pair: str,
    providers: list[str],
    *,
    min_provider_count: int = 1,
    normalize_by: dict[str, str] | None = None,
    off_chain_tickers: dict[str, str] | None = None,
    invert: dict[str, bool] | None = None,
) -> Market:
    """Build a Market with one venue per provider name."""
    normalize_by = normalize_by or {}
    off_chain_tickers = off_chain_tickers or {}
    invert = invert or {}
    return Market(
        ticker=Ticker(
            currency_pair=CurrencyPair.from_string(pair),
            decimals=8,
            min_provider_count=min_provider_count,
        ),
        provider_configs=[
            VenueConfig(
                name=name,
                off_chain_ticker=off_chain_tickers.get(name, pair.replace("/", "-")),
                normalize_by_pair=normalize_by.get(name),
                invert=invert.get(name, False),
            )
            for name in providers
        ],
    )


@pytest.fixture
def feed_factory():
    return make_feed


@pytest.fixture
def market_factory():
    return make_market


@pytest.fixture
def generate_config() -> GenerateConfig:
    """Permissive config: no floors, USD and USDT quotes, three CEX venues."""
    return GenerateConfig(
        providers={
            "binance_ws": ProviderConfig(),
            "coinbase_ws": ProviderConfig(),
            "okx_ws": ProviderConfig(),
            "coingecko_api": ProviderConfig(is_supplemental=True),
            "uniswapv3_api-ethereum": ProviderConfig(
                is_defi=True, ignore_liquidity=True
            ),
        },
        quotes={
            "USD": QuoteConfig(),
            "USDT": QuoteConfig(normalize_by_pair="USDT/USD"),
        },
        min_cex_provider_count=1,
        min_dex_provider_count=1,
    )


@pytest.fixture
def top_two_config() -> GenerateConfig:
    return GenerateConfig(
        providers={"coinbase_ws": ProviderConfig(filters=Filters(top_markets=2))},
        quotes={"USD": QuoteConfig()},
    )


# ============================================================================
# PROVIDER DATA
# ============================================================================


def _asset(asset_id, symbol, cmc_id, rank):
    return {"id": asset_id, "symbol": symbol, "cmc_id": cmc_id, "rank": rank}


def _market(market_id, provider, base, quote, ticker, price, base_asset, quote_asset):
    return {
        "id": market_id,
        "provider_name": provider,
        "target_base": base,
        "target_quote": quote,
        "off_chain_ticker": ticker,
        "reference_price": price,
        "quote_volume": 1_000_000.0,
        "usd_volume": 1_000_000.0,
        "negative_depth_two": 1_000_000.0,
        "positive_depth_two": 1_000_000.0,
        "base_asset_info_id": base_asset,
        "quote_asset_info_id": quote_asset,
    }


@pytest.fixture
def provider_document() -> dict:
    """Snapshot with BTC/USD on two venues (one via USDT) and thin ETH and DOGE markets."""
    return {
        "asset_infos": [
            _asset(0, "BTC", CMC_BTC, 1),
            _asset(1, "USD", CMC_USD, 0),
            _asset(2, "USDT", CMC_USDT, 3),
            _asset(3, "ETH", CMC_ETH, 2),
            _asset(4, "DOGE", 74, 8),
        ],
        "provider_markets": [
            _market(0, "coinbase_ws", "BTC", "USD", "BTC-USD", 100_000.0, 0, 1),
            _market(1, "binance_ws", "BTC", "USDT", "BTCUSDT", 100_100.0, 0, 2),
            _market(2, "okx_ws", "USDT", "USD", "USDT-USD", 1.0, 2, 1),
            _market(3, "coinbase_ws", "USDT", "USD", "USDT-USD", 1.0, 2, 1),
            _market(4, "coinbase_ws", "ETH", "USD", "ETH-USD", 4000.0, 3, 1),
            _market(5, "okx_ws", "DOGE", "USD", "DOGE-USD", 0.1, 4, 1),
            _market(6, "kraken_api", "BTC", "USD", "XBTUSD", 100_050.0, 0, 1),
        ],
    }


@pytest.fixture
def e2e_config() -> GenerateConfig:
    """Three CEX venues, two required per market, USDT normalized into USD."""
    return GenerateConfig(
        providers={
            "binance_ws": ProviderConfig(),
            "coinbase_ws": ProviderConfig(),
            "okx_ws": ProviderConfig(),
        },
        quotes={
            "USD": QuoteConfig(),
            "USDT": QuoteConfig(normalize_by_pair="USDT/USD"),
        },
        min_cex_provider_count=2,
        min_dex_provider_count=1,
    )
