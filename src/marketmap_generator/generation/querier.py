"""Querier: reads provider rows from the store and converts them to Feeds."""

from pydantic import ValidationError

from marketmap_generator.config import GenerateConfig
from marketmap_generator.infrastructure.observability import get_generation_logger
from marketmap_generator.shared.exceptions import InvalidCurrencyPairError, StoreError
from marketmap_generator.shared.models import (
    CurrencyPair,
    Feed,
    IdentityInfo,
    LiquidityInfo,
    Ticker,
    VenueConfig,
)
from marketmap_generator.storage import ProviderMarketRow, ProviderStore

DEFAULT_DECIMALS = 8

log = get_generation_logger("querier")


def to_feed(row: ProviderMarketRow, cfg: GenerateConfig) -> Feed:
    """
    Build a Feed from a joined provider market row.

    The minimum provider count depends on whether the venue is a DeFi venue.
    """
    if cfg.is_provider_defi(row.provider_name):
        min_provider_count = cfg.min_dex_provider_count
    else:
        min_provider_count = cfg.min_cex_provider_count

    return Feed(
        ticker=Ticker(
            currency_pair=CurrencyPair(base=row.target_base, quote=row.target_quote),
            decimals=DEFAULT_DECIMALS,
            min_provider_count=min_provider_count,
            enabled=False,
            metadata_json="",
        ),
        provider_config=VenueConfig(
            name=row.provider_name,
            off_chain_ticker=row.off_chain_ticker,
            normalize_by_pair=None,
            invert=False,
            metadata_json=row.metadata_json,
        ),
        daily_quote_volume=row.quote_volume,
        daily_usd_volume=row.usd_volume,
        reference_price=row.reference_price,
        cmc_info=IdentityInfo(
            base_id=row.base_cmc_id,
            quote_id=row.quote_cmc_id,
            base_rank=row.base_rank,
            quote_rank=row.quote_rank,
        ),
        liquidity_info=LiquidityInfo(
            negative_depth_two=row.negative_depth_two,
            positive_depth_two=row.positive_depth_two,
        ),
    )


class Querier:
    """Reads indexed provider data for the configured venues."""

    def __init__(self, provider_store: ProviderStore):
        self.provider_store = provider_store

    async def feeds(self, cfg: GenerateConfig) -> list[Feed]:
        """
        Query rows for every configured venue and convert them to Feeds.

        Raises:
            StoreError: If the store read fails
            InvalidCurrencyPairError: If a row does not form a valid pair
        """
        provider_names = sorted(cfg.providers)
        log.info(
            "querying_provider_markets",
            providers=provider_names,
            target_quotes=sorted(cfg.quotes),
        )

        try:
            rows = await self.provider_store.get_provider_markets(provider_names)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"query failed: {e}") from e

        feeds: list[Feed] = []
        for row in rows:
            try:
                feeds.append(to_feed(row, cfg))
            except ValidationError as e:
                log.error(
                    "row_conversion_failed",
                    error=str(e),
                    provider=row.provider_name,
                    off_chain_ticker=row.off_chain_ticker,
                )
                raise InvalidCurrencyPairError(
                    f"{row.target_base}/{row.target_quote}",
                    f"provider {row.provider_name} market {row.off_chain_ticker!r} "
                    f"has an invalid pair {row.target_base}/{row.target_quote}: {e}",
                ) from e

        log.info("feeds_queried", feeds=len(feeds))
        return feeds
