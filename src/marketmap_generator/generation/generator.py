"""Generator: drives the full resolution pipeline for one configuration.

Store rows -> Feeds -> feed chain -> aggregate -> market-map chain -> MarketMap
"""

from marketmap_generator.config import GenerateConfig
from marketmap_generator.generation.querier import Querier
from marketmap_generator.infrastructure.observability import get_generation_logger
from marketmap_generator.shared.exceptions import MarketMapGeneratorError
from marketmap_generator.shared.models import MarketMap, RemovalReasons
from marketmap_generator.storage import ProviderStore
from marketmap_generator.transformation import Transformer, feeds_to_market_map

log = get_generation_logger("generator")


class Generator:
    """Generates a market map from indexed provider data."""

    def __init__(
        self,
        provider_store: ProviderStore,
        transformer: Transformer | None = None,
    ):
        self.querier = Querier(provider_store)
        self.transformer = transformer or Transformer()

    async def generate_market_map(
        self, cfg: GenerateConfig
    ) -> tuple[MarketMap, RemovalReasons]:
        """
        Run the pipeline once.

        Args:
            cfg: Generation configuration

        Returns:
            (final market map, every removal and exclusion reason)

        Raises:
            MarketMapGeneratorError: Any hard failure, logged with the step
                that raised it
        """
        step = "validate_config"
        try:
            cfg.validate_basic()

            step = "query"
            feeds = await self.querier.feeds(cfg)

            step = "transform_feeds"
            feeds, dropped = self.transformer.transform_feeds(cfg, feeds)
            log.info("feed_transforms_complete", feeds_remaining=len(feeds))

            step = "aggregate"
            market_map = feeds_to_market_map(feeds)

            step = "transform_market_map"
            market_map, excluded = self.transformer.transform_market_map(
                cfg, market_map
            )
        except MarketMapGeneratorError as e:
            log.error(
                "generation_failed",
                step=step,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        dropped.merge(excluded)
        log.info("market_map_generated", markets=len(market_map), removals=dropped.count())
        return market_map, dropped
