"""Transformer pipeline: runs the feed chain and the market-map chain.

Provides:
- Transformer: Ordered stage runner with merged removal/exclusion reasons
- Stage-level progress logging
"""

import time
from collections.abc import Sequence

from marketmap_generator.config import GenerateConfig
from marketmap_generator.infrastructure.observability import get_processing_logger
from marketmap_generator.shared.exceptions import MarketMapValidationError
from marketmap_generator.shared.models import Feed, MarketMap, RemovalReasons
from marketmap_generator.transformation.feed_transforms import FEED_TRANSFORMS
from marketmap_generator.transformation.marketmap_transforms import (
    MARKET_MAP_TRANSFORMS,
)
from marketmap_generator.transformation.ports import (
    FeedTransform,
    MarketMapTransform,
)

log = get_processing_logger("transformer")


class Transformer:
    """Runs transform stages strictly in order.

    Each stage's output is the next stage's only input. Removal reasons of
    every stage are merged into one log; hard failures propagate unchanged.
    """

    def __init__(
        self,
        feed_transforms: Sequence[FeedTransform] = FEED_TRANSFORMS,
        market_map_transforms: Sequence[MarketMapTransform] = MARKET_MAP_TRANSFORMS,
    ):
        """Initialize transformer.

        Args:
            feed_transforms: Feed-level stages in execution order
            market_map_transforms: Market-map stages in execution order
        """
        self.feed_transforms = tuple(feed_transforms)
        self.market_map_transforms = tuple(market_map_transforms)

    def transform_feeds(
        self, cfg: GenerateConfig, feeds: list[Feed]
    ) -> tuple[list[Feed], RemovalReasons]:
        """Run every feed-level stage.

        Args:
            cfg: Generation configuration
            feeds: Feeds built from provider data

        Returns:
            (remaining feeds, merged removal reasons)

        Raises:
            TransformError: If a stage fails
        """
        start_time = time.time()
        dropped = RemovalReasons()

        for transform in self.feed_transforms:
            feeds, removals = transform(cfg, feeds)
            dropped.merge(removals)

        log.info(
            "feed_transforms_completed",
            stages=len(self.feed_transforms),
            feeds_remaining=len(feeds),
            feeds_dropped=dropped.count(),
            duration_seconds=round(time.time() - start_time, 3),
        )
        return feeds, dropped

    def transform_market_map(
        self, cfg: GenerateConfig, market_map: MarketMap
    ) -> tuple[MarketMap, RemovalReasons]:
        """Run every market-map stage, then validate the result.

        Args:
            cfg: Generation configuration
            market_map: Aggregated market map

        Returns:
            (final market map, merged exclusion reasons)

        Raises:
            MarketMapValidationError: If the map has no market container or
                the final map fails structural validation
            TransformError: If a stage fails
        """
        if market_map.markets is None:
            raise MarketMapValidationError("markets cannot be nil")

        start_time = time.time()
        excluded = RemovalReasons()

        for transform in self.market_map_transforms:
            market_map, exclusions = transform(cfg, market_map)
            excluded.merge(exclusions)

        market_map.validate_basic()

        log.info(
            "market_map_transforms_completed",
            stages=len(self.market_map_transforms),
            markets=len(market_map),
            exclusions=excluded.count(),
            duration_seconds=round(time.time() - start_time, 3),
        )
        return market_map, excluded
