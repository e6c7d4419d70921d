"""Resolution pipeline: feed transforms, aggregation and market-map transforms.

- feed_transforms.py: Eleven feed-level stages (FEED_TRANSFORMS)
- aggregation.py: feeds_to_market_map
- marketmap_transforms.py: Seven market-map stages (MARKET_MAP_TRANSFORMS)
- pipelines/: Transformer running both chains
- ports.py: Stage protocols
"""

from marketmap_generator.transformation.aggregation import feeds_to_market_map
from marketmap_generator.transformation.feed_transforms import FEED_TRANSFORMS
from marketmap_generator.transformation.marketmap_transforms import (
    MARKET_MAP_TRANSFORMS,
    replace_normalize_by,
)
from marketmap_generator.transformation.pipelines import Transformer
from marketmap_generator.transformation.ports import FeedTransform, MarketMapTransform

__all__ = [
    "FEED_TRANSFORMS",
    "MARKET_MAP_TRANSFORMS",
    "FeedTransform",
    "MarketMapTransform",
    "Transformer",
    "feeds_to_market_map",
    "replace_normalize_by",
]
