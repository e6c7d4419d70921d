"""Port/Protocol definitions for transformation layer.

Defines the two stage shapes the pipelines chain together:
- FeedTransform: Feeds x Config -> (Feeds, RemovalReasons)
- MarketMapTransform: MarketMap x Config -> (MarketMap, ExclusionReasons)

Stages signal hard failures by raising TransformError subclasses; soft drops
are returned as removal reasons.
"""

from typing import TYPE_CHECKING, Protocol

from marketmap_generator.shared.models import Feed, MarketMap, RemovalReasons

if TYPE_CHECKING:
    from marketmap_generator.config import GenerateConfig


class FeedTransform(Protocol):
    """A single stage of the feed-level chain.

    Responsibility: Return a new feed list derived from the input.
    Does NOT mutate the input feeds.
    """

    __name__: str

    def __call__(
        self, cfg: "GenerateConfig", feeds: list[Feed]
    ) -> tuple[list[Feed], RemovalReasons]:
        """Apply the stage.

        Args:
            cfg: Generation configuration
            feeds: Current feed collection

        Returns:
            (remaining feeds, removal reasons for dropped feeds)

        Raises:
            TransformError: If the stage cannot complete
        """
        ...


class MarketMapTransform(Protocol):
    """A single stage of the market-map chain.

    Responsibility: Return the transformed market map. The map may be
    modified in place; the pipeline owns it for the whole run.
    """

    __name__: str

    def __call__(
        self, cfg: "GenerateConfig", market_map: MarketMap
    ) -> tuple[MarketMap, RemovalReasons]:
        """Apply the stage.

        Args:
            cfg: Generation configuration
            market_map: Current market map

        Returns:
            (market map, exclusion reasons for removed markets or venues)
        """
        ...
