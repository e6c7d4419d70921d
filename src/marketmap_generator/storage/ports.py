"""Port/Protocol definitions for the provider data store."""

from collections.abc import Iterable
from typing import Protocol

from marketmap_generator.storage.schemas import ProviderMarketRow


class ProviderStore(Protocol):
    """Read access to indexed provider markets.

    Responsibility: Return joined rows for the requested venues.
    Does NOT filter on volume, liquidity or quotes.
    """

    async def get_provider_markets(
        self, provider_names: Iterable[str]
    ) -> list[ProviderMarketRow]:
        """Fetch provider markets for the given venues.

        Args:
            provider_names: Venue names to include

        Returns:
            Rows joined with base/quote identity ids and ranks

        Raises:
            StoreError: If the store cannot be read
        """
        ...
