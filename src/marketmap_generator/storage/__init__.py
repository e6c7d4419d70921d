"""Provider data store: snapshot schemas, the store protocol and the in-memory store."""

from marketmap_generator.storage.memory import MemoryProviderStore
from marketmap_generator.storage.ports import ProviderStore
from marketmap_generator.storage.schemas import (
    AssetInfo,
    ProviderDocument,
    ProviderMarket,
    ProviderMarketRow,
)

__all__ = [
    "AssetInfo",
    "MemoryProviderStore",
    "ProviderDocument",
    "ProviderMarket",
    "ProviderMarketRow",
    "ProviderStore",
]
