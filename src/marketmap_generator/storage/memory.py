"""In-memory provider store backed by a JSON snapshot document."""

import json
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from marketmap_generator.infrastructure.observability import get_storage_logger
from marketmap_generator.shared.exceptions import StoreError
from marketmap_generator.storage.schemas import (
    AssetInfo,
    ProviderDocument,
    ProviderMarket,
    ProviderMarketRow,
)

log = get_storage_logger("memory-provider-store")


class MemoryProviderStore:
    """
    Provider markets and asset infos held in dicts keyed by id.

    Provider markets are unique per (off-chain ticker, venue): when a
    snapshot lists the same market twice, the listing with the higher quote
    volume is kept (DEX venues list one ticker per fee pool). Rows are
    returned in id order.
    """

    def __init__(self):
        self._provider_markets: dict[int, ProviderMarket] = {}
        self._asset_infos: dict[int, AssetInfo] = {}
        self._market_index: dict[tuple[str, str], int] = {}

    @classmethod
    def from_document(cls, document: ProviderDocument) -> "MemoryProviderStore":
        store = cls()
        for asset_info in document.asset_infos:
            store._asset_infos[asset_info.id] = asset_info
        for market in document.provider_markets:
            store._add_provider_market(market)
        return store

    def _add_provider_market(self, market: ProviderMarket) -> None:
        key = (market.off_chain_ticker, market.provider_name)
        existing_id = self._market_index.get(key)
        if existing_id is not None:
            existing = self._provider_markets[existing_id]
            if existing.quote_volume >= market.quote_volume:
                log.debug(
                    "duplicate_provider_market_skipped",
                    off_chain_ticker=market.off_chain_ticker,
                    provider=market.provider_name,
                    kept_id=existing.id,
                    skipped_id=market.id,
                )
                return
            del self._provider_markets[existing_id]

        self._provider_markets[market.id] = market
        self._market_index[key] = market.id

    @classmethod
    def from_file(cls, path: str | Path) -> "MemoryProviderStore":
        """
        Load a provider data document.

        Args:
            path: JSON file with ``asset_infos`` and ``provider_markets``

        Raises:
            StoreError: If the file is missing or not a valid document
        """
        path = Path(path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreError(f"failed to read provider data {path}: {e}") from e

        try:
            document = ProviderDocument.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise StoreError(f"invalid provider data {path}: {e}") from e

        store = cls.from_document(document)
        log.info(
            "provider_data_loaded",
            path=str(path),
            asset_infos=len(store._asset_infos),
            provider_markets=len(store._provider_markets),
        )
        return store

    async def get_provider_markets(
        self, provider_names: Iterable[str]
    ) -> list[ProviderMarketRow]:
        targets = set(provider_names)
        rows: list[ProviderMarketRow] = []
        skipped = 0

        for market_id in sorted(self._provider_markets):
            market = self._provider_markets[market_id]
            if market.provider_name not in targets:
                continue

            base = self._asset_infos.get(market.base_asset_info_id)
            quote = self._asset_infos.get(market.quote_asset_info_id)
            if base is None or quote is None:
                skipped += 1
                continue

            rows.append(
                ProviderMarketRow(
                    target_base=market.target_base,
                    target_quote=market.target_quote,
                    off_chain_ticker=market.off_chain_ticker,
                    provider_name=market.provider_name,
                    quote_volume=market.quote_volume,
                    usd_volume=market.usd_volume,
                    metadata_json=market.metadata_json,
                    reference_price=market.reference_price,
                    negative_depth_two=market.negative_depth_two,
                    positive_depth_two=market.positive_depth_two,
                    base_cmc_id=base.cmc_id,
                    quote_cmc_id=quote.cmc_id,
                    base_rank=base.rank,
                    quote_rank=quote.rank,
                )
            )

        log.info(
            "provider_markets_read",
            providers=sorted(targets),
            rows=len(rows),
            skipped_missing_asset_info=skipped,
        )
        return rows
