"""Provider data models for the storage layer.

Models for the indexed snapshot the generator reads:
- AssetInfo: One asset with its CoinMarketCap identity and rank
- ProviderMarket: One venue listing of a pair, with volume/price/depth
- ProviderDocument: The serialized snapshot ({asset_infos, provider_markets})
- ProviderMarketRow: A provider market joined with its asset infos
"""

from pydantic import BaseModel, Field, field_validator


class AssetInfo(BaseModel):
    """Asset reference data.

    Provider markets point at asset infos by id for their base and quote.
    """

    id: int = Field(..., description="Store PK")
    symbol: str = Field("", description="Asset symbol (e.g., 'BTC')")
    is_crypto: bool = Field(True, description="Whether the asset is a crypto asset")
    rank: int = Field(0, ge=0, description="CoinMarketCap rank, 0 when unranked")
    cmc_id: int = Field(0, ge=0, description="CoinMarketCap id, 0 when unknown")
    multi_addresses: list[list[str]] = Field(
        default_factory=list, description="On-chain (chain, address) pairs"
    )

    class Config:
        extra = "ignore"


class ProviderMarket(BaseModel):
    """One venue listing of a currency pair."""

    id: int = Field(..., description="Store PK")
    target_base: str = Field(..., min_length=1, description="Base symbol (e.g., 'BTC')")
    target_quote: str = Field(..., min_length=1, description="Quote symbol (e.g., 'USDT')")
    off_chain_ticker: str = Field(
        ..., min_length=1, description="Venue-native ticker (e.g., 'BTC-USDT')"
    )
    provider_name: str = Field(..., min_length=1, description="Venue name")
    quote_volume: float = Field(0.0, ge=0, description="24h volume in the quote asset")
    usd_volume: float = Field(0.0, ge=0, description="24h volume in USD")
    base_asset_info_id: int = Field(..., description="FK to AssetInfo.id")
    quote_asset_info_id: int = Field(..., description="FK to AssetInfo.id")
    metadata_json: str = Field("", description="Opaque venue metadata")
    reference_price: float = Field(0.0, description="Base in terms of quote")
    negative_depth_two: float = Field(0.0, description="USD depth 2% below mid")
    positive_depth_two: float = Field(0.0, description="USD depth 2% above mid")

    class Config:
        extra = "ignore"

    @field_validator("target_base", "target_quote")
    @classmethod
    def validate_upper(cls, v: str) -> str:
        if v.upper() != v:
            raise ValueError(
                f"incorrectly formatted symbol, expected: {v.upper()} got: {v}"
            )
        return v


class ProviderDocument(BaseModel):
    """Serialized provider data snapshot."""

    asset_infos: list[AssetInfo] = Field(default_factory=list)
    provider_markets: list[ProviderMarket] = Field(default_factory=list)


class ProviderMarketRow(BaseModel):
    """A provider market joined with its base and quote asset infos."""

    target_base: str
    target_quote: str
    off_chain_ticker: str
    provider_name: str
    quote_volume: float = 0.0
    usd_volume: float = 0.0
    metadata_json: str = ""
    reference_price: float = 0.0
    negative_depth_two: float = 0.0
    positive_depth_two: float = 0.0
    base_cmc_id: int = 0
    quote_cmc_id: int = 0
    base_rank: int = 0
    quote_rank: int = 0
