# marketmap_generator/shared/models/market_map.py

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from marketmap_generator.common.utils.scaling import MAX_DECIMALS, MIN_DECIMALS
from marketmap_generator.shared.exceptions import MarketMapValidationError
from marketmap_generator.shared.models.currency_pair import CurrencyPair

MAX_METADATA_JSON_LENGTH = 16384


class VenueConfig(BaseModel):
    """
    How one venue provides a price for a market.

    normalize_by_pair is set only when the venue's price must be rescaled
    through a second pair before it is comparable to same-quote peers.
    invert is set when base/quote were swapped relative to the venue's
    native listing.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    off_chain_ticker: str
    normalize_by_pair: CurrencyPair | None = Field(default=None)
    invert: bool = Field(default=False)
    metadata_json: str = Field(default="")

    def validate_basic(self) -> None:
        if not self.name:
            raise MarketMapValidationError("provider name cannot be empty")
        if not self.off_chain_ticker:
            raise MarketMapValidationError(
                f"off-chain ticker cannot be empty for provider {self.name}"
            )
        if len(self.metadata_json) > MAX_METADATA_JSON_LENGTH:
            raise MarketMapValidationError(
                f"metadata too long for provider {self.name}"
            )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "offChainTicker": self.off_chain_ticker,
        }
        if self.normalize_by_pair is not None:
            out["normalizeByPair"] = self.normalize_by_pair.to_dict()
        out["invert"] = self.invert
        out["metadata"] = self.metadata_json
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VenueConfig":
        return cls(
            name=data["name"],
            off_chain_ticker=data.get("offChainTicker", ""),
            normalize_by_pair=data.get("normalizeByPair"),
            invert=data.get("invert", False),
            metadata_json=data.get("metadata", ""),
        )


class Ticker(BaseModel):
    """
    Canonical ticker of a market.

    decimals and metadata_json are derived from the feeds during
    aggregation, never supplied by a venue.
    """

    model_config = ConfigDict(frozen=True)

    currency_pair: CurrencyPair
    decimals: int = Field(default=8, ge=0)
    min_provider_count: int = Field(default=1, ge=0)
    enabled: bool = Field(default=False)
    metadata_json: str = Field(default="")

    def __str__(self) -> str:
        return str(self.currency_pair)

    def validate_basic(self) -> None:
        if not MIN_DECIMALS <= self.decimals <= MAX_DECIMALS:
            raise MarketMapValidationError(
                f"ticker {self}: decimals {self.decimals} out of range "
                f"[{MIN_DECIMALS}, {MAX_DECIMALS}]"
            )
        if self.min_provider_count < 1:
            raise MarketMapValidationError(
                f"ticker {self}: min provider count must be at least 1"
            )
        if len(self.metadata_json) > MAX_METADATA_JSON_LENGTH:
            raise MarketMapValidationError(f"ticker {self}: metadata too long")

    def to_dict(self) -> dict[str, Any]:
        return {
            "base": self.currency_pair.base,
            "quote": self.currency_pair.quote,
            "decimals": self.decimals,
            "minProviderCount": self.min_provider_count,
            "enabled": self.enabled,
            "metadata": self.metadata_json,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Ticker":
        return cls(
            currency_pair=CurrencyPair(base=data["base"], quote=data["quote"]),
            decimals=data.get("decimals", 8),
            min_provider_count=data.get("minProviderCount", 1),
            enabled=data.get("enabled", False),
            metadata_json=data.get("metadata", ""),
        )


class Market(BaseModel):
    """One canonical entry per currency pair with its ordered venue list."""

    ticker: Ticker
    provider_configs: list[VenueConfig] = Field(default_factory=list)

    @property
    def ticker_string(self) -> str:
        return str(self.ticker)

    @property
    def provider_names(self) -> list[str]:
        return [pc.name for pc in self.provider_configs]

    def validate_basic(self) -> None:
        self.ticker.validate_basic()

        if len(self.provider_configs) < self.ticker.min_provider_count:
            raise MarketMapValidationError(
                f"market {self.ticker} must have at least "
                f"{self.ticker.min_provider_count} providers, "
                f"got {len(self.provider_configs)}"
            )

        seen: set[str] = set()
        for pc in self.provider_configs:
            pc.validate_basic()
            if pc.name in seen:
                raise MarketMapValidationError(
                    f"market {self.ticker} has duplicate provider {pc.name}"
                )
            seen.add(pc.name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ticker": self.ticker.to_dict(),
            "providers": [pc.to_dict() for pc in self.provider_configs],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Market":
        return cls(
            ticker=Ticker.from_dict(data["ticker"]),
            provider_configs=[
                VenueConfig.from_dict(pc) for pc in data.get("providers", [])
            ],
        )


class MarketMap(BaseModel):
    """
    Mapping from canonical ticker string to Market.

    The only mutable aggregate in the pipeline. It is owned by the
    generator for the duration of a run.
    """

    markets: dict[str, Market] | None = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def parse_serialized_form(cls, data: Any) -> Any:
        """Accept the serialized {ticker string: market} mapping."""
        if isinstance(data, dict) and "markets" not in data:
            markets = {}
            for name, market in data.items():
                if not isinstance(market, dict):
                    markets[name] = market
                    continue
                try:
                    markets[name] = Market.from_dict(market)
                except (KeyError, TypeError, AttributeError) as e:
                    raise ValueError(f"malformed market {name!r}: {e!r}") from e
            return {"markets": markets}
        return data

    def __len__(self) -> int:
        return len(self.markets or {})

    def validate_basic(self) -> None:
        """
        Structural validation of the whole map.

        Raises:
            MarketMapValidationError: On the first violation found
        """
        if self.markets is None:
            raise MarketMapValidationError("markets cannot be nil")

        for name in sorted(self.markets):
            market = self.markets[name]
            if name != market.ticker_string:
                raise MarketMapValidationError(
                    f"market key {name} does not match ticker {market.ticker}"
                )
            market.validate_basic()

            for pc in market.provider_configs:
                if pc.normalize_by_pair is None:
                    continue
                if str(pc.normalize_by_pair) not in self.markets:
                    raise MarketMapValidationError(
                        f"pair for normalization {pc.normalize_by_pair} "
                        f"is not in the marketmap"
                    )

    def to_dict(self) -> dict[str, Any]:
        markets = self.markets or {}
        return {name: markets[name].to_dict() for name in sorted(markets)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MarketMap":
        return cls.model_validate(data)
