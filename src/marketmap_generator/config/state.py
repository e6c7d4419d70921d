"""
Configuration state for market map generation.

Provides a single validated ConfigState built from a YAML (or JSON) file
plus environment overrides. Default venue and quote tables are built by
plain constructors on every call so callers and tests can supply their own.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from marketmap_generator.infrastructure.observability import (
    get_infrastructure_logger,
)
from marketmap_generator.shared.exceptions import (
    ConfigValidationError,
    InvalidCurrencyPairError,
    MarketMapValidationError,
)
from marketmap_generator.shared.models import CurrencyPair, MarketMap

log = get_infrastructure_logger("config-loader")


# =============================================================================
# PYDANTIC MODELS - Type-Safe Configuration
# =============================================================================


class Filters(BaseModel):
    """Per-provider market filters."""

    # number of top markets to keep for the provider; 0 disables the filter
    top_markets: int = Field(default=0, ge=0)


class ProviderConfig(BaseModel):
    """Generation settings for one venue."""

    # supplemental providers do not count towards MinProviderCount
    is_supplemental: bool = Field(default=False)
    require_aggregate_ids: bool = Field(default=False)
    filters: Filters = Field(default_factory=Filters)
    ignore_liquidity: bool = Field(default=False)
    ignore_volume: bool = Field(default=False)
    is_defi: bool = Field(default=False)
    min_provider_volume: float = Field(default=0.0, ge=0)
    min_provider_liquidity: float = Field(default=0.0, ge=0)

    class Config:
        extra = "forbid"


class QuoteConfig(BaseModel):
    """Generation settings for one quote currency."""

    min_provider_volume: float = Field(default=0.0, ge=0)
    # required on both the buy and sell side, in USD
    min_provider_liquidity: float = Field(default=0.0, ge=0)
    # e.g. "USDT/USD" converts USDT markets to be in terms of USD
    normalize_by_pair: str = Field(default="")

    class Config:
        extra = "forbid"

    @field_validator("normalize_by_pair")
    @classmethod
    def validate_normalize_by_pair(cls, v: str) -> str:
        if v:
            CurrencyPair.from_string(v)
        return v

    def parsed_normalize_by_pair(self) -> CurrencyPair | None:
        if not self.normalize_by_pair:
            return None
        return CurrencyPair.from_string(self.normalize_by_pair)


class GenerateConfig(BaseModel):
    """Everything the generation pipeline reads."""

    providers: dict[str, ProviderConfig] = Field(default_factory=dict)
    quotes: dict[str, QuoteConfig] = Field(default_factory=dict)

    min_cex_provider_count: int = Field(default=1, ge=0)
    min_dex_provider_count: int = Field(default=1, ge=0)
    # forced onto every market when non-zero
    min_provider_count_override: int = Field(default=0, ge=0)

    # market ticker -> providers that may not provide for it
    disable_providers: dict[str, list[str]] = Field(default_factory=dict)
    exclude_pairs: set[str] = Field(default_factory=set)
    allowed_currency_pairs: set[str] = Field(default_factory=set)
    market_map_override: MarketMap = Field(default_factory=MarketMap)
    enable_all: bool = Field(default=False)

    class Config:
        extra = "forbid"

    @field_validator("exclude_pairs", "allowed_currency_pairs")
    @classmethod
    def normalize_pairs(cls, v: set[str]) -> set[str]:
        """Store parseable pairs in canonical upper-case form.

        Unparseable entries are kept as given so validate_basic can report them.
        """
        normalized = set()
        for pair in v:
            try:
                normalized.add(str(CurrencyPair.from_string(pair)))
            except ValueError:
                normalized.add(pair)
        return normalized

    def validate_basic(self) -> None:
        """
        Cross-field validation.

        Raises:
            ConfigValidationError: If the configuration cannot be used
        """
        for name in self.providers:
            if not name:
                raise ConfigValidationError("provider name cannot be empty")

        for quote in self.quotes:
            if not quote:
                raise ConfigValidationError("quote cannot be empty")

        if self.exclude_pairs and self.allowed_currency_pairs:
            raise ConfigValidationError(
                "invalid configuration: can only specify excluded currency pairs "
                "or allowed currency pairs"
            )

        for field_name, pairs in (
            ("exclude_pairs", self.exclude_pairs),
            ("allowed_currency_pairs", self.allowed_currency_pairs),
        ):
            for pair in sorted(pairs):
                try:
                    CurrencyPair.from_string(pair)
                except InvalidCurrencyPairError as e:
                    raise ConfigValidationError(
                        f"invalid currency pair {pair!r} in {field_name}: {e}"
                    ) from e

        try:
            self.market_map_override.validate_basic()
        except MarketMapValidationError as e:
            # normalization pairs may live in the generated map instead
            if "pair for normalization" not in str(e):
                raise ConfigValidationError(f"invalid market_map_override: {e}") from e

        if self.min_cex_provider_count < 1:
            raise ConfigValidationError(
                f"min_cex_provider_count must be > 0, got {self.min_cex_provider_count}"
            )

        if self.min_dex_provider_count < 1:
            raise ConfigValidationError(
                f"min_dex_provider_count must be > 0, got {self.min_dex_provider_count}"
            )

        ceiling = min(self.min_cex_provider_count, self.min_dex_provider_count)
        if self.min_provider_count_override > ceiling:
            raise ConfigValidationError(
                f"invalid min_provider_count_override: must be at most {ceiling}, "
                f"got {self.min_provider_count_override}"
            )

    def is_currency_pair_allowed(self, pair: CurrencyPair) -> bool:
        """Excluded pairs are never allowed; otherwise consult the allow list if any."""
        if str(pair) in self.exclude_pairs:
            return False
        if not self.allowed_currency_pairs:
            return True
        return str(pair) in self.allowed_currency_pairs

    def is_provider_defi(self, provider_name: str) -> bool:
        provider = self.providers.get(provider_name)
        return provider is not None and provider.is_defi

    def is_provider_supplemental(self, provider_name: str) -> bool:
        provider = self.providers.get(provider_name)
        return provider is not None and provider.is_supplemental


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)

    class Config:
        extra = "allow"


class ConfigState(BaseModel):
    """Root configuration state."""

    generate: GenerateConfig | None = Field(default=None)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    config_path: str | None = Field(default=None)

    class Config:
        extra = "allow"

    def validate_basic(self) -> None:
        if self.generate is not None:
            self.generate.validate_basic()


# =============================================================================
# DEFAULTS
# =============================================================================


def default_providers() -> dict[str, ProviderConfig]:
    return {
        "coinbase_ws": ProviderConfig(filters=Filters(top_markets=100)),
        "uniswapv3_api-ethereum": ProviderConfig(
            filters=Filters(top_markets=50), ignore_liquidity=True
        ),
    }


def default_quotes() -> dict[str, QuoteConfig]:
    return {
        "USD": QuoteConfig(min_provider_volume=80000, min_provider_liquidity=1000),
        "USDT": QuoteConfig(
            min_provider_volume=80000,
            min_provider_liquidity=1000,
            normalize_by_pair="USDT/USD",
        ),
        "BTC": QuoteConfig(
            min_provider_volume=15,
            min_provider_liquidity=1000,
            normalize_by_pair="BTC/USD",
        ),
        "ETH": QuoteConfig(
            min_provider_volume=20,
            min_provider_liquidity=1000,
            normalize_by_pair="ETH/USD",
        ),
        "WETH": QuoteConfig(
            min_provider_volume=20,
            min_provider_liquidity=1000,
            normalize_by_pair="ETH/USD",
        ),
        "SOL": QuoteConfig(min_provider_volume=0, normalize_by_pair="SOL/USD"),
    }


def default_generate_config() -> GenerateConfig:
    return GenerateConfig(
        providers=default_providers(),
        quotes=default_quotes(),
        min_cex_provider_count=3,
        min_dex_provider_count=1,
        min_provider_count_override=1,
    )


# =============================================================================
# CONFIG LOADER - Clean, Validated Loading
# =============================================================================


class ConfigLoader:
    """
    Load and validate configuration from a YAML or JSON file.

    Merges:
      1. The config file
      2. Environment variable overrides
    """

    def __init__(self, config_path: str | Path):
        self.config_path = Path(config_path)

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            raise ConfigValidationError(f"config file not found: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"failed to parse {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigValidationError(f"config root in {path} must be a mapping")
        return data

    def _apply_env_overrides(self, config: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to config."""
        if log_level := os.getenv("LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level

        if "generate" in config and config["generate"] is not None:
            generate = config["generate"]

            if enable_all := os.getenv("MMU_ENABLE_ALL"):
                generate["enable_all"] = enable_all.strip().lower() in (
                    "1",
                    "true",
                    "yes",
                )

            if override := os.getenv("MMU_MIN_PROVIDER_COUNT_OVERRIDE"):
                try:
                    generate["min_provider_count_override"] = int(override)
                except ValueError as e:
                    raise ConfigValidationError(
                        f"MMU_MIN_PROVIDER_COUNT_OVERRIDE must be an integer, got {override!r}"
                    ) from e

        return config

    def load(self) -> ConfigState:
        """
        Load complete configuration state.

        Returns:
            ConfigState: Validated configuration object

        Raises:
            ConfigValidationError: If configuration is missing or invalid
        """
        log.info("loading_config", path=str(self.config_path))

        config = self._apply_env_overrides(self._load_yaml(self.config_path))

        try:
            state = ConfigState(config_path=str(self.config_path), **config)
        except ValueError as e:
            log.error("config_validation_failed", error=str(e))
            raise ConfigValidationError(str(e)) from e

        state.validate_basic()

        if state.generate is not None:
            log.info(
                "config_loaded",
                providers=len(state.generate.providers),
                quotes=sorted(state.generate.quotes),
                enable_all=state.generate.enable_all,
            )
        return state


def get_config(config_path: str | Path | None = None) -> ConfigState:
    """
    Load and return the configuration state.

    Args:
        config_path: Override config file. Defaults to $MMU_CONFIG_PATH or ./config.yaml

    Returns:
        ConfigState: Validated configuration object
    """
    if config_path is None:
        config_path = os.getenv("MMU_CONFIG_PATH", "config.yaml")

    return ConfigLoader(config_path).load()


__all__ = [
    "ConfigLoader",
    "ConfigState",
    "Filters",
    "GenerateConfig",
    "LoggingConfig",
    "ProviderConfig",
    "QuoteConfig",
    "default_generate_config",
    "default_providers",
    "default_quotes",
    "get_config",
]
