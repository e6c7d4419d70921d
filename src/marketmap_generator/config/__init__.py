"""Generation configuration: pydantic models, defaults and the file loader."""

from .state import (
    ConfigLoader,
    ConfigState,
    Filters,
    GenerateConfig,
    LoggingConfig,
    ProviderConfig,
    QuoteConfig,
    default_generate_config,
    default_providers,
    default_quotes,
    get_config,
)

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
