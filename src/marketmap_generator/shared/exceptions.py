"""
Market Map Generator Exception Hierarchy

Hard failures that abort a generation run. Soft drops (feeds or markets
excluded for data-quality reasons) are never raised; they are recorded in
RemovalReasons instead.
"""


class MarketMapGeneratorError(Exception):
    """Base exception for all generation errors."""

    pass


class InvalidCurrencyPairError(MarketMapGeneratorError, ValueError):
    """A currency pair string is not of the form BASE/QUOTE."""

    def __init__(self, value: str, message: str | None = None):
        super().__init__(message or f"invalid currency pair string: {value!r}")
        self.value = value


class ConfigValidationError(MarketMapGeneratorError):
    """The generation configuration is invalid."""

    pass


class StoreError(MarketMapGeneratorError):
    """Provider data could not be read."""

    pass


class TransformError(MarketMapGeneratorError):
    """A transform stage failed."""

    def __init__(self, message: str, transform: str | None = None):
        super().__init__(message)
        self.transform = transform


class MissingQuoteConfigError(TransformError):
    """A feed's quote has no quote config where one is required."""

    pass


class MissingAdjustmentPriceError(TransformError):
    """No average reference price exists for a normalize-by pair."""

    pass


class UnknownProviderError(TransformError):
    """A feed references a venue absent from configuration."""

    pass


class InternalConsistencyError(TransformError):
    """An invariant the pipeline guarantees was observed broken."""

    pass


class MarketMapValidationError(MarketMapGeneratorError):
    """A market map failed structural validation."""

    pass
