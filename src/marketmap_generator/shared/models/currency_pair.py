# marketmap_generator/shared/models/currency_pair.py

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from marketmap_generator.shared.exceptions import InvalidCurrencyPairError


class CurrencyPair(BaseModel):
    """
    A (base, quote) symbol pair.

    The canonical string form is "BASE/QUOTE". DeFi assets carry venue and
    contract address inside the symbol (e.g. "PEPE,UNISWAP_V3,0XABC"), so
    symbols may contain commas but never a slash.
    """

    model_config = ConfigDict(frozen=True)

    base: str
    quote: str

    @model_validator(mode="before")
    @classmethod
    def parse_pair_string(cls, data: Any) -> Any:
        """Accept "BASE/QUOTE" strings wherever a pair is expected."""
        if isinstance(data, str):
            pair = cls.from_string(data)
            return {"base": pair.base, "quote": pair.quote}
        return data

    @field_validator("base", "quote")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        if not v:
            raise ValueError("symbol cannot be empty")
        if "/" in v:
            raise ValueError(f"symbol {v!r} cannot contain '/'")
        return v

    @classmethod
    def from_string(cls, value: str) -> "CurrencyPair":
        """Parse "BASE/QUOTE", upper-casing both symbols."""
        parts = value.split("/")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise InvalidCurrencyPairError(value)
        return cls(base=parts[0].upper(), quote=parts[1].upper())

    def invert(self) -> "CurrencyPair":
        return CurrencyPair(base=self.quote, quote=self.base)

    def with_quote(self, quote: str) -> "CurrencyPair":
        return CurrencyPair(base=self.base, quote=quote)

    def __str__(self) -> str:
        return f"{self.base}/{self.quote}"

    def to_dict(self) -> dict[str, str]:
        return {"base": self.base, "quote": self.quote}
