# marketmap_generator/shared/models/removal.py

from typing import Any

from pydantic import BaseModel, Field

from marketmap_generator.shared.models.feed import Feed
from marketmap_generator.shared.models.market_map import Market


class RemovalReason(BaseModel):
    """Why a (provider, market) or a whole market was removed."""

    reason: str
    provider: str
    feed: Feed | None = Field(default=None)
    market: Market | None = Field(default=None)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"reason": self.reason, "provider": self.provider}
        if self.feed is not None:
            out["feed"] = self.feed.model_dump(mode="json")
        if self.market is not None:
            out["market"] = self.market.to_dict()
        return out


class RemovalReasons(dict[str, list[RemovalReason]]):
    """
    Ticker string -> ordered removal reasons.

    Purely diagnostic: merged additively across stages, never consulted for
    control flow.
    """

    def add_from_feed(self, feed: Feed, provider: str, reason: str) -> None:
        self.setdefault(feed.ticker_string, []).append(
            RemovalReason(reason=reason, provider=provider, feed=feed)
        )

    def add_from_market(self, market: Market, provider: str, reason: str) -> None:
        # markets are mutated by later stages; keep the state at removal time
        self.setdefault(market.ticker_string, []).append(
            RemovalReason(
                reason=reason, provider=provider, market=market.model_copy(deep=True)
            )
        )

    def merge(self, other: "RemovalReasons | None") -> "RemovalReasons":
        if other:
            for ticker, reasons in other.items():
                self.setdefault(ticker, []).extend(reasons)
        return self

    def count(self) -> int:
        return sum(len(reasons) for reasons in self.values())

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            ticker: [reason.to_dict() for reason in self[ticker]]
            for ticker in sorted(self)
        }


# Market-level exclusions share the same structure.
ExclusionReasons = RemovalReasons
