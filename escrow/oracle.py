"""Price feed interface consumed once, at resolution.

The ledger reads only ``PriceQuote.value`` (and checks ``decimals``); round
and freshness metadata are carried through to the resolution record untouched.
"""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, ConfigDict


class PriceQuote(BaseModel):
    """Most recent observed price as a signed fixed-decimal integer."""

    model_config = ConfigDict(frozen=True)

    value: int
    decimals: int
    round_id: int | None = None
    updated_at: int | None = None


class PriceFeed(Protocol):
    def latest_price(self) -> PriceQuote: ...


class StaticPriceFeed:
    """Feed serving a quote that can be replaced between lookups.

    ``lookups`` counts calls to ``latest_price`` so callers can verify how
    many times the feed was consulted.
    """

    def __init__(self, quote: PriceQuote) -> None:
        self._quote = quote
        self.lookups = 0

    def latest_price(self) -> PriceQuote:
        self.lookups += 1
        return self._quote

    def set_price(self, value: int, updated_at: int | None = None) -> PriceQuote:
        """Publish a new value under the next round id."""
        round_id = (self._quote.round_id or 0) + 1
        self._quote = self._quote.model_copy(
            update={"value": value, "round_id": round_id, "updated_at": updated_at},
        )
        return self._quote
