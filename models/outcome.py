"""Pool identifiers and the one-shot outcome latch."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class Pool(str, Enum):
    """One of the two deposit sides."""

    A = "A"
    B = "B"

    @property
    def opposite(self) -> Pool:
        return Pool.B if self is Pool.A else Pool.A


class Unresolved(BaseModel):
    """Latch state before the price has been observed."""

    model_config = ConfigDict(frozen=True)

    status: Literal["unresolved"] = "unresolved"


class Resolved(BaseModel):
    """Latch state after resolution.

    ``price`` is the feed value stored verbatim, in units of
    ``10 ** -decimals``.  A zero or negative price is a legitimate reading.
    """

    model_config = ConfigDict(frozen=True)

    status: Literal["resolved"] = "resolved"
    price: int
    decimals: int
    round_id: int | None = None
    updated_at: int | None = None
    resolved_at: int
    resolved_by: str


Outcome = Annotated[Union[Unresolved, Resolved], Field(discriminator="status")]
