"""Observations emitted by the escrow ledger for indexers and auditors.

- ``DepositRecorded`` — a stake was added to a pool.
- ``OutcomeResolved`` — the price latch was set.
- ``ClaimRecorded`` — a stake was settled (``payout == 0`` on the losing side).
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from models.outcome import Pool


class DepositRecorded(BaseModel):
    kind: Literal["deposit"] = "deposit"
    sequence: int
    timestamp: int
    caller: str
    pool: Pool
    asset: str
    amount: int
    stake: int  # Caller's stake in the pool after this deposit
    pool_total: int


class OutcomeResolved(BaseModel):
    kind: Literal["resolution"] = "resolution"
    sequence: int
    timestamp: int
    caller: str
    price: int
    decimals: int
    round_id: int | None = None
    winning_pool: Pool


class ClaimRecorded(BaseModel):
    """Settlement of one caller's stake in one pool.

    ``stake_returned`` is paid in the pool's own asset and ``payout`` in the
    opposing asset.  Both are zero when the pool lost.
    """

    kind: Literal["claim"] = "claim"
    sequence: int
    timestamp: int
    caller: str
    pool: Pool
    stake: int
    won: bool
    stake_returned: int = 0
    payout: int = 0
    payout_asset: str


LedgerEvent = Annotated[
    Union[DepositRecorded, OutcomeResolved, ClaimRecorded],
    Field(discriminator="kind"),
]
