"""Read models over the escrow ledger state."""

from __future__ import annotations

from pydantic import BaseModel, Field, computed_field

from models.outcome import Outcome, Pool, Unresolved


class StakeEntry(BaseModel):
    """One outstanding (caller, pool) stake."""

    caller: str
    pool: Pool
    amount: int


class LedgerSnapshot(BaseModel):
    """Pool totals, outstanding stakes and the latch at a point in time."""

    deposits_a: int
    deposits_b: int
    stakes: list[StakeEntry] = []
    outcome: Outcome = Field(default_factory=Unresolved)
    event_count: int = 0


class ClaimQuote(BaseModel):
    """What a claim would pay right now, computed without mutating state."""

    caller: str
    pool: Pool
    stake: int
    won: bool
    stake_returned: int
    payout: int
    payout_asset: str


class ConservationReport(BaseModel):
    """Pool totals compared against what the escrow actually holds.

    ``holds`` is true when each pool total equals the escrow's balance of the
    pool's asset.
    """

    deposits_a: int
    deposits_b: int
    holdings_a: int
    holdings_b: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def holds(self) -> bool:
        return self.deposits_a == self.holdings_a and self.deposits_b == self.holdings_b
