"""Escrow ledger: deposit bookkeeping, the outcome latch and settlement.

The ledger owns both pool totals, the per-caller stakes and the outcome
latch.  Every public operation is all-or-nothing: checks run first, new
totals are computed on local copies, transfers run inside an asset bank
transaction, and ledger fields are only assigned once every transfer has
succeeded.
"""

from __future__ import annotations

import logging

from escrow.assets import AssetBank
from escrow.clock import Clock
from escrow.errors import (
    AlreadyResolvedError,
    CapacityExceededError,
    DeadlineNotReachedError,
    DepositsClosedError,
    NothingToClaimError,
    NotResolvedError,
    PriceFeedError,
    ZeroAmountError,
)
from escrow.oracle import PriceFeed
from models.config import EscrowConfig
from models.events import ClaimRecorded, DepositRecorded, LedgerEvent, OutcomeResolved
from models.ledger import ClaimQuote, ConservationReport, LedgerSnapshot, StakeEntry
from models.outcome import Outcome, Pool, Resolved, Unresolved

logger = logging.getLogger(__name__)


class EscrowLedger:
    """Two-pool escrow settled by a single post-deadline price observation.

    Pool A wins when the resolved price is at or above ``config.threshold``;
    pool B wins when it is below.  Winners get their stake back plus a
    floor-rounded share of the losing pool, computed against the pool totals
    current at claim time.  Losers forfeit their stake.

    There is no administrator: any caller may deposit, resolve, or claim.
    """

    def __init__(
        self,
        config: EscrowConfig,
        bank: AssetBank,
        price_feed: PriceFeed,
        clock: Clock,
    ) -> None:
        self._config = config
        self._bank = bank
        self._price_feed = price_feed
        self._clock = clock
        self._totals: dict[Pool, int] = {Pool.A: 0, Pool.B: 0}
        self._stakes: dict[tuple[str, Pool], int] = {}
        self._outcome: Outcome = Unresolved()
        self._events: list[LedgerEvent] = []

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def config(self) -> EscrowConfig:
        return self._config

    @property
    def outcome(self) -> Outcome:
        return self._outcome

    @property
    def is_resolved(self) -> bool:
        return isinstance(self._outcome, Resolved)

    def deposit_a(self, caller: str, amount: int) -> DepositRecorded:
        return self._deposit(caller, Pool.A, amount)

    def deposit_b(self, caller: str, amount: int) -> DepositRecorded:
        return self._deposit(caller, Pool.B, amount)

    def resolve_outcome(self, caller: str) -> OutcomeResolved:
        """Latch the feed's current price as the permanent outcome.

        Allowed once, at or after the deadline.  The feed is consulted exactly
        once per successful call; later calls fail without touching it.
        """
        now = self._clock.now()
        if now < self._config.deadline:
            raise DeadlineNotReachedError(
                f"Resolution opens at {self._config.deadline}, current time is {now}."
            )
        if isinstance(self._outcome, Resolved):
            raise AlreadyResolvedError(
                f"Outcome already resolved at price {self._outcome.price} "
                f"by {self._outcome.resolved_by}."
            )

        quote = self._price_feed.latest_price()
        if quote.decimals != self._config.price_decimals:
            raise PriceFeedError(
                f"Feed reports {quote.decimals} decimals, escrow is configured "
                f"for {self._config.price_decimals}."
            )

        self._outcome = Resolved(
            price=quote.value,
            decimals=quote.decimals,
            round_id=quote.round_id,
            updated_at=quote.updated_at,
            resolved_at=now,
            resolved_by=caller,
        )
        event = OutcomeResolved(
            sequence=len(self._events),
            timestamp=now,
            caller=caller,
            price=quote.value,
            decimals=quote.decimals,
            round_id=quote.round_id,
            winning_pool=self._winner_for(quote.value),
        )
        self._events.append(event)
        logger.info(
            "Outcome resolved by %s at price %d (threshold %d): pool %s wins.",
            caller,
            quote.value,
            self._config.threshold,
            event.winning_pool.value,
        )
        return event

    def claim_a(self, caller: str) -> ClaimRecorded:
        """Settle *caller*'s pool A stake; winnings are paid in asset B."""
        return self._claim(caller, Pool.A)

    def claim_b(self, caller: str) -> ClaimRecorded:
        """Settle *caller*'s pool B stake; winnings are paid in asset A."""
        return self._claim(caller, Pool.B)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def pool_total(self, pool: Pool) -> int:
        return self._totals[pool]

    def stake_of(self, caller: str, pool: Pool) -> int:
        return self._stakes.get((caller, pool), 0)

    def winning_pool(self) -> Pool | None:
        """Return the winning pool, or ``None`` before resolution."""
        if isinstance(self._outcome, Resolved):
            return self._winner_for(self._outcome.price)
        return None

    def quote_claim(self, caller: str, pool: Pool) -> ClaimQuote:
        """Preview what a claim would pay now, raising what the claim would raise."""
        stake, won, share = self._settlement(caller, pool)
        return ClaimQuote(
            caller=caller,
            pool=pool,
            stake=stake,
            won=won,
            stake_returned=stake if won else 0,
            payout=share,
            payout_asset=self._config.asset_for(pool.opposite),
        )

    def snapshot(self) -> LedgerSnapshot:
        """Return a snapshot of the current ledger state."""
        return LedgerSnapshot(
            deposits_a=self._totals[Pool.A],
            deposits_b=self._totals[Pool.B],
            stakes=[
                StakeEntry(caller=caller, pool=pool, amount=amount)
                for (caller, pool), amount in sorted(self._stakes.items())
            ],
            outcome=self._outcome,
            event_count=len(self._events),
        )

    def get_events(self) -> list[LedgerEvent]:
        """Return the full list of recorded events so far."""
        return list(self._events)

    def check_conservation(self) -> ConservationReport:
        """Compare pool totals with what the escrow account actually holds."""
        address = self._config.escrow_address
        return ConservationReport(
            deposits_a=self._totals[Pool.A],
            deposits_b=self._totals[Pool.B],
            holdings_a=self._bank.balance_of(self._config.asset_a, address),
            holdings_b=self._bank.balance_of(self._config.asset_b, address),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _deposit(self, caller: str, pool: Pool, amount: int) -> DepositRecorded:
        if amount <= 0:
            raise ZeroAmountError(f"Deposit amount must be positive, got {amount}.")

        new_total = self._totals[pool] + amount
        capacity = self._config.capacity_for(pool)
        if new_total > capacity:
            raise CapacityExceededError(
                f"Deposit of {amount} would bring pool {pool.value} to {new_total}, "
                f"over its capacity of {capacity}."
            )

        if isinstance(self._outcome, Resolved):
            raise DepositsClosedError("Deposits are closed once the outcome is resolved.")

        asset = self._config.asset_for(pool)
        new_stake = self.stake_of(caller, pool) + amount
        address = self._config.escrow_address
        self._bank.transfer_from(asset, address, caller, address, amount)

        # Commit.
        self._totals[pool] = new_total
        self._stakes[(caller, pool)] = new_stake

        event = DepositRecorded(
            sequence=len(self._events),
            timestamp=self._clock.now(),
            caller=caller,
            pool=pool,
            asset=asset,
            amount=amount,
            stake=new_stake,
            pool_total=new_total,
        )
        self._events.append(event)
        logger.info(
            "Deposit: %s staked %d %s in pool %s (pool total %d/%d).",
            caller,
            amount,
            asset,
            pool.value,
            new_total,
            capacity,
        )
        return event

    def _claim(self, caller: str, pool: Pool) -> ClaimRecorded:
        stake, won, share = self._settlement(caller, pool)
        opposing = pool.opposite
        own_asset = self._config.asset_for(pool)
        payout_asset = self._config.asset_for(opposing)

        totals = dict(self._totals)
        if won:
            totals[opposing] -= share
            totals[pool] -= stake
            address = self._config.escrow_address
            with self._bank.transaction():
                if stake:
                    self._bank.transfer(own_asset, address, caller, stake)
                if share:
                    self._bank.transfer(payout_asset, address, caller, share)

        # Commit.
        del self._stakes[(caller, pool)]
        self._totals = totals

        event = ClaimRecorded(
            sequence=len(self._events),
            timestamp=self._clock.now(),
            caller=caller,
            pool=pool,
            stake=stake,
            won=won,
            stake_returned=stake if won else 0,
            payout=share,
            payout_asset=payout_asset,
        )
        self._events.append(event)
        if won:
            logger.info(
                "Claim: %s (pool %s) received stake %d %s plus %d %s.",
                caller,
                pool.value,
                stake,
                own_asset,
                share,
                payout_asset,
            )
        else:
            logger.info(
                "Claim: %s (pool %s) forfeited stake %d %s.",
                caller,
                pool.value,
                stake,
                own_asset,
            )
        return event

    def _settlement(self, caller: str, pool: Pool) -> tuple[int, bool, int]:
        """Return ``(stake, won, opposing_share)`` for a claim made now."""
        if not isinstance(self._outcome, Resolved):
            raise NotResolvedError("Claims open once the outcome is resolved.")

        stake = self.stake_of(caller, pool)
        if stake == 0:
            raise NothingToClaimError(f"{caller} has no stake in pool {pool.value}.")

        won = self._winner_for(self._outcome.price) is pool
        if not won:
            return stake, False, 0

        # Floor division: the sum of all shares never exceeds the opposing pool.
        share = self._totals[pool.opposite] * stake // self._totals[pool]
        return stake, True, share

    def _winner_for(self, price: int) -> Pool:
        return Pool.A if price >= self._config.threshold else Pool.B
