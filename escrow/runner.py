"""Scenario runner: replays a scripted sequence of operations against a ledger.

Lifecycle:
    1. Build the asset bank, price feed, clock and ledger from the config.
    2. Mint starting balances and grant escrow allowances.
    3. For each step:
        - Advance the clock if the step carries ``at``.
        - Dispatch the operation; record an accepted or rejected result.
    4. Snapshot the ledger, balances and conservation check into a log.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from escrow.assets import AssetBank
from escrow.clock import ManualClock
from escrow.errors import EscrowError
from escrow.ledger import EscrowLedger
from escrow.oracle import PriceQuote, StaticPriceFeed
from models.config import ScenarioConfig
from models.events import LedgerEvent
from models.log import SettlementLog
from models.scenario import OperationResult, ScenarioStep

logger = logging.getLogger(__name__)


class ScenarioRunner:
    """Drives one escrow through the steps of a ``ScenarioConfig``."""

    def __init__(self, config: ScenarioConfig, run_name: str = "scenario") -> None:
        self._config = config
        self._run_name = run_name
        self._bank = AssetBank()
        self._clock = ManualClock(config.start_time)
        feed = config.price_feed
        self._feed = StaticPriceFeed(
            PriceQuote(
                value=feed.value,
                decimals=feed.decimals,
                round_id=feed.round_id,
                updated_at=feed.updated_at,
            )
        )
        self._ledger = EscrowLedger(config.escrow, self._bank, self._feed, self._clock)
        self._fund_accounts()

    @property
    def ledger(self) -> EscrowLedger:
        return self._ledger

    @property
    def bank(self) -> AssetBank:
        return self._bank

    @property
    def price_feed(self) -> StaticPriceFeed:
        return self._feed

    def run(self) -> SettlementLog:
        """Execute every step and return the settlement log."""
        escrow_cfg = self._config.escrow
        logger.info(
            "Starting scenario '%s': %d step(s), threshold %s, deadline %d.",
            self._run_name,
            len(self._config.steps),
            escrow_cfg.threshold_decimal,
            escrow_cfg.deadline,
        )

        log = SettlementLog(run_name=self._run_name, config=self._config)
        for idx, step in enumerate(self._config.steps):
            try:
                result = self.execute_step(idx, step)
            except ValueError as exc:
                # Malformed script (e.g. clock moving backwards), not a ledger rejection.
                msg = f"Step {idx} ({step.op}) could not run: {exc}"
                logger.error(msg)
                log.errors.append(msg)
                continue
            log.results.append(result)

        log.events = self._ledger.get_events()
        log.final_snapshot = self._ledger.snapshot()
        log.balances = self._bank.balances()
        log.conservation = self._ledger.check_conservation()

        accepted = sum(1 for r in log.results if r.status == "accepted")
        logger.info(
            "Scenario '%s' complete: %d accepted, %d rejected, conservation %s.",
            self._run_name,
            accepted,
            len(log.results) - accepted,
            "holds" if log.conservation.holds else "VIOLATED",
        )
        return log

    def execute_step(self, step_index: int, step: ScenarioStep) -> OperationResult:
        """Run one step, converting ledger rejections into a rejected result."""
        if step.at is not None:
            self._clock.set(step.at)
        timestamp = self._clock.now()

        if step.op == "set_price":
            quote = self._feed.set_price(step.price, updated_at=timestamp)
            logger.info("Price feed updated to %d (round %s).", quote.value, quote.round_id)
            return OperationResult(
                step_index=step_index,
                op=step.op,
                timestamp=timestamp,
                status="accepted",
                message=f"Feed price set to {quote.value}.",
            )

        action = self._dispatch(step)
        try:
            event = action()
        except EscrowError as exc:
            logger.warning(
                "Step %d rejected: %s by %s: %s", step_index, step.op, step.caller, exc
            )
            return OperationResult(
                step_index=step_index,
                op=step.op,
                caller=step.caller,
                timestamp=timestamp,
                status="rejected",
                error_code=exc.code,
                message=str(exc),
            )

        return OperationResult(
            step_index=step_index,
            op=step.op,
            caller=step.caller,
            timestamp=timestamp,
            status="accepted",
            event=event,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _dispatch(self, step: ScenarioStep) -> Callable[[], LedgerEvent]:
        ledger = self._ledger
        caller = step.caller
        actions: dict[str, Callable[[], LedgerEvent]] = {
            "deposit_a": lambda: ledger.deposit_a(caller, step.amount),
            "deposit_b": lambda: ledger.deposit_b(caller, step.amount),
            "resolve": lambda: ledger.resolve_outcome(caller),
            "claim_a": lambda: ledger.claim_a(caller),
            "claim_b": lambda: ledger.claim_b(caller),
        }
        return actions[step.op]

    def _fund_accounts(self) -> None:
        escrow_address = self._config.escrow.escrow_address
        for account, account_cfg in self._config.accounts.items():
            for asset, amount in account_cfg.balances.items():
                self._bank.mint(asset, account, amount)
                if account_cfg.approve_escrow:
                    self._bank.approve(asset, account, escrow_address, amount)
            logger.debug("Funded %s with %s.", account, account_cfg.balances)
