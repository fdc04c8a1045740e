"""In-memory fungible asset bank: balances, allowances and transfers.

The bank stands in for the host's asset transfer primitive.  Transfers either
move the full amount or raise a ``TransferError``; they never truncate.
``transaction()`` groups several transfers so that a failure part way through
restores every balance and allowance touched inside the block.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from escrow.errors import InsufficientAllowanceError, InsufficientBalanceError

logger = logging.getLogger(__name__)


class AssetBank:
    """Balances keyed by (asset, holder) and allowances by (asset, owner, spender)."""

    def __init__(self) -> None:
        self._balances: dict[tuple[str, str], int] = {}
        self._allowances: dict[tuple[str, str, str], int] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def balance_of(self, asset: str, holder: str) -> int:
        return self._balances.get((asset, holder), 0)

    def allowance(self, asset: str, owner: str, spender: str) -> int:
        return self._allowances.get((asset, owner, spender), 0)

    def balances(self) -> dict[str, dict[str, int]]:
        """Return holder -> asset -> amount for every non-zero balance."""
        out: dict[str, dict[str, int]] = {}
        for (asset, holder), amount in sorted(self._balances.items()):
            if amount:
                out.setdefault(holder, {})[asset] = amount
        return out

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mint(self, asset: str, holder: str, amount: int) -> None:
        """Create *amount* units of *asset* in *holder*'s account."""
        _require_non_negative(amount)
        self._balances[(asset, holder)] = self.balance_of(asset, holder) + amount

    def approve(self, asset: str, owner: str, spender: str, amount: int) -> None:
        """Set how much of *owner*'s *asset* the *spender* may pull."""
        _require_non_negative(amount)
        self._allowances[(asset, owner, spender)] = amount

    def transfer(self, asset: str, sender: str, recipient: str, amount: int) -> None:
        """Push *amount* from *sender*'s own balance to *recipient*."""
        _require_non_negative(amount)
        held = self.balance_of(asset, sender)
        if amount > held:
            raise InsufficientBalanceError(
                f"{sender} holds {held} {asset}, cannot transfer {amount}."
            )
        self._balances[(asset, sender)] = held - amount
        self._balances[(asset, recipient)] = self.balance_of(asset, recipient) + amount
        logger.debug("Transfer %d %s: %s -> %s", amount, asset, sender, recipient)

    def transfer_from(
        self,
        asset: str,
        spender: str,
        owner: str,
        recipient: str,
        amount: int,
    ) -> None:
        """Pull *amount* from *owner* to *recipient* on *spender*'s allowance."""
        _require_non_negative(amount)
        allowed = self.allowance(asset, owner, spender)
        if amount > allowed:
            raise InsufficientAllowanceError(
                f"{spender} may move {allowed} {asset} for {owner}, requested {amount}."
            )
        self.transfer(asset, owner, recipient, amount)
        self._allowances[(asset, owner, spender)] = allowed - amount

    @contextmanager
    def transaction(self) -> Iterator[AssetBank]:
        """Restore balances and allowances if the block raises."""
        balances = dict(self._balances)
        allowances = dict(self._allowances)
        try:
            yield self
        except Exception:
            self._balances = balances
            self._allowances = allowances
            logger.debug("Asset bank transaction rolled back.")
            raise


def _require_non_negative(amount: int) -> None:
    if amount < 0:
        raise ValueError(f"Transfer amount must be non-negative, got {amount}.")
