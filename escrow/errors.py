"""Escrow failure taxonomy.

Every error is a permanent rejection of one call: nothing is retried inside
the ledger and no state changes survive a raised error.  ``code`` is a stable
identifier recorded in operation results and settlement logs.
"""


class EscrowError(Exception):
    """Base class for escrow failures."""

    code = "escrow_error"
    retryable = False


class ZeroAmountError(EscrowError):
    """Deposit amount was zero (or negative)."""

    code = "zero_amount"


class CapacityExceededError(EscrowError):
    """Deposit would push a pool total over its ceiling."""

    code = "capacity_exceeded"


class DepositsClosedError(EscrowError):
    """Deposit attempted after the outcome was resolved."""

    code = "deposits_closed"


class DeadlineNotReachedError(EscrowError):
    """Resolution attempted before the deadline."""

    code = "deadline_not_reached"


class AlreadyResolvedError(EscrowError):
    """Resolution attempted after it already happened."""

    code = "already_resolved"


class NotResolvedError(EscrowError):
    """Claim attempted before resolution."""

    code = "not_resolved"


class NothingToClaimError(EscrowError):
    """Caller has no outstanding stake in the pool."""

    code = "nothing_to_claim"


class PriceFeedError(EscrowError):
    """Feed returned a quote the escrow cannot interpret."""

    code = "price_feed_error"


class TransferError(EscrowError):
    """Underlying asset transfer failed."""

    code = "transfer_failed"


class InsufficientBalanceError(TransferError):
    code = "insufficient_balance"


class InsufficientAllowanceError(TransferError):
    code = "insufficient_allowance"
