"""Data models for the two-pool escrow.

The ledger, the scenario runner and the settlement log tooling all import
from models.
"""

from models.config import AccountConfig, EscrowConfig, PriceFeedConfig, ScenarioConfig
from models.events import ClaimRecorded, DepositRecorded, LedgerEvent, OutcomeResolved
from models.ledger import ClaimQuote, ConservationReport, LedgerSnapshot, StakeEntry
from models.log import SettlementLog
from models.outcome import Outcome, Pool, Resolved, Unresolved
from models.scenario import OperationResult, ScenarioStep

__all__ = [
    # config
    "AccountConfig",
    "EscrowConfig",
    "PriceFeedConfig",
    "ScenarioConfig",
    # events
    "ClaimRecorded",
    "DepositRecorded",
    "LedgerEvent",
    "OutcomeResolved",
    # ledger
    "ClaimQuote",
    "ConservationReport",
    "LedgerSnapshot",
    "StakeEntry",
    # log
    "SettlementLog",
    # outcome
    "Outcome",
    "Pool",
    "Resolved",
    "Unresolved",
    # scenario
    "OperationResult",
    "ScenarioStep",
]
