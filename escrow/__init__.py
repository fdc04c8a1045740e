"""
Two-pool escrow settled by a single oracle price observation:
  - EscrowLedger: deposits, one-shot resolution, pro-rata claims
  - AssetBank / StaticPriceFeed / ManualClock: in-memory collaborators
  - ScenarioRunner: replays scripted operations and builds a settlement log
"""

from .assets import AssetBank
from .clock import ManualClock, SystemClock
from .ledger import EscrowLedger
from .oracle import PriceQuote, StaticPriceFeed
from .runner import ScenarioRunner

__all__ = [
    "AssetBank", "ManualClock", "SystemClock", "EscrowLedger",
    "PriceQuote", "StaticPriceFeed", "ScenarioRunner",
]
