"""Settlement audit models.

- ``SettlementLog`` — run-level log with embedded config for reproducibility.
"""

from __future__ import annotations

from pydantic import BaseModel

from models.config import ScenarioConfig
from models.events import LedgerEvent
from models.ledger import ConservationReport, LedgerSnapshot
from models.scenario import OperationResult


class SettlementLog(BaseModel):
    """Full audit trail of one scripted escrow run.

    ``run_name`` is derived from the configuration file path by the runner.
    ``balances`` maps account -> asset -> amount after the last step, the
    escrow's own account included.
    """

    run_name: str
    config: ScenarioConfig
    results: list[OperationResult] = []
    events: list[LedgerEvent] = []
    final_snapshot: LedgerSnapshot | None = None
    balances: dict[str, dict[str, int]] = {}
    conservation: ConservationReport | None = None
    errors: list[str] = []
