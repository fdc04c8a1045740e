"""Scripted operations and their results: ScenarioStep, OperationResult."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from models.events import LedgerEvent

StepOp = Literal["deposit_a", "deposit_b", "resolve", "claim_a", "claim_b", "set_price"]


class ScenarioStep(BaseModel):
    """Single scripted operation against the ledger.

    ``at`` moves the clock forward before the step runs.  ``set_price``
    changes the feed quote and is not a ledger operation.
    """

    op: StepOp
    caller: str | None = None
    amount: int | None = None
    price: int | None = None
    at: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _required_fields(self) -> ScenarioStep:
        if self.op in ("deposit_a", "deposit_b") and self.amount is None:
            raise ValueError(f"Step '{self.op}' requires 'amount'.")
        if self.op == "set_price":
            if self.price is None:
                raise ValueError("Step 'set_price' requires 'price'.")
        elif self.caller is None:
            raise ValueError(f"Step '{self.op}' requires 'caller'.")
        return self


class OperationResult(BaseModel):
    """Outcome of one scripted step.

    Each step is all-or-nothing: either it was accepted and ``event`` carries
    the resulting observation, or it was rejected and ``error_code`` and
    ``message`` explain why.  ``set_price`` steps are accepted with no event.
    """

    step_index: int
    op: StepOp
    caller: str | None = None
    timestamp: int
    status: Literal["accepted", "rejected"]
    event: LedgerEvent | None = None
    error_code: str | None = None
    message: str = ""
