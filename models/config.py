"""Escrow and scenario configuration models, loaded from YAML.

These live in ``models/`` because they are shared data contracts used by the
ledger, the scenario runner, and the settlement log tooling.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.outcome import Pool
from models.scenario import ScenarioStep


class EscrowConfig(BaseModel):
    """Construction-time constants of one escrow. Never mutated.

    ``threshold`` and the feed's reported price share one fixed-decimal unit:
    an integer ``v`` means ``v / 10**price_decimals``.
    """

    model_config = ConfigDict(frozen=True)

    asset_a: str = Field(description="Asset deposited into pool A, e.g. 'WETH'.")
    asset_b: str = Field(description="Asset deposited into pool B, e.g. 'USDC'.")
    capacity_a: int = Field(gt=0, description="Ceiling on the pool A total.")
    capacity_b: int = Field(gt=0, description="Ceiling on the pool B total.")
    deadline: int = Field(
        ge=0,
        description="Epoch seconds at or after which the outcome may be resolved.",
    )
    threshold: int = Field(
        description="Price level in feed units. Pool A wins at or above it, pool B below.",
    )
    price_decimals: int = Field(
        default=8,
        ge=0,
        le=36,
        description="Decimal precision shared by the threshold and the price feed.",
    )
    escrow_address: str = Field(
        default="escrow",
        min_length=1,
        description="Identity of the escrow's own account in the asset bank.",
    )

    @model_validator(mode="after")
    def _distinct_assets(self) -> EscrowConfig:
        if self.asset_a == self.asset_b:
            raise ValueError(
                f"asset_a and asset_b must differ, both are '{self.asset_a}'."
            )
        return self

    @property
    def threshold_decimal(self) -> Decimal:
        """Human-readable threshold, for display only."""
        return Decimal(self.threshold).scaleb(-self.price_decimals)

    def asset_for(self, pool: Pool) -> str:
        return self.asset_a if pool is Pool.A else self.asset_b

    def capacity_for(self, pool: Pool) -> int:
        return self.capacity_a if pool is Pool.A else self.capacity_b


class AccountConfig(BaseModel):
    """Starting balances for one participant in a scenario."""

    balances: dict[str, int] = Field(
        default_factory=dict,
        description="Asset -> amount minted to the account before the first step.",
    )
    approve_escrow: bool = Field(
        default=True,
        description="Grant the escrow an allowance equal to each starting balance.",
    )


class PriceFeedConfig(BaseModel):
    """Initial quote served by the scenario's price feed."""

    value: int
    decimals: int = Field(default=8, ge=0)
    round_id: int = Field(default=1, ge=0)
    updated_at: int | None = None


class ScenarioConfig(BaseModel):
    """Top-level configuration for a scripted escrow run, loaded from YAML.

    The run name is derived from the config file path at load time rather
    than being specified inside the YAML itself.
    """

    escrow: EscrowConfig = Field(description="Escrow construction constants.")
    accounts: dict[str, AccountConfig] = Field(
        default_factory=dict,
        description="Participants and their starting balances.",
    )
    price_feed: PriceFeedConfig = Field(description="Initial price feed quote.")
    start_time: int = Field(
        default=0,
        ge=0,
        description="Clock reading before the first step.",
    )
    steps: list[ScenarioStep] = Field(
        default_factory=list,
        description="Operations replayed in order against the ledger.",
    )

    @model_validator(mode="after")
    def _escrow_not_a_participant(self) -> ScenarioConfig:
        if self.escrow.escrow_address in self.accounts:
            raise ValueError(
                f"Account '{self.escrow.escrow_address}' collides with the escrow address."
            )
        return self

    @classmethod
    def from_yaml(cls, path: str | Path) -> ScenarioConfig:
        """Load and validate a ``ScenarioConfig`` from a YAML file.

        Raises ``FileNotFoundError`` if the file does not exist and
        ``ValueError`` if the content is not a valid YAML mapping.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with path.open(encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)

        if not isinstance(raw, dict):
            raise ValueError(
                f"Expected a YAML mapping in {path}, got {type(raw).__name__}."
            )

        return cls(**raw)
