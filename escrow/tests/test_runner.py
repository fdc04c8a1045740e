"""
Tests for scenario loading, replay, settlement log output and validation.

Uses config/example.yaml: pool A (WETH) 300 vs pool B (USDC) 100, the price
settles below the threshold so pool B wins.
"""

import json
from pathlib import Path

import pytest
import yaml
from jsonschema.exceptions import ValidationError
from pydantic import ValidationError as PydanticValidationError

import run_escrow
from escrow.runner import ScenarioRunner
from escrow.settlement_logging import (
    SettlementLogger,
    build_summary,
    run_name_from_config_path,
)
from escrow.validate_log import load_schema, validate_file, validate_semantics
from models.config import EscrowConfig, ScenarioConfig
from models.outcome import Pool
from models.scenario import ScenarioStep

EXAMPLE_CONFIG = Path(__file__).resolve().parents[2] / "config" / "example.yaml"


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def example_config() -> ScenarioConfig:
    return ScenarioConfig.from_yaml(EXAMPLE_CONFIG)


@pytest.fixture
def example_log(example_config):
    return ScenarioRunner(example_config, run_name="example").run()


def _minimal_raw(**overrides) -> dict:
    raw = {
        "escrow": {
            "asset_a": "WETH",
            "asset_b": "USDC",
            "capacity_a": 100,
            "capacity_b": 100,
            "deadline": 50,
            "threshold": 10,
            "price_decimals": 0,
        },
        "accounts": {"alice": {"balances": {"WETH": 10}}},
        "price_feed": {"value": 11, "decimals": 0},
        "steps": [],
    }
    raw.update(overrides)
    return raw


# =============================================================================
# 1. CONFIG LOADING
# =============================================================================


class TestConfig:
    def test_example_loads(self, example_config):
        assert example_config.escrow.asset_a == "WETH"
        assert example_config.escrow.threshold_decimal == 2000
        assert len(example_config.steps) == 14
        assert example_config.accounts["bob"].approve_escrow is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ScenarioConfig.from_yaml(tmp_path / "nope.yaml")

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ValueError):
            ScenarioConfig.from_yaml(path)

    def test_identical_assets_rejected(self):
        with pytest.raises(PydanticValidationError):
            EscrowConfig(
                asset_a="USDC",
                asset_b="USDC",
                capacity_a=1,
                capacity_b=1,
                deadline=0,
                threshold=0,
            )

    def test_non_positive_capacity_rejected(self):
        with pytest.raises(PydanticValidationError):
            EscrowConfig(
                asset_a="A", asset_b="B", capacity_a=0, capacity_b=1, deadline=0, threshold=0
            )

    def test_escrow_address_cannot_be_an_account(self):
        raw = _minimal_raw(accounts={"escrow": {"balances": {"WETH": 1}}})
        with pytest.raises(PydanticValidationError):
            ScenarioConfig(**raw)

    def test_config_is_frozen(self, example_config):
        with pytest.raises(PydanticValidationError):
            example_config.escrow.threshold = 0

    def test_deposit_step_requires_amount(self):
        with pytest.raises(PydanticValidationError):
            ScenarioStep(op="deposit_a", caller="alice")

    def test_set_price_step_requires_price(self):
        with pytest.raises(PydanticValidationError):
            ScenarioStep(op="set_price")

    def test_claim_step_requires_caller(self):
        with pytest.raises(PydanticValidationError):
            ScenarioStep(op="claim_b")


# =============================================================================
# 2. SCENARIO REPLAY
# =============================================================================


class TestScenarioRunner:
    def test_step_statuses(self, example_log):
        statuses = [(r.op, r.status, r.error_code) for r in example_log.results]
        assert statuses == [
            ("deposit_a", "accepted", None),
            ("deposit_a", "accepted", None),
            ("deposit_b", "accepted", None),
            ("deposit_b", "accepted", None),
            ("resolve", "rejected", "deadline_not_reached"),
            ("set_price", "accepted", None),
            ("resolve", "accepted", None),
            ("resolve", "rejected", "already_resolved"),
            ("deposit_a", "rejected", "deposits_closed"),
            ("claim_a", "accepted", None),
            ("claim_b", "accepted", None),
            ("claim_b", "rejected", "nothing_to_claim"),
            ("claim_b", "accepted", None),
            ("claim_a", "accepted", None),
        ]

    def test_resolution_uses_updated_price(self, example_log):
        resolution = example_log.results[6].event
        assert resolution.price == 195000000000
        assert resolution.winning_pool is Pool.B
        assert resolution.caller == "dave"

    def test_payouts(self, example_log):
        dave = example_log.results[10].event
        bob = example_log.results[12].event
        assert (dave.stake_returned, dave.payout) == (40, 120)
        assert (bob.stake_returned, bob.payout) == (60, 180)
        assert example_log.results[9].event.payout == 0

    def test_final_balances_and_conservation(self, example_log):
        assert example_log.balances == {
            "bob": {"USDC": 60, "WETH": 180},
            "dave": {"USDC": 40, "WETH": 120},
        }
        assert example_log.conservation.holds
        assert example_log.final_snapshot.deposits_a == 0
        assert example_log.final_snapshot.deposits_b == 0
        assert example_log.final_snapshot.stakes == []
        assert example_log.errors == []

    def test_clock_moving_backwards_is_recorded_as_error(self):
        raw = _minimal_raw(
            steps=[
                {"op": "deposit_a", "caller": "alice", "amount": 5, "at": 20},
                {"op": "deposit_a", "caller": "alice", "amount": 5, "at": 10},
            ]
        )
        log = ScenarioRunner(ScenarioConfig(**raw)).run()
        assert len(log.results) == 1
        assert len(log.errors) == 1
        assert "backwards" in log.errors[0]

    def test_unapproved_account_rejected_with_transfer_code(self):
        raw = _minimal_raw(
            accounts={"alice": {"balances": {"WETH": 10}, "approve_escrow": False}},
            steps=[{"op": "deposit_a", "caller": "alice", "amount": 5}],
        )
        runner = ScenarioRunner(ScenarioConfig(**raw))
        log = runner.run()
        assert log.results[0].error_code == "insufficient_allowance"
        assert runner.bank.balance_of("WETH", "alice") == 10

    def test_summary(self, example_log):
        summary = build_summary(example_log)
        assert summary["winning_pool"] == "B"
        assert summary["total_payout"] == 300
        assert summary["claims"] == 4
        assert summary["rejections_by_code"] == {
            "deadline_not_reached": 1,
            "already_resolved": 1,
            "deposits_closed": 1,
            "nothing_to_claim": 1,
        }
        assert summary["conservation_holds"] is True


# =============================================================================
# 3. OUTPUT AND VALIDATION
# =============================================================================


class TestSettlementOutput:
    def test_run_name_from_path(self):
        assert run_name_from_config_path("config/example.yaml") == "example"

    def test_writes_run_directory(self, tmp_path, example_log):
        writer = SettlementLogger(tmp_path, "example")
        writer.init_run(EXAMPLE_CONFIG)
        writer.write(example_log)

        run_dir = tmp_path / "example"
        assert writer.run_dir == run_dir
        for name in ("config.yaml", "settlement_log.json", "events.json", "summary.json"):
            assert (run_dir / name).exists()
        events = json.loads((run_dir / "events.json").read_text(encoding="utf-8"))
        assert [e["kind"] for e in events].count("resolution") == 1
        assert yaml.safe_load((run_dir / "config.yaml").read_text(encoding="utf-8"))["escrow"]

    def test_existing_run_dir_not_overwritten(self, tmp_path):
        (tmp_path / "example").mkdir()
        writer = SettlementLogger(tmp_path, "example")
        assert writer.run_dir == tmp_path / "example_001"

    def test_written_log_validates(self, tmp_path, example_log):
        writer = SettlementLogger(tmp_path, "example")
        writer.init_run()
        writer.write(example_log)
        validate_file(writer.run_dir / "settlement_log.json", load_schema())

    def test_schema_rejects_missing_fields(self, tmp_path, example_log):
        doc = example_log.model_dump(mode="json")
        del doc["events"]
        path = tmp_path / "broken.json"
        path.write_text(json.dumps(doc), encoding="utf-8")
        with pytest.raises(ValidationError):
            validate_file(path, load_schema())

    def test_semantics_reject_second_resolution(self, example_log):
        doc = example_log.model_dump(mode="json")
        resolution = next(e for e in doc["events"] if e["kind"] == "resolution")
        doc["events"].append(dict(resolution, sequence=len(doc["events"])))
        with pytest.raises(ValueError, match="resolution events"):
            validate_semantics(doc, Path("doc.json"))

    def test_semantics_reject_double_claim(self, example_log):
        doc = example_log.model_dump(mode="json")
        claim = next(e for e in doc["events"] if e["kind"] == "claim" and e["won"])
        doc["events"].append(dict(claim, sequence=len(doc["events"])))
        with pytest.raises(ValueError, match="more than once"):
            validate_semantics(doc, Path("doc.json"))

    def test_semantics_reject_broken_conservation(self, example_log):
        doc = example_log.model_dump(mode="json")
        doc["conservation"]["holds"] = False
        with pytest.raises(ValueError, match="holdings"):
            validate_semantics(doc, Path("doc.json"))


# =============================================================================
# 4. CLI
# =============================================================================


class TestCli:
    def test_main_runs_example(self, tmp_path):
        code = run_escrow.main(
            ["--config", str(EXAMPLE_CONFIG), "--output-dir", str(tmp_path), "--validate"]
        )
        assert code == 0
        summary = json.loads((tmp_path / "example" / "summary.json").read_text(encoding="utf-8"))
        assert summary["winning_pool"] == "B"
        assert summary["final_deposits_a"] == 0
