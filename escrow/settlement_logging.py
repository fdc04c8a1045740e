"""Settlement output logging: persists the SettlementLog, events and a summary.

The output directory structure is::

    {output_dir}/{run_name}/
    ├── config.yaml
    ├── settlement_log.json
    ├── events.json
    └── summary.json
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any

from models.log import SettlementLog

logger = logging.getLogger(__name__)


def run_name_from_config_path(config_path: str | Path) -> str:
    """Derive a run name from the configuration file path (stem without extension)."""
    return Path(config_path).stem


class SettlementLogger:
    """Manages on-disk output for one scenario run.

    Call ``init_run`` once at the start and ``write`` after the run completes.
    """

    def __init__(self, output_dir: str | Path, run_name: str) -> None:
        self._run_dir = _unique_run_dir(Path(output_dir), run_name)

    def init_run(self, config_yaml_path: str | Path | None = None) -> None:
        """Create the output directory and optionally copy the config."""
        self._run_dir.mkdir(parents=True, exist_ok=True)
        if config_yaml_path is not None:
            dest = self._run_dir / "config.yaml"
            shutil.copy2(config_yaml_path, dest)
            logger.info("Copied config to %s", dest)

    def write(self, settlement_log: SettlementLog) -> dict[str, Any]:
        """Persist the full log, the event stream and a summary; return the summary."""
        _write_json(
            self._run_dir / "settlement_log.json",
            settlement_log.model_dump(mode="json"),
        )
        _write_json(
            self._run_dir / "events.json",
            [event.model_dump(mode="json") for event in settlement_log.events],
        )
        summary = build_summary(settlement_log)
        _write_json(self._run_dir / "summary.json", summary)
        logger.info("Settlement log written to %s", self._run_dir)
        return summary

    @property
    def run_dir(self) -> Path:
        return self._run_dir


def build_summary(settlement_log: SettlementLog) -> dict[str, Any]:
    """Build a lightweight summary dict for the run."""
    snapshot = settlement_log.final_snapshot
    resolutions = [e for e in settlement_log.events if e.kind == "resolution"]
    claims = [e for e in settlement_log.events if e.kind == "claim"]
    rejected: dict[str, int] = {}
    for result in settlement_log.results:
        if result.status == "rejected" and result.error_code is not None:
            rejected[result.error_code] = rejected.get(result.error_code, 0) + 1

    return {
        "run_name": settlement_log.run_name,
        "num_steps": len(settlement_log.results),
        "rejections_by_code": rejected,
        "resolved_price": resolutions[0].price if resolutions else None,
        "winning_pool": resolutions[0].winning_pool.value if resolutions else None,
        "claims": len(claims),
        "total_payout": sum(c.payout for c in claims),
        "final_deposits_a": snapshot.deposits_a if snapshot else None,
        "final_deposits_b": snapshot.deposits_b if snapshot else None,
        "outstanding_stakes": len(snapshot.stakes) if snapshot else None,
        "conservation_holds": (
            settlement_log.conservation.holds if settlement_log.conservation else None
        ),
        "errors": list(settlement_log.errors),
    }


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _unique_run_dir(output_dir: Path, run_name: str) -> Path:
    """Return a run directory that does not already exist.

    If ``output_dir/run_name`` is free, use it directly.  Otherwise append an
    incrementing suffix: ``run_name_001``, ``run_name_002``, etc.
    """
    candidate = output_dir / run_name
    if not candidate.exists():
        return candidate

    idx = 1
    while True:
        candidate = output_dir / f"{run_name}_{idx:03d}"
        if not candidate.exists():
            return candidate
        idx += 1


def _write_json(path: Path, data: Any) -> None:
    """Write *data* as pretty-printed JSON to *path*."""
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
