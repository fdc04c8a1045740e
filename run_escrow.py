#!/usr/bin/env python3
"""CLI entrypoint for replaying an escrow scenario.

Usage::

    python run_escrow.py --config config/example.yaml
    python run_escrow.py --config config/example.yaml --output-dir results/ --validate

The runner loads a YAML scenario, builds the escrow ledger with an in-memory
asset bank, price feed and clock, replays every step, and writes the
settlement log.  The run name is derived automatically from the config file
name (e.g. ``example.yaml`` -> ``example``).

``ESCROW_OUTPUT_DIR`` and ``ESCROW_LOG_LEVEL`` (environment or ``.env``)
override the defaults of ``--output-dir`` and ``--log-level``.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from escrow.runner import ScenarioRunner
from escrow.settlement_logging import SettlementLogger, run_name_from_config_path
from escrow.validate_log import load_schema, validate_file
from models.config import ScenarioConfig


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Replay a two-pool escrow scenario and write its settlement log.",
    )
    parser.add_argument(
        "--config",
        required=True,
        type=str,
        help="Path to the YAML scenario file.",
    )
    parser.add_argument(
        "--output-dir",
        default=os.environ.get("ESCROW_OUTPUT_DIR", "results"),
        type=str,
        help="Directory where settlement results will be written (default: results/).",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("ESCROW_LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO).",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the written settlement log against its JSON schema.",
    )
    return parser.parse_args(argv)


def _setup_logging(level: str) -> None:
    """Configure root logger with a clean format."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def main(argv: list[str] | None = None) -> int:
    load_dotenv()  # auto-load .env file if present
    args = _parse_args(argv)
    _setup_logging(args.log_level)

    logger = logging.getLogger(__name__)
    logger.info("Loading scenario from '%s'...", args.config)

    config = ScenarioConfig.from_yaml(args.config)
    run_name = run_name_from_config_path(args.config)

    settlement_logger = SettlementLogger(args.output_dir, run_name)
    settlement_logger.init_run(args.config)

    settlement_log = ScenarioRunner(config, run_name=run_name).run()
    summary = settlement_logger.write(settlement_log)
    logger.info(
        "Winning pool: %s, total payout: %d, conservation holds: %s",
        summary["winning_pool"],
        summary["total_payout"],
        summary["conservation_holds"],
    )

    if args.validate:
        validate_file(settlement_logger.run_dir / "settlement_log.json", load_schema())

    return 0 if summary["conservation_holds"] and not summary["errors"] else 1


if __name__ == "__main__":
    sys.exit(main())
