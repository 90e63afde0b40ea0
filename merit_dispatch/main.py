"""CLI entrypoint for running a merit-order scenario.

Execution flow
--------------
1.  Load & validate scenario JSON.
2.  Load profiles and build participants into a merit order.
3.  Run the configured calculator.
4.  Write output CSVs.
5.  Print summary to stdout.

Usage
-----
    python -m merit_dispatch.main --scenario scenarios/base.json
    python -m merit_dispatch.main --scenario base.json --calculator averaging --chunk-size 4
    python -m merit_dispatch.main --scenario base.json --dry-run
    python -m merit_dispatch.main --scenario base.json -v
"""

from __future__ import annotations

import argparse
import json
import logging
import math
import sys
from pathlib import Path

import jsonschema
import numpy as np

from merit_dispatch.config.defaults import (
    CALCULATOR_AVERAGING,
    CALCULATOR_DEFAULT,
    CALCULATOR_QUANTIZING,
    HOURS_PER_POINT,
)
from merit_dispatch.config.loader import build_scenario_order, load_scenario
from merit_dispatch.core.errors import MeritError
from merit_dispatch.dispatch.calculator import build_calculator
from merit_dispatch.dispatch.order import Order
from merit_dispatch.output.csv_writer import (
    write_load_curves_csv,
    write_price_curve_csv,
    write_summary_csv,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI argument parsing
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    p = argparse.ArgumentParser(
        prog="python -m merit_dispatch.main",
        description="Merit-order dispatch calculator",
    )
    p.add_argument(
        "--scenario",
        required=True,
        metavar="PATH",
        help="Path to scenario JSON file.",
    )
    p.add_argument(
        "--output",
        metavar="DIR",
        default=None,
        help="Output directory (overrides scenario JSON setting).",
    )
    p.add_argument(
        "--calculator",
        choices=[CALCULATOR_DEFAULT, CALCULATOR_QUANTIZING, CALCULATOR_AVERAGING],
        default=None,
        help="Calculator to use (overrides scenario JSON setting).",
    )
    p.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        metavar="K",
        help="Chunk size for the quantizing and averaging calculators.",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable DEBUG logging.",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Validate JSON and build participants, then exit without calculating.",
    )
    return p


def run(args: argparse.Namespace) -> int:
    """Execute the full scenario run.

    Parameters
    ----------
    args:
        Parsed CLI arguments.

    Returns
    -------
    int
        Exit code (0 = success, 1 = error).
    """
    # ------------------------------------------------------------------
    # Step 1: Load & validate scenario JSON
    # ------------------------------------------------------------------
    logger.info("Loading scenario: %s", args.scenario)
    try:
        scenario = load_scenario(args.scenario)
    except (FileNotFoundError, json.JSONDecodeError, jsonschema.ValidationError, ValueError) as exc:
        logger.error("Failed to load scenario: %s", exc)
        return 1

    # ------------------------------------------------------------------
    # Step 2: Build participants and calculator
    # ------------------------------------------------------------------
    calculator_name = args.calculator or scenario.calculator
    chunk_size = args.chunk_size if args.chunk_size is not None else scenario.chunk_size
    try:
        order = build_scenario_order(scenario)
        calculator = build_calculator(calculator_name, chunk_size)
    except (FileNotFoundError, ValueError, MeritError) as exc:
        logger.error("Failed to build scenario '%s': %s", scenario.name, exc)
        return 1

    if args.dry_run:
        print(
            f"Dry run: scenario '{scenario.name}' validated successfully "
            f"({len(order.producers)} producers, {len(order.users)} users)."
        )
        return 0

    # ------------------------------------------------------------------
    # Step 3: Calculate
    # ------------------------------------------------------------------
    try:
        order.calculate(calculator)
    except MeritError as exc:
        logger.error("Calculation of scenario '%s' failed: %s", scenario.name, exc)
        return 1

    logger.info(
        "Calculated scenario '%s' with %s over %d points",
        scenario.name,
        calculator_name,
        order.points,
    )

    # ------------------------------------------------------------------
    # Step 4: Write output CSVs
    # ------------------------------------------------------------------
    output_base = Path(args.output) if args.output else Path(scenario.output_directory)
    output_dir = output_base / scenario.name
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Output directory: %s", output_dir)

    write_load_curves_csv(output_dir / f"{scenario.name}_load_curves.csv", order)
    write_price_curve_csv(output_dir / f"{scenario.name}_price_curve.csv", order)
    write_summary_csv(output_dir / f"{scenario.name}_summary.csv", order)

    # ------------------------------------------------------------------
    # Step 5: Print summary
    # ------------------------------------------------------------------
    _print_summary(scenario.name, calculator_name, order)

    return 0


def _print_summary(scenario_name: str, calculator_name: str, order: Order) -> None:
    """Print a concise result summary to stdout."""
    prices = order.price_curve.to_array()
    priced = prices[~np.isnan(prices)]
    unmet = order.points - len(priced)

    print()
    print("=" * 60)
    print(f"  Scenario:   {scenario_name}")
    print(f"  Calculator: {calculator_name}")
    print("=" * 60)
    print(f"  Points:                {order.points}")
    print(f"  Total demand:          {order.demand_curve().sum() * HOURS_PER_POINT:,.1f} MWh")
    if len(priced):
        print(f"  Mean price:            {priced.mean():.2f} EUR/MWh")
        print(f"  Max price:             {priced.max():.2f} EUR/MWh")
    if unmet:
        print(f"  Points without price:  {unmet}")
    print()
    for producer in order.producers:
        energy = producer.load_curve.sum() * HOURS_PER_POINT
        if not math.isclose(energy, 0.0, abs_tol=1e-9):
            print(f"  {producer.key:<24} {energy:>14,.1f} MWh")
    print("=" * 60)
    print()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Parse CLI arguments and run the scenario."""
    parser = _build_parser()
    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    sys.exit(run(args))


if __name__ == "__main__":
    main()
