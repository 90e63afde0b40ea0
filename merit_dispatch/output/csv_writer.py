"""Write calculated merit orders to CSV files.

Three output files are produced per scenario run:

1. ``{name}_load_curves.csv``  – One row per point, one column per participant.
2. ``{name}_price_curve.csv``  – One row per point: price setter and price.
3. ``{name}_summary.csv``      – One row per participant: energy and peak load.

Loads are in MW, energy in MWh, prices in EUR/MWh.  Points without a price
setter have an empty ``price_setter`` and ``price``.

Public API
----------
write_load_curves_csv  – Write every participant's load curve.
write_price_curve_csv  – Write the price-setting producer and price per point.
write_summary_csv      – Write per-participant totals.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path

import pandas as pd

from merit_dispatch.config.defaults import CSV_DELIMITER, FLOAT_PRECISION, HOURS_PER_POINT
from merit_dispatch.dispatch.order import Order
from merit_dispatch.output.formatting import fmt_float, fmt_price

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Load curves CSV
# ---------------------------------------------------------------------------


def load_curves_frame(order: Order) -> pd.DataFrame:
    """Return every participant's load curve as a DataFrame indexed by point."""
    frame = pd.DataFrame(
        {participant.key: participant.load_curve.values for participant in order.participants}
    )
    frame.index.name = "point"
    return frame


def write_load_curves_csv(path: Path | str, order: Order) -> None:
    """Write one column per participant and one row per point.

    Parameters
    ----------
    path:
        Destination file path.
    order:
        A calculated order.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    load_curves_frame(order).to_csv(
        path,
        sep=CSV_DELIMITER,
        float_format=f"%.{FLOAT_PRECISION}f",
    )
    logger.info("Wrote load curves CSV (%d points): %s", order.points, path)


# ---------------------------------------------------------------------------
# Price curve CSV
# ---------------------------------------------------------------------------


def write_price_curve_csv(path: Path | str, order: Order) -> None:
    """Write the price-setting producer and its price for every point.

    Raises
    ------
    ValueError
        When *order* has not been calculated.
    """
    price_curve = _require_price_curve(order)

    rows = []
    for point in range(order.points):
        producer = price_curve.producer_at(point)
        rows.append({
            "point": str(point),
            "price_setter": producer.key if producer is not None else "",
            "price_eur_per_mwh": fmt_price(price_curve.price_at(point)),
        })

    _write_dicts(path, rows)
    logger.info("Wrote price curve CSV (%d points): %s", order.points, path)


# ---------------------------------------------------------------------------
# Summary CSV
# ---------------------------------------------------------------------------


def write_summary_csv(path: Path | str, order: Order) -> None:
    """Write one row per participant with energy, peak load and price-setting hours."""
    price_curve = _require_price_curve(order)

    setting_counts: dict[str, int] = {}
    for point in range(order.points):
        producer = price_curve.producer_at(point)
        if producer is not None:
            setting_counts[producer.key] = setting_counts.get(producer.key, 0) + 1

    rows = []
    for participant in order.participants:
        curve = participant.load_curve
        rows.append({
            "key": participant.key,
            "type": type(participant).__name__,
            "energy_mwh": fmt_float(curve.sum() * HOURS_PER_POINT),
            "peak_load_mw": fmt_float(curve.max()),
            "price_setting_points": str(setting_counts.get(participant.key, 0)),
        })

    _write_dicts(path, rows)
    logger.info("Wrote summary CSV (%d participants): %s", len(rows), path)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _require_price_curve(order: Order):
    if order.price_curve is None:
        raise ValueError("The order has not been calculated; run a calculator first.")
    return order.price_curve


def _write_dicts(path: Path | str, rows: list[dict]) -> None:
    """Write a list of dicts to a CSV file, creating parent directories.

    Parameters
    ----------
    path:
        Destination file path.
    rows:
        List of row dicts.  All dicts must have the same keys; the first
        dict determines the column order.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if not rows:
        path.write_text("", encoding="utf-8")
        return

    fieldnames = list(rows[0].keys())
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=fieldnames, delimiter=CSV_DELIMITER)
        writer.writeheader()
        writer.writerows(rows)
