"""Number formatting helpers for output CSVs and stdout.

All functions return strings suitable for writing to CSV files or printing
to the terminal. None and NaN values are represented as an empty string.

Public API
----------
fmt_float    – Format a float with configurable decimal places.
fmt_price    – Format a price in EUR/MWh.
"""

from __future__ import annotations

import math

from merit_dispatch.config.defaults import FLOAT_PRECISION, PRICE_PRECISION


def fmt_float(
    value: float | None,
    precision: int = FLOAT_PRECISION,
) -> str:
    """Format a float to a fixed number of decimal places.

    Parameters
    ----------
    value:
        The value to format. None and NaN are returned as an empty string.
    precision:
        Number of decimal places.

    Returns
    -------
    str
        Formatted string, e.g. ``"3.141593"``.
    """
    if value is None or math.isnan(value):
        return ""
    return f"{value:.{precision}f}"


def fmt_price(
    value: float | None,
    precision: int = PRICE_PRECISION,
) -> str:
    """Format a price in EUR/MWh (default 2 decimals)."""
    return fmt_float(value, precision=precision)
