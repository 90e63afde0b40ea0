"""Global default values and constants.

All numeric constants used throughout the merit_dispatch package must be defined
here rather than as inline literals. Import from this module wherever a constant
is needed to ensure a single source of truth and full traceability.
"""

# ---------------------------------------------------------------------------
# Time constants
# ---------------------------------------------------------------------------

POINTS: int = 8760
"""Number of time points in a default horizon (one per hour of a non-leap year)."""

HOURS_PER_POINT: float = 1.0
"""Duration of a single point in hours; a MWh per point equals the mean MW load."""

# ---------------------------------------------------------------------------
# Calculator defaults
# ---------------------------------------------------------------------------

DEFAULT_CHUNK_SIZE: int = 8
"""Number of points grouped together by the quantizing and averaging calculators."""

MIN_CHUNK_SIZE: int = 2
"""Smallest chunk size accepted by the chunked calculators."""

DEMAND_TOLERANCE: float = 1e-9
"""Absolute tolerance (MW) below which residual demand is treated as zero."""

EQUILIBRIUM_XTOL: float = 1e-9
"""Absolute tolerance on utilisation for the cost-curve equilibrium search."""

CALCULATOR_DEFAULT: str = "default"
"""Identifier of the exact per-point calculator."""

CALCULATOR_QUANTIZING: str = "quantizing"
"""Identifier of the step-hold chunked calculator."""

CALCULATOR_AVERAGING: str = "averaging"
"""Identifier of the mean-demand chunked calculator."""

# ---------------------------------------------------------------------------
# Participant defaults
# ---------------------------------------------------------------------------

DEFAULT_AVAILABILITY: float = 1.0
"""Availability assumed when a descriptor omits it (storage and interconnects)."""

DEFAULT_NUMBER_OF_UNITS: float = 1.0
"""Number of units assumed for interconnects and storage when omitted."""

DEFAULT_INPUT_EFFICIENCY: float = 1.0
"""Fraction of absorbed energy that reaches the reserve."""

DEFAULT_OUTPUT_EFFICIENCY: float = 1.0
"""Fraction of withdrawn reserve energy that reaches the grid."""

FLAT_PROFILE_KEY: str = "flat"
"""Built-in profile name that spreads energy evenly over every point."""

# ---------------------------------------------------------------------------
# Output defaults
# ---------------------------------------------------------------------------

DEFAULT_OUTPUT_DIR: str = "output"
"""Default root directory for scenario result files."""

CSV_DELIMITER: str = ","
"""Delimiter used in all input and output CSV files."""

FLOAT_PRECISION: int = 6
"""Number of decimal places for load values in output CSVs."""

PRICE_PRECISION: int = 2
"""Number of decimal places for prices in output CSVs."""
