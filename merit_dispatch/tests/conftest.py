"""Shared pytest fixtures for the merit_dispatch test suite.

All fixtures provide small synthetic horizons (24 points) so every calculation
runs in milliseconds.

Reference scenario (used by scenario_dict and the CLI tests)
-------------------------------------------------------------
24 points, flat household demand of 6 MW (144 MWh over the horizon).

  nuclear   must-run     2 units × 1 MW, 24 FLH, flat    → 2.0 MW every point
  wind      volatile     1 MW, 24 FLH, profile 1:3       → 0.5 MW (points 0–11)
                                                            1.5 MW (points 12–23)
  coal      dispatchable 20 EUR/MWh, 2 MW
  gas       dispatchable 40 EUR/MWh, 5 MW

Residual demand after always-on supply: 3.5 MW (0–11) and 2.5 MW (12–23).
Coal saturates at 2 MW; gas serves 1.5 / 0.5 MW and sets the price (40).
"""

from __future__ import annotations

import copy
import json

import pytest

REFERENCE_POINTS = 24


_SCENARIO = {
    "scenario": {"name": "reference", "points": REFERENCE_POINTS},
    "profiles": {
        "wind_profile": [1.0] * 12 + [3.0] * 12,
    },
    "participants": [
        {
            "type": "must_run",
            "key": "nuclear",
            "marginal_costs": 5.0,
            "output_capacity_per_unit": 1.0,
            "number_of_units": 2,
            "availability": 1.0,
            "load_profile": "flat",
            "full_load_hours": 24,
        },
        {
            "type": "volatile",
            "key": "wind",
            "marginal_costs": 0.0,
            "output_capacity_per_unit": 1.0,
            "number_of_units": 1,
            "availability": 1.0,
            "load_profile": "wind_profile",
            "full_load_hours": 24,
        },
        {
            "type": "dispatchable",
            "key": "gas",
            "marginal_costs": 40.0,
            "output_capacity_per_unit": 1.0,
            "number_of_units": 5,
            "availability": 1.0,
        },
        {
            "type": "dispatchable",
            "key": "coal",
            "marginal_costs": 20.0,
            "output_capacity_per_unit": 1.0,
            "number_of_units": 2,
            "availability": 1.0,
        },
        {
            "type": "user",
            "key": "households",
            "total_consumption": 144.0,
            "load_profile": "flat",
        },
    ],
    "output": {"directory": "output"},
}


@pytest.fixture
def scenario_dict() -> dict:
    """A valid reference scenario dictionary (deep copy; safe to mutate)."""
    return copy.deepcopy(_SCENARIO)


@pytest.fixture
def scenario_file(tmp_path, scenario_dict):
    """Write the reference scenario to a JSON file and return its path."""
    path = tmp_path / "reference.json"
    path.write_text(json.dumps(scenario_dict), encoding="utf-8")
    return path


@pytest.fixture
def profile_csv(tmp_path):
    """A 24-row profile CSV with a ``solar`` and a ``flat`` column."""
    path = tmp_path / "profiles.csv"
    lines = ["point,solar,flat"]
    for point in range(REFERENCE_POINTS):
        solar = 1.0 if 6 <= point < 18 else 0.0
        lines.append(f"{point},{solar},1.0")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path
