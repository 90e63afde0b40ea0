"""Load and validate scenario JSON files and their load profiles.

Public API
----------
load_scenario(path)        – Parse + validate a scenario JSON file.
load_scenario_dict(data)   – Validate an already-parsed scenario dictionary.
load_profiles(scenario)    – Read every named load profile (CSV or inline).
build_scenario_order(...)  – Build the participants of a scenario into an Order.

All error messages name the specific field that caused the problem so the user
can fix the JSON or CSV without guessing.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from merit_dispatch.config.defaults import (
    CALCULATOR_DEFAULT,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_OUTPUT_DIR,
    POINTS,
)
from merit_dispatch.config.schema import validate_scenario
from merit_dispatch.core.curve import LoadProfile
from merit_dispatch.dispatch.order import Order
from merit_dispatch.participants.factory import build_order

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Typed result container
# ---------------------------------------------------------------------------


@dataclass
class ScenarioConfig:
    """Fully validated, parsed scenario configuration.

    Attributes
    ----------
    raw:
        The original validated dictionary as loaded from JSON.  All other
        attributes are convenience accessors into ``raw``.
    name:
        Scenario name (``scenario.name``).
    points:
        Number of points in the horizon.
    calculator:
        ``"default"``, ``"quantizing"`` or ``"averaging"``.
    chunk_size:
        Chunk size for the chunked calculators.
    path:
        Absolute path to the source JSON file (``None`` if loaded from a dict).
    """

    raw: dict[str, Any]
    name: str
    points: int
    calculator: str
    chunk_size: int
    path: Path | None = field(default=None, repr=False)

    @property
    def participants(self) -> list[dict]:
        """Shortcut to ``raw["participants"]``."""
        return self.raw["participants"]

    @property
    def profiles(self) -> dict:
        """Shortcut to ``raw["profiles"]`` (empty dict if absent)."""
        return self.raw.get("profiles", {})

    @property
    def output_directory(self) -> str:
        """Output directory from the scenario, or the package default."""
        return self.raw.get("output", {}).get("directory", DEFAULT_OUTPUT_DIR)

    @property
    def base_dir(self) -> Path:
        """Directory against which relative CSV paths are resolved."""
        return self.path.parent if self.path is not None else Path.cwd()


# ---------------------------------------------------------------------------
# Public functions
# ---------------------------------------------------------------------------


def load_scenario(path: str | Path) -> ScenarioConfig:
    """Load and validate a scenario JSON file.

    Raises
    ------
    FileNotFoundError
        When *path* does not exist.
    json.JSONDecodeError
        When the file contains invalid JSON.
    jsonschema.ValidationError
        When the JSON does not conform to the scenario schema.
    ValueError
        When cross-field constraints are violated (e.g. duplicate keys).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Scenario file not found: '{path}'. "
            "Check that the path is correct and the file exists."
        )

    logger.debug("Loading scenario from '%s'", path)

    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise json.JSONDecodeError(
            f"Invalid JSON in scenario file '{path}': {exc.msg}",
            exc.doc,
            exc.pos,
        ) from exc

    config = load_scenario_dict(data)
    config.path = path.resolve()

    logger.info(
        "Loaded scenario '%s' (%d participants, %d points, calculator=%s) from '%s'",
        config.name,
        len(config.participants),
        config.points,
        config.calculator,
        path,
    )
    return config


def load_scenario_dict(data: dict) -> ScenarioConfig:
    """Validate and wrap an already-parsed scenario dictionary.

    Raises
    ------
    jsonschema.ValidationError
        When *data* does not conform to the schema.
    ValueError
        When cross-field constraints are violated.
    """
    validate_scenario(data)

    block = data["scenario"]
    return ScenarioConfig(
        raw=data,
        name=block["name"],
        points=int(block.get("points", POINTS)),
        calculator=block.get("calculator", CALCULATOR_DEFAULT),
        chunk_size=int(block.get("chunk_size", DEFAULT_CHUNK_SIZE)),
    )


def load_profiles(scenario: ScenarioConfig) -> dict[str, LoadProfile]:
    """Read every profile declared in the scenario's ``profiles`` block.

    CSV paths are resolved relative to the scenario file.

    Raises
    ------
    FileNotFoundError
        When a profile CSV does not exist.
    ValueError
        When a profile column is missing or has the wrong length.
    """
    profiles: dict[str, LoadProfile] = {}
    for name, source in scenario.profiles.items():
        if isinstance(source, dict):
            csv_path = Path(source["csv"])
            if not csv_path.is_absolute():
                csv_path = scenario.base_dir / csv_path
            profile = LoadProfile.from_csv(csv_path, source["column"])
        else:
            profile = LoadProfile(source)

        if len(profile) != scenario.points:
            raise ValueError(
                f"Profile '{name}' has {len(profile)} values but the scenario "
                f"has {scenario.points} points."
            )
        profiles[name] = profile

    logger.debug("Loaded %d profile(s): %s", len(profiles), sorted(profiles))
    return profiles


def build_scenario_order(scenario: ScenarioConfig) -> Order:
    """Load the scenario's profiles and build its participants into an Order."""
    return build_order(scenario.participants, load_profiles(scenario), scenario.points)
