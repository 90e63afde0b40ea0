"""JSON schema definition and validation for scenario configuration files.

Validation uses the ``jsonschema`` library (Draft 7).  The schema checks the
shape and value ranges of every block; per-type required participant
attributes are checked when participants are built, so that a missing field
surfaces as :class:`~merit_dispatch.core.errors.MissingAttributeError`.

Usage::

    from merit_dispatch.config.schema import validate_scenario
    validate_scenario(data)   # raises jsonschema.ValidationError on failure
"""

from __future__ import annotations

import jsonschema

from merit_dispatch.config.defaults import (
    CALCULATOR_AVERAGING,
    CALCULATOR_DEFAULT,
    CALCULATOR_QUANTIZING,
    FLAT_PROFILE_KEY,
)

# ---------------------------------------------------------------------------
# Re-usable sub-schemas
# ---------------------------------------------------------------------------

_NON_NEGATIVE_NUMBER = {"type": "number", "minimum": 0}

_FRACTION = {"type": "number", "minimum": 0, "maximum": 1}

_EFFICIENCY = {"type": "number", "exclusiveMinimum": 0, "maximum": 1}

_NUMBER_ARRAY = {
    "type": "array",
    "items": {"type": "number"},
    "minItems": 1,
}

_PROFILE_REFERENCE = {
    "oneOf": [
        {"type": "string", "minLength": 1},
        {"type": "array", "items": _NON_NEGATIVE_NUMBER, "minItems": 1},
    ]
}

_SERIES = {
    "oneOf": [
        {"type": "number"},
        _NUMBER_ARRAY,
    ]
}

# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------

_SCENARIO_BLOCK = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "points": {"type": "integer", "minimum": 1},
        "calculator": {
            "type": "string",
            "enum": [CALCULATOR_DEFAULT, CALCULATOR_QUANTIZING, CALCULATOR_AVERAGING],
        },
        "chunk_size": {"type": "integer", "minimum": 1},
    },
    "additionalProperties": False,
}

_CSV_PROFILE = {
    "type": "object",
    "required": ["csv", "column"],
    "properties": {
        "csv": {"type": "string", "minLength": 1},
        "column": {"type": "string", "minLength": 1},
    },
    "additionalProperties": False,
}

_PROFILES = {
    "type": "object",
    "additionalProperties": {
        "oneOf": [
            _CSV_PROFILE,
            {"type": "array", "items": _NON_NEGATIVE_NUMBER, "minItems": 1},
        ]
    },
}

_PARTICIPANT = {
    "type": "object",
    "required": ["type"],
    "properties": {
        "type": {
            "type": "string",
            "enum": [
                "must_run",
                "volatile",
                "dispatchable",
                "interconnect",
                "storage",
                "user",
            ],
        },
        "key": {"type": "string", "minLength": 1},
        "marginal_costs": {"type": "number"},
        "cost_spread": _NON_NEGATIVE_NUMBER,
        "cost_curve": _SERIES,
        "output_capacity_per_unit": _NON_NEGATIVE_NUMBER,
        "number_of_units": _NON_NEGATIVE_NUMBER,
        "availability": _FRACTION,
        "load_profile": _PROFILE_REFERENCE,
        "full_load_hours": _NON_NEGATIVE_NUMBER,
        "total_consumption": {"type": "number"},
        "load_curve": _SERIES,
        "volume_per_unit": _NON_NEGATIVE_NUMBER,
        "input_efficiency": _EFFICIENCY,
        "output_efficiency": _EFFICIENCY,
        "decay": {"type": "number", "minimum": 0, "exclusiveMaximum": 1},
    },
    "additionalProperties": False,
}

_OUTPUT = {
    "type": "object",
    "required": ["directory"],
    "properties": {
        "directory": {"type": "string", "minLength": 1},
    },
    "additionalProperties": False,
}

# ---------------------------------------------------------------------------
# Top-level schema
# ---------------------------------------------------------------------------

SCENARIO_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Merit-order scenario",
    "type": "object",
    "required": ["scenario", "participants"],
    "properties": {
        "scenario": _SCENARIO_BLOCK,
        "profiles": _PROFILES,
        "participants": {"type": "array", "items": _PARTICIPANT, "minItems": 1},
        "output": _OUTPUT,
    },
    "additionalProperties": False,
}


def validate_scenario(data: dict) -> None:
    """Validate a scenario configuration dictionary against the JSON schema.

    Raises a ``jsonschema.ValidationError`` with a descriptive message
    (including the JSON path to the failing field) if validation fails.

    Parameters
    ----------
    data:
        Parsed scenario dictionary (e.g. from ``json.load``).

    Raises
    ------
    jsonschema.ValidationError
        When *data* does not conform to the scenario schema.
    ValueError
        When cross-field constraints are violated (duplicate participant
        keys, profile references to undefined profiles).
    """
    validator = jsonschema.Draft7Validator(SCENARIO_SCHEMA)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))

    if errors:
        first = errors[0]
        path_str = " → ".join(str(p) for p in first.absolute_path) or "(root)"
        raise jsonschema.ValidationError(
            f"Scenario validation failed at '{path_str}': {first.message}",
            path=first.absolute_path,
            validator=first.validator,
            validator_value=first.validator_value,
            instance=first.instance,
            schema=first.schema,
            cause=first.cause,
        )

    _validate_unique_keys(data)
    _validate_profile_references(data)


def _validate_unique_keys(data: dict) -> None:
    """Check that no two participants share a key."""
    seen: set[str] = set()
    for participant in data["participants"]:
        key = participant.get("key")
        if key is None:
            continue
        if key in seen:
            raise ValueError(
                f"Participant key '{key}' is used more than once. "
                "Every participant in 'participants' needs a unique key."
            )
        seen.add(key)


def _validate_profile_references(data: dict) -> None:
    """Check that named load profiles are defined in the 'profiles' block."""
    defined = set(data.get("profiles", {})) | {FLAT_PROFILE_KEY}
    for participant in data["participants"]:
        reference = participant.get("load_profile")
        if isinstance(reference, str) and reference not in defined:
            raise ValueError(
                f"Participant '{participant.get('key', '?')}' refers to undefined "
                f"load profile '{reference}'. Defined profiles: {sorted(defined)}."
            )


def get_schema() -> dict:
    """Return a copy of the scenario JSON schema dictionary."""
    return SCENARIO_SCHEMA.copy()
