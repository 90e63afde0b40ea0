"""Storage participant: a dispatchable resource backed by a :class:`Reserve`.

Efficiency convention
---------------------
Round-trip losses are modelled as two multiplicative factors:

- **Absorbing** ``E`` MWh of excess stores ``E × input_efficiency``.
- **Delivering** ``L`` MW to the grid withdraws ``L / output_efficiency``.

The load curve tracks net injection: negative when absorbing excess (the
energy taken from the grid), positive when discharging.
"""

from __future__ import annotations

import logging

from merit_dispatch.config.defaults import (
    DEFAULT_AVAILABILITY,
    DEFAULT_INPUT_EFFICIENCY,
    DEFAULT_NUMBER_OF_UNITS,
    DEFAULT_OUTPUT_EFFICIENCY,
    POINTS,
)
from merit_dispatch.participants.participant import Producer
from merit_dispatch.storage.reserve import DecayFunction, Reserve

logger = logging.getLogger(__name__)


class Storage(Producer):
    """A producer which may retain excess from always-on producers for later use."""

    flexible = True
    storage = True

    required_attributes = ("key", "output_capacity_per_unit", "volume_per_unit")

    def __init__(
        self,
        key: str,
        output_capacity_per_unit: float,
        volume_per_unit: float,
        number_of_units: float = DEFAULT_NUMBER_OF_UNITS,
        availability: float = DEFAULT_AVAILABILITY,
        marginal_costs: float = 0.0,
        input_efficiency: float = DEFAULT_INPUT_EFFICIENCY,
        output_efficiency: float = DEFAULT_OUTPUT_EFFICIENCY,
        decay: DecayFunction | None = None,
        points: int = POINTS,
    ) -> None:
        """Initialise a Storage participant with an empty reserve.

        Args:
            key: Unique participant key.
            output_capacity_per_unit: Charge/discharge power per unit in MW.
            volume_per_unit: Energy volume per unit in MWh.
            number_of_units: Number of units installed.
            availability: Available share of the installed units.
            marginal_costs: Base cost used to place the storage in the merit
                order.
            input_efficiency: Fraction in (0, 1] of absorbed energy stored.
            output_efficiency: Fraction in (0, 1] of withdrawn energy delivered.
            decay: Optional per-point decay of the stored energy.
            points: Number of points in the horizon.

        Raises:
            ValueError: If an efficiency is outside (0, 1] or the volume is
                negative.
        """
        super().__init__(
            key,
            marginal_costs=marginal_costs,
            output_capacity_per_unit=output_capacity_per_unit,
            number_of_units=number_of_units,
            availability=availability,
            points=points,
        )

        for name, value in (
            ("input_efficiency", input_efficiency),
            ("output_efficiency", output_efficiency),
        ):
            if not 0.0 < value <= 1.0:
                raise ValueError(f"{key}: {name} must be in (0, 1], got {value}")

        self.input_efficiency = float(input_efficiency)
        self.output_efficiency = float(output_efficiency)
        self.reserve = Reserve(
            volume_per_unit * self.number_of_units * self.availability,
            decay,
            length=points,
        )

    def assign_excess(self, point: int, amount: float) -> float:
        """Absorb up to *amount* MW of excess supply in *point*.

        Returns
        -------
        float
            Energy taken from the grid (before input losses); also subtracted
            from the load curve.
        """
        offered = min(amount, self.effective_output_capacity) * self.input_efficiency
        consumed = self.reserve.add(point, offered) / self.input_efficiency

        self.load_curve.subtract_at(point, consumed)
        return consumed

    def max_load_at(self, point: int) -> float:
        in_reserve = self.reserve.at(point) * self.output_efficiency
        return min(in_reserve, self.effective_output_capacity)

    def set_load(self, point: int, amount: float) -> float:
        """Assign *amount* MW of discharge, drawing the reserve down accordingly."""
        super().set_load(point, amount)

        if amount > 0.0:
            self.reserve.take(point, amount / self.output_efficiency)

        return amount

    def reset(self) -> None:
        super().reset()
        self.reserve.reset()
