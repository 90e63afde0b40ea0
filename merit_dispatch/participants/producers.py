"""Producer variants: must-run, volatile, dispatchable and supply interconnect.

Must-run and volatile producers are *always on*: their output in a point is
``load_profile[point] × annual production`` and is never curtailed, where the
annual production (MWh) is ``effective_output_capacity × full_load_hours``.
Dispatchables and interconnects compete in the merit order.
"""

from __future__ import annotations

import logging

from merit_dispatch.config.defaults import DEFAULT_AVAILABILITY, DEFAULT_NUMBER_OF_UNITS
from merit_dispatch.core.curve import Curve, LoadProfile
from merit_dispatch.participants.cost import CostCurve
from merit_dispatch.participants.participant import Producer

logger = logging.getLogger(__name__)


class AlwaysOnProducer(Producer):
    """A producer whose output follows a profile regardless of price."""

    always_on = True

    required_attributes = Producer.required_attributes + (
        "load_profile",
        "full_load_hours",
    )

    def __init__(
        self,
        key: str,
        marginal_costs: float,
        output_capacity_per_unit: float,
        number_of_units: float,
        availability: float,
        load_profile: LoadProfile,
        full_load_hours: float,
        points: int | None = None,
    ) -> None:
        points = len(load_profile) if points is None else points
        if points != len(load_profile):
            raise ValueError(
                f"{key}: load profile has {len(load_profile)} points "
                f"but {points} were expected"
            )
        if full_load_hours < 0.0:
            raise ValueError(f"{key}: full_load_hours must be >= 0, got {full_load_hours}")

        super().__init__(
            key,
            marginal_costs=marginal_costs,
            output_capacity_per_unit=output_capacity_per_unit,
            number_of_units=number_of_units,
            availability=availability,
            points=points,
        )
        self.load_profile = load_profile
        self.full_load_hours = float(full_load_hours)

    @property
    def production(self) -> float:
        """Energy produced over the horizon in MWh."""
        return self.effective_output_capacity * self.full_load_hours

    def max_load_at(self, point: int) -> float:
        return self.load_profile.load_at(point, self.production)


class MustRunProducer(AlwaysOnProducer):
    """Output fixed by external conditions (e.g. heat-led CHP)."""


class VolatileProducer(AlwaysOnProducer):
    """Output fixed by a weather-driven availability profile (wind, solar)."""


class DispatchableProducer(Producer):
    """A producer whose output may be set anywhere between zero and capacity.

    Giving a ``cost_spread`` turns the flat marginal cost into a linear cost
    function of utilisation.
    """

    flexible = True


class SupplyInterconnect(Producer):
    """Imports priced by an externally driven cost curve, one value per point."""

    flexible = True

    required_attributes = ("key", "cost_curve", "output_capacity_per_unit")

    def __init__(
        self,
        key: str,
        cost_curve: Curve,
        output_capacity_per_unit: float,
        number_of_units: float = DEFAULT_NUMBER_OF_UNITS,
        availability: float = DEFAULT_AVAILABILITY,
        points: int | None = None,
    ) -> None:
        points = len(cost_curve) if points is None else points
        if points != len(cost_curve):
            raise ValueError(
                f"{key}: cost curve has {len(cost_curve)} points "
                f"but {points} were expected"
            )
        super().__init__(
            key,
            marginal_costs=0.0,
            output_capacity_per_unit=output_capacity_per_unit,
            number_of_units=number_of_units,
            availability=availability,
            points=points,
        )
        self.cost_strategy = CostCurve(cost_curve)
