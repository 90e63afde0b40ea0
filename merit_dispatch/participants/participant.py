"""Participant base classes: the shared capability interface of the merit order.

Every participant owns exactly one :class:`~merit_dispatch.core.curve.Curve`
(``load_curve``) which only a calculator writes to.  The calculator never
inspects concrete classes; it dispatches on the capability flags below.

==============  =============================================================
Flag            Meaning
==============  =============================================================
``always_on``   Output fixed by construction; assigned before dispatch.
``flexible``    Takes part in the merit-order walk.
``storage``     Can absorb excess supply through ``assign_excess``.
``user``        Demand participant; exposes ``demand_at``.
==============  =============================================================

Public API
----------
Participant  - Identity and load curve.
Producer     - Capacity and cost strategy.
User         - Demand from a profile and annual consumption, or a curve.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, ClassVar

from merit_dispatch.config.defaults import POINTS
from merit_dispatch.core.curve import Curve, LoadProfile
from merit_dispatch.core.errors import MissingAttributeError
from merit_dispatch.participants.cost import FlatCost, LinearCostFunction

logger = logging.getLogger(__name__)


class Participant:
    """A named member of the merit order holding a per-point load curve."""

    required_attributes: ClassVar[tuple[str, ...]] = ("key",)

    always_on: ClassVar[bool] = False
    flexible: ClassVar[bool] = False
    storage: ClassVar[bool] = False
    user: ClassVar[bool] = False

    def __init__(self, key: str, points: int = POINTS) -> None:
        self.key = key
        self.load_curve = Curve(length=points)

    @classmethod
    def from_attributes(cls, attributes: dict[str, Any]) -> "Participant":
        """Build a participant from a descriptor dictionary.

        Raises
        ------
        MissingAttributeError
            When a required attribute is absent or ``None``.
        ValueError
            When an attribute is not accepted by this participant type.
        """
        for name in cls.required_attributes:
            if attributes.get(name) is None:
                raise MissingAttributeError(name, cls.__name__)
        cls._check_accepted(attributes)
        return cls(**attributes)

    @classmethod
    def _check_accepted(cls, attributes: dict[str, Any]) -> None:
        accepted = inspect.signature(cls.__init__).parameters
        unknown = sorted(set(attributes) - set(accepted) - {"self"})
        if unknown:
            raise ValueError(
                f"{cls.__name__} does not accept attribute(s) {unknown}"
            )

    @property
    def points(self) -> int:
        return len(self.load_curve)

    def load_at(self, point: int) -> float:
        return self.load_curve.get(point)

    def set_load(self, point: int, amount: float) -> float:
        """Record *amount* as this participant's load in *point*."""
        self.load_curve.set(point, amount)
        return amount

    def reset(self) -> None:
        """Clear calculated values before a new run."""
        self.load_curve.reset()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.key}>"


class Producer(Participant):
    """A supply participant with a capacity ceiling and a marginal cost."""

    required_attributes = (
        "key",
        "marginal_costs",
        "output_capacity_per_unit",
        "number_of_units",
        "availability",
    )

    def __init__(
        self,
        key: str,
        marginal_costs: float,
        output_capacity_per_unit: float,
        number_of_units: float,
        availability: float,
        cost_spread: float | None = None,
        points: int = POINTS,
    ) -> None:
        super().__init__(key, points)

        if output_capacity_per_unit < 0.0:
            raise ValueError(
                f"{key}: output_capacity_per_unit must be >= 0, "
                f"got {output_capacity_per_unit}"
            )
        if number_of_units < 0.0:
            raise ValueError(f"{key}: number_of_units must be >= 0, got {number_of_units}")
        if not 0.0 <= availability <= 1.0:
            raise ValueError(f"{key}: availability must be in [0, 1], got {availability}")

        self.output_capacity_per_unit = float(output_capacity_per_unit)
        self.number_of_units = float(number_of_units)
        self.availability = float(availability)

        if cost_spread:
            self.cost_strategy = LinearCostFunction(marginal_costs, cost_spread)
        else:
            self.cost_strategy = FlatCost(marginal_costs)

    @property
    def effective_output_capacity(self) -> float:
        """Constant ceiling on instantaneous output in MW."""
        return self.number_of_units * self.output_capacity_per_unit * self.availability

    def max_load_at(self, point: int) -> float:
        return self.effective_output_capacity

    def sortable_cost(self, point: int) -> float:
        """Base cost used to place this producer in the merit order."""
        return self.cost_strategy.sortable_cost(point)

    def cost_at_load(self, point: int, load: float) -> float:
        """Marginal cost when producing *load* MW in *point*."""
        capacity = self.effective_output_capacity
        utilisation = load / capacity if capacity > 0.0 else 0.0
        return self.cost_strategy.cost_at(point, min(max(utilisation, 0.0), 1.0))


class User(Participant):
    """A demand participant.

    Demand is either ``load_profile × total_consumption`` (MWh over the
    horizon) or an explicit demand curve.  The demand doubles as the user's
    load curve; calculators never overwrite it.
    """

    user = True

    def __init__(
        self,
        key: str,
        total_consumption: float | None = None,
        load_profile: LoadProfile | None = None,
        load_curve: Curve | None = None,
        points: int | None = None,
    ) -> None:
        if load_curve is not None:
            super().__init__(key, len(load_curve))
            self.load_curve = load_curve
        elif total_consumption is not None and load_profile is not None:
            super().__init__(key, len(load_profile))
            self.load_curve = Curve(load_profile.values * float(total_consumption))
        elif load_profile is None and total_consumption is not None:
            raise MissingAttributeError("load_profile", type(self).__name__)
        else:
            raise MissingAttributeError("total_consumption", type(self).__name__)

        if points is not None and points != self.points:
            raise ValueError(
                f"{key}: demand has {self.points} points but {points} were expected"
            )

    @classmethod
    def from_attributes(cls, attributes: dict[str, Any]) -> "User":
        if attributes.get("key") is None:
            raise MissingAttributeError("key", cls.__name__)
        cls._check_accepted(attributes)
        return cls(**attributes)

    def demand_at(self, point: int) -> float:
        return self.load_curve.get(point)

    def reset(self) -> None:
        """Demand is an input; nothing to clear."""
