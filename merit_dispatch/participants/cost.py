"""Marginal-cost strategies for producers and the cost-curve equilibrium search.

Three strategies cover every producer:

========================  ========================================================
Strategy                  Marginal cost (EUR/MWh)
========================  ========================================================
``FlatCost``              Constant ``marginal_costs``.
``LinearCostFunction``    Rises linearly with utilisation ``x`` in [0, 1]:
                          ``mc × (1 + spread × (x − 0.5))``; the mean is ``mc``.
``CostCurve``             One value per point, driven externally (interconnects).
========================  ========================================================

``sortable_cost(point)`` is the base cost used to place a producer in the
merit order.  For the linear cost function it is the cost of the first MW
(``x = 0``).

:func:`equilibrium_utilisation` is kept free of side effects so it can be
tested independently of the calculator.
"""

from __future__ import annotations

from typing import Callable

from scipy.optimize import brentq

from merit_dispatch.config.defaults import EQUILIBRIUM_XTOL
from merit_dispatch.core.curve import Curve


class FlatCost:
    """A single marginal cost, independent of point and utilisation."""

    variable = False
    function = False

    def __init__(self, marginal_costs: float) -> None:
        self.marginal_costs = float(marginal_costs)

    def sortable_cost(self, point: int) -> float:
        return self.marginal_costs

    def cost_at(self, point: int, utilisation: float = 0.0) -> float:
        return self.marginal_costs

    def __repr__(self) -> str:
        return f"FlatCost({self.marginal_costs})"


class LinearCostFunction:
    """A marginal cost spread linearly over the producer's utilisation."""

    variable = False
    function = True

    def __init__(self, marginal_costs: float, spread: float) -> None:
        if spread < 0.0:
            raise ValueError(f"cost_spread must be >= 0, got {spread}")
        self.marginal_costs = float(marginal_costs)
        self.spread = float(spread)

    def sortable_cost(self, point: int) -> float:
        return self.cost_at(point, 0.0)

    def cost_at(self, point: int, utilisation: float = 0.0) -> float:
        return self.marginal_costs * (1.0 + self.spread * (utilisation - 0.5))

    def __repr__(self) -> str:
        return f"LinearCostFunction({self.marginal_costs}, spread={self.spread})"


class CostCurve:
    """A marginal cost supplied per point."""

    variable = True
    function = False

    def __init__(self, curve: Curve) -> None:
        self.curve = curve

    def sortable_cost(self, point: int) -> float:
        return self.curve.get(point)

    def cost_at(self, point: int, utilisation: float = 0.0) -> float:
        return self.curve.get(point)

    def __repr__(self) -> str:
        return f"CostCurve(length={len(self.curve)})"


def equilibrium_utilisation(
    cost_at: Callable[[float], float],
    target_cost: float,
    xtol: float = EQUILIBRIUM_XTOL,
) -> float:
    """Return the utilisation at which *cost_at* reaches *target_cost*.

    Parameters
    ----------
    cost_at:
        Marginal cost as a function of utilisation in [0, 1]; must be
        non-decreasing.
    target_cost:
        Cost of the competing (next) producer.
    xtol:
        Absolute tolerance on the returned utilisation.

    Returns
    -------
    float
        ``1.0`` when the producer undercuts *target_cost* even at full
        utilisation, ``0.0`` when it is never cheaper, otherwise the root of
        ``cost_at(x) - target_cost``.
    """
    if cost_at(1.0) <= target_cost:
        return 1.0
    if cost_at(0.0) >= target_cost:
        return 0.0
    return float(brentq(lambda x: cost_at(x) - target_cost, 0.0, 1.0, xtol=xtol))
