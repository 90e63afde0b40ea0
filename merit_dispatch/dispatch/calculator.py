"""Per-point merit-order allocation and its chunked approximations.

For every point of the horizon the calculator:

1. Sums user demand.
2. Assigns every always-on producer its full output (never curtailed).
3. Offers any negative residual (excess supply) to storage, in order; raises
   :class:`SubZeroDemand` when excess remains.
4. Walks the flexible producers in ascending base cost, assigning
   ``min(demand, capacity)``.  A producer with a cost function stops at the
   utilisation where its marginal cost meets the next producer's base cost
   and is topped up afterwards only if every alternative is exhausted.
5. Records the price-setting producer: the last one touched with a strictly
   positive load below its point capacity.  When it is exactly saturated the
   next producer with capacity sets the price.  Unmet demand leaves no price
   setter.

Only storage reserves carry state from one point to the next, so points are
processed strictly in increasing order.

Unit conventions
----------------
========  =======  ===========================================
Quantity  Unit     Notes
========  =======  ===========================================
Load      MW       Per point; equals MWh for one-hour points
Energy    MWh      Reserve volume, annual consumption
Cost      EUR/MWh  Marginal cost, price curve
========  =======  ===========================================

Public API
----------
Calculator            - Exact per-point calculation.
QuantizingCalculator  - Full calculation every ``chunk_size`` points, held between.
AveragingCalculator   - One calculation per chunk against mean demand.
"""

from __future__ import annotations

import functools
import logging
from typing import Sequence

import numpy as np

from merit_dispatch.config.defaults import (
    CALCULATOR_AVERAGING,
    CALCULATOR_DEFAULT,
    CALCULATOR_QUANTIZING,
    DEFAULT_CHUNK_SIZE,
    DEMAND_TOLERANCE,
    MIN_CHUNK_SIZE,
)
from merit_dispatch.core.errors import IncorrectProducerOrder, InvalidChunkSize, SubZeroDemand
from merit_dispatch.dispatch.order import Order
from merit_dispatch.participants.cost import equilibrium_utilisation
from merit_dispatch.participants.participant import Producer

logger = logging.getLogger(__name__)


class Calculator:
    """Computes the merit order exactly, one point at a time."""

    tolerance: float = DEMAND_TOLERANCE

    def __init__(self) -> None:
        self._unmet_points: list[int] = []
        self._flexible: list[Producer] | None = None

    def calculate(self, order: Order) -> Order:
        """Allocate demand in every point of *order*.

        Producer load curves and storage reserves are reset first, so an
        order may be calculated repeatedly.

        Raises
        ------
        IncorrectProducerOrder
            When fixed-cost producers are not in ascending base cost.
        SubZeroDemand
            When always-on supply exceeds demand and storage cannot absorb it.
        """
        order.reset()
        self._check_producer_order(order)
        self._unmet_points = []

        logger.debug(
            "Calculating %d points with %s: %d producers, %d users",
            order.points,
            type(self).__name__,
            len(order.producers),
            len(order.users),
        )

        self._run(order)

        if self._unmet_points:
            logger.warning(
                "Demand could not be met in %d point(s) (first: point %d); "
                "no price-setting producer recorded there.",
                len(self._unmet_points),
                self._unmet_points[0],
            )
        logger.debug("Finished %s run over %d points", type(self).__name__, order.points)
        return order

    def _run(self, order: Order) -> None:
        for point in range(order.points):
            self.compute_point(order, point)

    # ------------------------------------------------------------------
    # Per-point allocation
    # ------------------------------------------------------------------

    def compute_point(self, order: Order, point: int) -> Producer | None:
        """Allocate demand in a single *point*; return the price setter."""
        demand = order.demand_at(point) - self._assign_always_on(order, point)
        demand = self._absorb_excess(order, point, demand)

        price_setter = self._dispatch(order, point, demand)
        order.price_curve.set(point, price_setter)
        return price_setter

    def _assign_always_on(self, order: Order, point: int) -> float:
        """Assign every always-on producer its full output; return the total."""
        total = 0.0
        for producer in order.always_on:
            total += producer.set_load(point, producer.max_load_at(point))
        return total

    def _absorb_excess(self, order: Order, point: int, demand: float) -> float:
        """Offer negative *demand* to storage; return the remaining demand (>= 0).

        Raises
        ------
        SubZeroDemand
            When excess remains after every storage has been offered it.
        """
        if demand >= -self.tolerance:
            return max(demand, 0.0)

        for storage in order.storages:
            demand += storage.assign_excess(point, -demand)
            if demand >= -self.tolerance:
                return 0.0

        raise SubZeroDemand(point, demand)

    def _dispatch(self, order: Order, point: int, demand: float) -> Producer | None:
        """Walk the flexible producers for *point*; return the price setter."""
        producers = order.flexible_at(point, self._flexible)
        available = [producer.max_load_at(point) for producer in producers]

        if demand <= self.tolerance:
            return next(
                (producer for producer, cap in zip(producers, available) if cap > 0.0),
                None,
            )

        deferred: list[tuple[Producer, float]] = []

        for index, producer in enumerate(producers):
            capacity = available[index]
            if capacity <= 0.0:
                continue

            limit = capacity
            if producer.cost_strategy.function:
                limit = capacity * self._equilibrium(producers, available, index, point)

            load = min(demand, limit)
            if load > 0.0:
                producer.set_load(point, load)
            demand -= load

            if demand <= self.tolerance:
                following = list(zip(producers[index + 1 :], available[index + 1 :]))
                return self._price_setter(point, producer, capacity, following)

            if limit < capacity:
                deferred.append((producer, capacity))

        # Every alternative is exhausted; deferred cost-function producers
        # take the remainder in list order.
        for position, (producer, capacity) in enumerate(deferred):
            current = producer.load_at(point)
            load = min(demand, capacity - current)
            if load <= 0.0:
                continue

            producer.set_load(point, current + load)
            demand -= load

            if demand <= self.tolerance:
                return self._price_setter(point, producer, capacity, deferred[position + 1 :])

        self._unmet_points.append(point)
        return None

    def _equilibrium(
        self,
        producers: Sequence[Producer],
        available: Sequence[float],
        index: int,
        point: int,
    ) -> float:
        """Utilisation at which ``producers[index]`` meets the next producer's cost."""
        producer = producers[index]
        following = next(
            (
                other
                for other, capacity in zip(producers[index + 1 :], available[index + 1 :])
                if capacity > 0.0
            ),
            None,
        )
        if following is None:
            return 1.0

        return equilibrium_utilisation(
            functools.partial(producer.cost_strategy.cost_at, point),
            following.sortable_cost(point),
        )

    def _price_setter(
        self,
        point: int,
        producer: Producer,
        capacity: float,
        following: Sequence[tuple[Producer, float]],
    ) -> Producer:
        """Return *producer* unless it is saturated and another producer has room."""
        if capacity - producer.load_at(point) > self.tolerance:
            return producer

        for other, other_capacity in following:
            if other_capacity - other.load_at(point) > self.tolerance:
                return other

        return producer

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _check_producer_order(self, order: Order) -> None:
        """Raise :class:`IncorrectProducerOrder` unless base costs ascend.

        Every producer is checked in sequence.  Producers with a per-point
        cost are positioned per point and are not part of this check.
        """
        self._flexible = order.flexible

        previous: Producer | None = None
        for producer in order.producers:
            if producer.cost_strategy.variable:
                continue
            cost = producer.sortable_cost(0)
            if previous is not None and cost < previous.sortable_cost(0):
                raise IncorrectProducerOrder(producer.key, cost, previous.sortable_cost(0))
            previous = producer


class QuantizingCalculator(Calculator):
    """Computes the first point of each chunk and holds it for the rest.

    Runs ``ceil(N / chunk_size)`` full evaluations instead of ``N``.  Storage
    loads are replayed against the reserve in every held point, so a storage
    never delivers more than it holds.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < MIN_CHUNK_SIZE:
            raise InvalidChunkSize(chunk_size)
        super().__init__()
        self.chunk_size = chunk_size

    def _run(self, order: Order) -> None:
        for start in range(0, order.points, self.chunk_size):
            size = min(self.chunk_size, order.points - start)
            self.compute_chunk(order, start, size)

    def compute_chunk(self, order: Order, start: int, size: int) -> None:
        price_setter = self.compute_point(order, start)
        self._hold(order, start, size, order.producers, price_setter)

    def _hold(
        self,
        order: Order,
        start: int,
        size: int,
        producers: Sequence[Producer],
        price_setter: Producer | None,
    ) -> None:
        """Copy the loads of *producers* in *start* to the rest of the chunk.

        Storage loads go through the reserve instead: excess is absorbed
        again, and discharge is limited to what the reserve can deliver.
        Discharge it cannot deliver is passed to the other flexible
        producers.
        """
        for point in range(start + 1, start + size):
            shortfall = 0.0
            for producer in producers:
                load = producer.load_at(start)
                if not producer.storage:
                    producer.load_curve.set(point, load)
                elif load < 0.0:
                    self._replay_excess(producer, point, -load)
                else:
                    delivered = min(load, producer.max_load_at(point))
                    if delivered > 0.0:
                        producer.set_load(point, delivered)
                    shortfall += load - delivered

            if shortfall > self.tolerance:
                order.price_curve.set(point, self._cover_shortfall(order, point, shortfall))
            else:
                order.price_curve.set(point, price_setter)

    def _replay_excess(self, storage: Producer, point: int, amount: float) -> None:
        """Absorb *amount* of excess into *storage* in a held *point*.

        Raises
        ------
        SubZeroDemand
            When the storage can no longer absorb the held excess.
        """
        absorbed = storage.assign_excess(point, amount)
        if amount - absorbed > self.tolerance:
            raise SubZeroDemand(point, absorbed - amount)

    def _cover_shortfall(self, order: Order, point: int, shortfall: float) -> Producer | None:
        """Assign *shortfall* to non-storage flexible producers with headroom."""
        producers = [p for p in order.flexible_at(point, self._flexible) if not p.storage]
        available = [producer.max_load_at(point) for producer in producers]

        for index, producer in enumerate(producers):
            headroom = available[index] - producer.load_at(point)
            if headroom <= self.tolerance:
                continue

            load = min(shortfall, headroom)
            producer.set_load(point, producer.load_at(point) + load)
            shortfall -= load

            if shortfall <= self.tolerance:
                following = list(zip(producers[index + 1 :], available[index + 1 :]))
                return self._price_setter(point, producer, available[index], following)

        self._unmet_points.append(point)
        return None


class AveragingCalculator(QuantizingCalculator):
    """Computes each chunk once against the chunk's mean demand.

    Always-on producers keep their true per-point output; flexible producers
    receive the allocation for the mean residual demand in every point of the
    chunk.  A chunk with zero mean demand is skipped and left at zero.
    """

    def compute_chunk(self, order: Order, start: int, size: int) -> None:
        mean_demand = float(np.mean(order.demand_window(start, size)))

        if abs(mean_demand) <= self.tolerance:
            for point in range(start, start + size):
                order.price_curve.set(point, None)
            return

        always_on = np.zeros(size)
        for offset in range(size):
            always_on[offset] = self._assign_always_on(order, start + offset)

        demand = self._absorb_excess(order, start, mean_demand - float(always_on.mean()))

        price_setter = self._dispatch(order, start, demand)
        order.price_curve.set(start, price_setter)
        self._hold(order, start, size, order.flexible, price_setter)


def build_calculator(name: str = CALCULATOR_DEFAULT, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Calculator:
    """Return the calculator registered under *name*.

    Raises
    ------
    ValueError
        When *name* is not a known calculator.
    InvalidChunkSize
        When a chunked calculator is requested with ``chunk_size <= 1``.
    """
    if name == CALCULATOR_DEFAULT:
        return Calculator()
    if name == CALCULATOR_QUANTIZING:
        return QuantizingCalculator(chunk_size)
    if name == CALCULATOR_AVERAGING:
        return AveragingCalculator(chunk_size)
    raise ValueError(
        f"Unknown calculator '{name}'. Must be '{CALCULATOR_DEFAULT}', "
        f"'{CALCULATOR_QUANTIZING}' or '{CALCULATOR_AVERAGING}'."
    )
