"""The merit order: participants in dispatch sequence and the resulting price curve.

The producer list is expected in ascending base cost; the :class:`Order` keeps
the sequence it is given and never sorts it (use :func:`merit_order` before
adding producers).  A calculator verifies the sequence when it runs.

Public API
----------
Order        - Producers and users taking part in one calculation.
PriceCurve   - Price-setting participant (and price) per point.
merit_order  - Sort producers by base cost.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Iterable, Sequence

import numpy as np

from merit_dispatch.config.defaults import POINTS
from merit_dispatch.core.curve import Curve
from merit_dispatch.participants.participant import Participant, Producer, User

if TYPE_CHECKING:
    from merit_dispatch.dispatch.calculator import Calculator

logger = logging.getLogger(__name__)


class PriceCurve:
    """The price-setting producer of every point, or ``None`` when demand is unmet."""

    def __init__(self, points: int = POINTS) -> None:
        self._producers: list[Producer | None] = [None] * points

    def set(self, point: int, producer: Producer | None) -> None:
        self._producers[point] = producer

    def producer_at(self, point: int) -> Producer | None:
        return self._producers[point]

    def price_at(self, point: int) -> float:
        """Marginal cost of the price setter at its assigned load (``nan`` if none)."""
        producer = self._producers[point]
        if producer is None:
            return math.nan
        return producer.cost_at_load(point, producer.load_at(point))

    def to_array(self) -> np.ndarray:
        return np.array([self.price_at(point) for point in range(len(self))], dtype=float)

    def __len__(self) -> int:
        return len(self._producers)


def merit_order(producers: Iterable[Producer], point: int = 0) -> list[Producer]:
    """Return *producers* sorted by base cost in *point* (stable for ties)."""
    return sorted(producers, key=lambda producer: producer.sortable_cost(point))


class Order:
    """Participants taking part in one merit-order calculation.

    Attributes
    ----------
    producers:
        Supply participants in the sequence they were added.
    users:
        Demand participants.
    price_curve:
        Populated by a calculator; ``None`` before the first run.
    """

    def __init__(self, participants: Iterable[Participant] = ()) -> None:
        self.producers: list[Producer] = []
        self.users: list[User] = []
        self.price_curve: PriceCurve | None = None

        for participant in participants:
            self.add(participant)

    def add(self, participant: Participant) -> "Order":
        """Append *participant*; producers keep the sequence they are added in.

        Raises
        ------
        ValueError
            When the key is already taken or the participant's horizon differs
            from the participants already present.
        """
        if any(other.key == participant.key for other in self.participants):
            raise ValueError(f"A participant with key '{participant.key}' already exists")
        if self.participants and participant.points != self.points:
            raise ValueError(
                f"Participant '{participant.key}' has {participant.points} points; "
                f"the order has {self.points}"
            )

        if participant.user:
            self.users.append(participant)
        else:
            self.producers.append(participant)
        return self

    # ------------------------------------------------------------------
    # Participant groups
    # ------------------------------------------------------------------

    @property
    def participants(self) -> list[Participant]:
        return [*self.producers, *self.users]

    @property
    def points(self) -> int:
        participants = self.participants
        return participants[0].points if participants else POINTS

    @property
    def always_on(self) -> list[Producer]:
        return [producer for producer in self.producers if producer.always_on]

    @property
    def flexible(self) -> list[Producer]:
        return [producer for producer in self.producers if producer.flexible]

    @property
    def storages(self) -> list[Producer]:
        return [producer for producer in self.producers if producer.storage]

    def flexible_at(self, point: int, flexible: Sequence[Producer] | None = None) -> list[Producer]:
        """Return the dispatch sequence for *point*.

        Producers with a per-point cost are slotted in front of the first
        fixed-cost producer that is more expensive in *point*; every other
        producer keeps its position.
        """
        flexible = self.flexible if flexible is None else flexible
        sequence = [producer for producer in flexible if not producer.cost_strategy.variable]
        variable = [producer for producer in flexible if producer.cost_strategy.variable]

        for producer in merit_order(variable, point):
            cost = producer.sortable_cost(point)
            index = next(
                (
                    position
                    for position, other in enumerate(sequence)
                    if other.sortable_cost(point) > cost
                ),
                len(sequence),
            )
            sequence.insert(index, producer)

        return sequence

    def __getitem__(self, key: str) -> Participant:
        for participant in self.participants:
            if participant.key == key:
                return participant
        raise KeyError(f"No participant with key '{key}'")

    def __contains__(self, key: str) -> bool:
        return any(participant.key == key for participant in self.participants)

    # ------------------------------------------------------------------
    # Demand
    # ------------------------------------------------------------------

    def demand_at(self, point: int) -> float:
        """Total user demand in *point* (MW)."""
        return sum(user.demand_at(point) for user in self.users)

    def demand_window(self, start: int, size: int) -> np.ndarray:
        """Total user demand in the points ``[start, start + size)``."""
        total = np.zeros(min(size, self.points - start))
        for user in self.users:
            total += user.load_curve.window(start, size)
        return total

    def demand_curve(self) -> Curve:
        """Total user demand in every point."""
        total = np.zeros(self.points)
        for user in self.users:
            total += user.load_curve.values
        return Curve(total)

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Clear producer curves, storage reserves and the price curve."""
        for participant in self.participants:
            participant.reset()
        self.price_curve = PriceCurve(self.points)

    def calculate(self, calculator: "Calculator | None" = None) -> "Order":
        """Run *calculator* (the exact per-point calculator by default) on this order."""
        if calculator is None:
            from merit_dispatch.dispatch.calculator import Calculator

            calculator = Calculator()
        return calculator.calculate(self)

    def __repr__(self) -> str:
        return f"<Order producers={len(self.producers)} users={len(self.users)} points={self.points}>"
