"""Energy reserve backing a storage participant.

The reserve holds a state-of-charge in MWh, bounded by ``[0, volume]``.  A
decay function is applied once per point, before any transaction in that
point, to model standing losses.  Excess energy offered beyond the free volume
is lost, and a withdrawal larger than the stored amount is truncated; callers
detect both through the returned amounts.

Points must be visited in non-decreasing order.  When points are skipped (as
the chunked calculators do), decay is still applied once for every point in
between so the state matches a point-by-point run without transactions.
"""

from __future__ import annotations

import logging
import math
from typing import Callable

from merit_dispatch.config.defaults import POINTS
from merit_dispatch.core.curve import Curve

logger = logging.getLogger(__name__)

DecayFunction = Callable[[float, int], float]
"""Pure function ``(state_of_charge, point) -> decayed_state_of_charge``."""


def no_decay(state: float, point: int) -> float:
    """Decay function that keeps the stored energy unchanged."""
    return state


def constant_decay(fraction: float) -> DecayFunction:
    """Return a decay function losing *fraction* of the stored energy per point.

    Args:
        fraction: Share of the state-of-charge lost per point, in [0, 1).

    Raises:
        ValueError: If *fraction* is outside [0, 1).
    """
    if not 0.0 <= fraction < 1.0:
        raise ValueError(f"Decay fraction must be in [0, 1), got {fraction}")

    retained = 1.0 - fraction

    def decay(state: float, point: int) -> float:
        return state * retained

    return decay


class Reserve:
    """A stateful energy accumulator with decay and a volume ceiling.

    Attributes
    ----------
    volume:
        Maximum energy that can be held, in MWh.
    curve:
        State-of-charge at the end of each settled point.
    """

    def __init__(
        self,
        volume: float = math.inf,
        decay: DecayFunction | None = None,
        length: int = POINTS,
    ) -> None:
        """Initialise an empty Reserve.

        Args:
            volume: Maximum state-of-charge in MWh (unbounded by default).
            decay: Optional decay function applied once per point.
            length: Number of points in the horizon (size of :attr:`curve`).

        Raises:
            ValueError: If *volume* is negative.
        """
        if volume < 0.0:
            raise ValueError(f"Reserve volume must be >= 0, got {volume}")

        self.volume: float = volume
        self.curve = Curve(length=length)
        self._decay = decay or no_decay
        self._level: float = 0.0
        self._point: int = -1

    # ------------------------------------------------------------------
    # Decay
    # ------------------------------------------------------------------

    def _decayed_level(self, point: int) -> float:
        """Return the level at *point* after pending decay, without mutating."""
        if point < self._point:
            raise ValueError(
                f"Reserve points must be visited in order: point {point} "
                f"requested after point {self._point}"
            )
        level = self._level
        for pending in range(self._point + 1, point + 1):
            if level <= 0.0:
                break
            level = min(max(self._decay(level, pending), 0.0), self.volume)
        return level

    def _settle(self, point: int) -> None:
        """Apply decay for every point up to and including *point* exactly once."""
        if point == self._point:
            return
        if point < self._point:
            raise ValueError(
                f"Reserve points must be visited in order: point {point} "
                f"requested after point {self._point}"
            )
        level = self._level
        for pending in range(self._point + 1, point + 1):
            if level > 0.0:
                level = min(max(self._decay(level, pending), 0.0), self.volume)
            self.curve.set(pending, level)
        self._level = level
        self._point = point

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def at(self, point: int) -> float:
        """Return the energy obtainable by :meth:`take` in *point*."""
        return self._decayed_level(point)

    def add(self, point: int, amount: float) -> float:
        """Store up to *amount* MWh in *point*; return the amount retained.

        Raises:
            ValueError: If *amount* is negative.
        """
        if amount < 0.0:
            raise ValueError(f"Amount added to a reserve must be >= 0, got {amount}")

        self._settle(point)
        stored = min(amount, self.volume - self._level)
        self._level += stored
        self.curve.set(point, self._level)
        return stored

    def take(self, point: int, amount: float) -> float:
        """Withdraw up to *amount* MWh in *point*; return the amount withdrawn.

        Raises:
            ValueError: If *amount* is negative.
        """
        if amount < 0.0:
            raise ValueError(f"Amount taken from a reserve must be >= 0, got {amount}")

        self._settle(point)
        withdrawn = min(amount, self._level)
        self._level -= withdrawn
        self.curve.set(point, self._level)
        return withdrawn

    def reset(self) -> None:
        """Empty the reserve and forget all settled points."""
        self._level = 0.0
        self._point = -1
        self.curve.reset()

    def __repr__(self) -> str:
        return f"<Reserve volume={self.volume:.6g} level={self._level:.6g}>"
