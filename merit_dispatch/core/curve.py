"""Fixed-length value series indexed by time point.

A :class:`Curve` is the shared container for demand, load and cost series.
Values default to zero until set.  A :class:`LoadProfile` is a curve
normalised to sum to one, so that scaling it by an annual energy gives the
energy (and, for one-hour points, the mean MW load) in each point.

Public API
----------
Curve        - Numpy-backed series with point read/write and slicing.
LoadProfile  - Normalised shape curve, optionally loaded from CSV.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator

import numpy as np
import pandas as pd

from merit_dispatch.config.defaults import CSV_DELIMITER, POINTS

logger = logging.getLogger(__name__)


class Curve:
    """An ordered sequence of ``length`` floats, one per time point.

    The curve does not enforce any capacity bounds on its values; callers are
    responsible for that.  Points outside ``[0, length)`` raise ``IndexError``.
    """

    __slots__ = ("_values",)

    def __init__(
        self,
        values: Iterable[float] | np.ndarray | None = None,
        length: int = POINTS,
    ) -> None:
        if values is None:
            if length < 0:
                raise ValueError(f"length must be >= 0, got {length}")
            self._values = np.zeros(length, dtype=float)
        elif isinstance(values, np.ndarray):
            self._values = values.astype(float, copy=True)
        else:
            self._values = np.array(list(values), dtype=float)

    @classmethod
    def from_scalar(cls, value: float, length: int = POINTS) -> "Curve":
        """Return a curve with *value* repeated across every point."""
        return cls(np.full(length, float(value)))

    # ------------------------------------------------------------------
    # Point access
    # ------------------------------------------------------------------

    def _check(self, point: int) -> None:
        if not 0 <= point < len(self._values):
            raise IndexError(
                f"point {point} is outside the curve range [0, {len(self._values)})"
            )

    def get(self, point: int) -> float:
        """Return the value at *point* (0.0 if never set)."""
        self._check(point)
        return float(self._values[point])

    def set(self, point: int, value: float) -> None:
        """Set the value at *point*."""
        self._check(point)
        self._values[point] = value

    def subtract_at(self, point: int, amount: float) -> float:
        """Subtract *amount* from the value at *point*; return the new value."""
        self._check(point)
        self._values[point] -= amount
        return float(self._values[point])

    def reset(self) -> None:
        """Zero every point."""
        self._values.fill(0.0)

    # ------------------------------------------------------------------
    # Slicing
    # ------------------------------------------------------------------

    def stride(self, step: int, offset: int = 0) -> "Curve":
        """Return every *step*-th value starting at *offset* as a new curve."""
        if step < 1:
            raise ValueError(f"step must be >= 1, got {step}")
        return Curve(self._values[offset::step].copy())

    def window(self, start: int, size: int) -> np.ndarray:
        """Return a copy of the values in ``[start, start + size)``.

        The window is truncated at the end of the curve.
        """
        self._check(start)
        return self._values[start : start + size].copy()

    # ------------------------------------------------------------------
    # Aggregates and conversion
    # ------------------------------------------------------------------

    @property
    def values(self) -> np.ndarray:
        """A copy of the underlying values."""
        return self._values.copy()

    def sum(self) -> float:
        return float(self._values.sum())

    def max(self) -> float:
        return float(self._values.max()) if len(self._values) else 0.0

    def to_list(self) -> list[float]:
        return self._values.tolist()

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values.tolist())

    def __getitem__(self, point: int) -> float:
        return self.get(point)

    def __add__(self, other: "Curve") -> "Curve":
        self._check_same_length(other)
        return Curve(self._values + other._values)

    def __sub__(self, other: "Curve") -> "Curve":
        self._check_same_length(other)
        return Curve(self._values - other._values)

    def _check_same_length(self, other: "Curve") -> None:
        if len(other) != len(self):
            raise ValueError(
                f"Cannot combine curves of different lengths "
                f"({len(self)} and {len(other)})"
            )

    def __repr__(self) -> str:
        return f"<Curve length={len(self)} sum={self.sum():.6g}>"


class LoadProfile(Curve):
    """A curve normalised so that its values sum to one.

    An all-zero profile stays all-zero: a participant using it never produces
    or consumes anything.
    """

    __slots__ = ()

    def __init__(self, values: Iterable[float] | np.ndarray) -> None:
        super().__init__(values)
        if np.any(self._values < 0.0):
            raise ValueError("Load profile values must be >= 0")
        total = self._values.sum()
        if total > 0.0:
            self._values /= total

    @classmethod
    def flat(cls, length: int = POINTS) -> "LoadProfile":
        """Return a profile that spreads energy evenly over *length* points."""
        return cls(np.ones(length))

    @classmethod
    def from_csv(cls, path: str | Path, column: str) -> "LoadProfile":
        """Load *column* from the CSV file at *path* and normalise it.

        Raises
        ------
        FileNotFoundError
            When *path* does not exist.
        ValueError
            When the column is missing or contains NaN values.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(
                f"Load profile CSV not found: '{path}'. "
                "Check the 'profiles' block in the scenario JSON."
            )

        df = pd.read_csv(path, sep=CSV_DELIMITER)
        if column not in df.columns:
            raise ValueError(
                f"Load profile CSV '{path}' has no column '{column}'. "
                f"Available columns: {sorted(df.columns)}."
            )
        if df[column].isna().any():
            raise ValueError(
                f"Load profile column '{column}' in '{path}' contains "
                f"{int(df[column].isna().sum())} empty value(s)."
            )

        logger.debug("Loaded profile '%s' from '%s' (%d points)", column, path, len(df))
        return cls(df[column].to_numpy(dtype=float))

    def load_at(self, point: int, energy: float) -> float:
        """Return the share of *energy* falling in *point*."""
        return self.get(point) * energy
