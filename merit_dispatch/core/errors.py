"""Exceptions raised by participant construction and merit-order calculation.

Every error is local to a single construction or calculation run and is never
retried internally; the caller decides whether to fix the configuration and
run again.
"""

from __future__ import annotations


class MeritError(RuntimeError):
    """Base class for all merit-order errors."""


class MissingAttributeError(MeritError):
    """A participant descriptor lacks a required attribute."""

    def __init__(self, attribute: str, participant_type: str) -> None:
        self.attribute = attribute
        self.participant_type = participant_type
        super().__init__(
            f"Missing attribute '{attribute}' for {participant_type}. "
            "Add it to the participant descriptor."
        )


class IncorrectProducerOrder(MeritError):
    """Flexible producers were not sorted in ascending base cost."""

    def __init__(self, producer_key: str, cost: float, previous_cost: float) -> None:
        self.producer_key = producer_key
        self.cost = cost
        self.previous_cost = previous_cost
        super().__init__(
            f"Producer '{producer_key}' (cost {cost}) follows a producer with "
            f"higher cost {previous_cost}; producers must be in merit order."
        )


class SubZeroDemand(MeritError):
    """Always-on supply exceeds demand and no storage can absorb the excess."""

    def __init__(self, point: int, demand: float) -> None:
        self.point = point
        self.demand = demand
        super().__init__(
            f"Total demand in point {point} was below zero ({demand:.6g}) after "
            "assigning always-on producers and storage."
        )


class InvalidChunkSize(MeritError):
    """A chunked calculator was configured with a chunk size of one or less."""

    def __init__(self, chunk_size: int) -> None:
        self.chunk_size = chunk_size
        super().__init__(
            f"Chunk size must be greater than 1, got {chunk_size}. "
            "Use the default Calculator to compute every point."
        )
