"""Tests for QuantizingCalculator and AveragingCalculator."""

from __future__ import annotations

import pytest

from merit_dispatch.core.curve import Curve, LoadProfile
from merit_dispatch.core.errors import InvalidChunkSize
from merit_dispatch.dispatch.calculator import (
    AveragingCalculator,
    Calculator,
    QuantizingCalculator,
    build_calculator,
)
from merit_dispatch.dispatch.order import Order
from merit_dispatch.participants.participant import User
from merit_dispatch.participants.producers import DispatchableProducer, MustRunProducer
from merit_dispatch.participants.storage import Storage


# ---------------------------------------------------------------------------
# Helpers / factory
# ---------------------------------------------------------------------------


def make_gas(points: int, capacity: float = 100.0) -> DispatchableProducer:
    return DispatchableProducer(
        key="gas",
        marginal_costs=40.0,
        output_capacity_per_unit=capacity,
        number_of_units=1.0,
        availability=1.0,
        points=points,
    )


def make_must_run(output: list[float]) -> MustRunProducer:
    return MustRunProducer(
        key="chp",
        marginal_costs=0.0,
        output_capacity_per_unit=1.0,
        number_of_units=1.0,
        availability=1.0,
        load_profile=LoadProfile(output),
        full_load_hours=sum(output),
    )


def make_storage(points: int, volume: float) -> Storage:
    return Storage(
        key="battery",
        output_capacity_per_unit=5.0,
        volume_per_unit=volume,
        points=points,
    )


def make_user(demand: list[float]) -> User:
    return User(key="demand", load_curve=Curve(demand))


# ---------------------------------------------------------------------------
# Chunk size
# ---------------------------------------------------------------------------


class TestChunkSize:

    @pytest.mark.parametrize("cls", [QuantizingCalculator, AveragingCalculator])
    @pytest.mark.parametrize("chunk_size", [1, 0, -4])
    def test_chunk_size_below_two_raises(self, cls, chunk_size: int) -> None:
        with pytest.raises(InvalidChunkSize, match="greater than 1"):
            cls(chunk_size)

    def test_chunk_size_two_is_accepted(self) -> None:
        assert QuantizingCalculator(2).chunk_size == 2

    def test_default_chunk_size(self) -> None:
        assert AveragingCalculator().chunk_size == 8

    def test_build_calculator_with_chunk_size(self) -> None:
        calculator = build_calculator("averaging", 4)
        assert isinstance(calculator, AveragingCalculator)
        assert calculator.chunk_size == 4

    def test_build_calculator_rejects_small_chunk(self) -> None:
        with pytest.raises(InvalidChunkSize):
            build_calculator("quantizing", 1)


# ---------------------------------------------------------------------------
# Quantizing
# ---------------------------------------------------------------------------


class TestQuantizingCalculator:
    """The leading point of each chunk is computed and held."""

    def test_loads_are_held_across_chunk(self) -> None:
        gas = make_gas(8)
        order = Order([gas, make_user([1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0])])
        order.calculate(QuantizingCalculator(4))

        assert gas.load_curve.to_list() == [1.0, 1.0, 1.0, 1.0, 5.0, 5.0, 5.0, 5.0]
        assert all(order.price_curve.producer_at(p) is gas for p in range(8))

    def test_last_partial_chunk(self) -> None:
        gas = make_gas(6)
        order = Order([gas, make_user([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])])
        order.calculate(QuantizingCalculator(4))

        assert gas.load_curve.to_list() == [1.0, 1.0, 1.0, 1.0, 5.0, 5.0]

    def test_always_on_output_is_held(self) -> None:
        must_run = make_must_run([1.0, 2.0, 3.0, 4.0])
        gas = make_gas(4)
        Order([must_run, gas, make_user([9.0] * 4)]).calculate(QuantizingCalculator(2))

        assert must_run.load_curve.to_list() == pytest.approx([1.0, 1.0, 3.0, 3.0])
        assert gas.load_curve.to_list() == pytest.approx([8.0, 8.0, 6.0, 6.0])

    def test_unmet_leading_point_is_held(self) -> None:
        gas = make_gas(4, capacity=2.0)
        order = Order([gas, make_user([3.0, 1.0, 1.0, 1.0])])
        order.calculate(QuantizingCalculator(2))

        assert order.price_curve.producer_at(0) is None
        assert order.price_curve.producer_at(1) is None
        assert order.price_curve.producer_at(2) is gas

    def test_storage_excess_is_absorbed_in_held_points(self) -> None:
        must_run = make_must_run([6.0] * 8)
        storage = make_storage(8, volume=100.0)
        order = Order([must_run, storage, make_gas(8), make_user([4.0] * 8)])
        order.calculate(QuantizingCalculator(4))

        assert storage.load_curve.to_list() == pytest.approx([-2.0] * 8)
        assert storage.reserve.at(7) == pytest.approx(16.0)

    def test_storage_discharge_limited_by_reserve_in_held_points(self) -> None:
        """The reserve empties in the leading point; gas covers the held point."""
        must_run = make_must_run([6.0, 6.0, 0.0, 0.0])
        storage = make_storage(4, volume=10.0)
        gas = make_gas(4, capacity=10.0)
        order = Order([must_run, storage, gas, make_user([4.0] * 4)])
        order.calculate(QuantizingCalculator(2))

        assert storage.load_curve.to_list() == pytest.approx([-2.0, -2.0, 4.0, 0.0])
        assert storage.reserve.curve.to_list() == pytest.approx([2.0, 4.0, 0.0, 0.0])
        assert gas.load_curve.to_list() == pytest.approx([0.0, 0.0, 0.0, 4.0])
        assert order.price_curve.producer_at(3) is gas

    def test_storage_matches_exact_calculator(self) -> None:
        def build() -> Order:
            return Order([
                make_must_run([6.0, 6.0, 0.0, 0.0]),
                make_storage(4, volume=10.0),
                make_gas(4, capacity=10.0),
                make_user([4.0] * 4),
            ])

        exact = build().calculate(Calculator())
        quantized = build().calculate(QuantizingCalculator(2))

        for key in ("chp", "battery", "gas"):
            assert quantized[key].load_curve.to_list() == pytest.approx(
                exact[key].load_curve.to_list()
            )

    def test_matches_exact_calculator_for_constant_demand(self) -> None:
        def build() -> Order:
            return Order([make_must_run([2.0] * 8), make_gas(8), make_user([5.0] * 8)])

        exact = build().calculate(Calculator())
        quantized = build().calculate(QuantizingCalculator(3))

        for key in ("chp", "gas"):
            assert quantized[key].load_curve.to_list() == pytest.approx(
                exact[key].load_curve.to_list()
            )


# ---------------------------------------------------------------------------
# Averaging
# ---------------------------------------------------------------------------


class TestAveragingCalculator:
    """One allocation per chunk against the chunk's mean demand."""

    def test_mean_demand_is_allocated_to_every_point(self) -> None:
        gas = make_gas(4)
        order = Order([gas, make_user([2.0, 4.0, 6.0, 8.0])])
        order.calculate(AveragingCalculator(4))

        assert gas.load_curve.to_list() == pytest.approx([5.0] * 4)
        assert all(order.price_curve.producer_at(p) is gas for p in range(4))

    def test_always_on_keeps_true_output(self) -> None:
        must_run = make_must_run([0.0, 2.0, 0.0, 2.0])
        gas = make_gas(4)
        Order([must_run, gas, make_user([2.0, 4.0, 6.0, 8.0])]).calculate(AveragingCalculator(4))

        assert must_run.load_curve.to_list() == pytest.approx([0.0, 2.0, 0.0, 2.0])
        assert gas.load_curve.to_list() == pytest.approx([4.0] * 4)

    def test_does_not_assign_more_than_mean_demand(self) -> None:
        gas = make_gas(4, capacity=100.0)
        Order([gas, make_user([3.0] * 4)]).calculate(AveragingCalculator(2))
        assert gas.load_curve.to_list() == pytest.approx([3.0] * 4)

    def test_aggregate_output_within_aggregate_demand(self) -> None:
        demand = [2.0, 4.0, 6.0, 8.0, 1.0, 1.0, 3.0, 3.0]
        must_run = make_must_run([1.0] * 8)
        gas = make_gas(8)
        order = Order([must_run, gas, make_user(demand)])
        order.calculate(AveragingCalculator(4))

        supplied = must_run.load_curve.sum() + gas.load_curve.sum()
        assert supplied <= sum(demand) + 1e-9
        assert supplied == pytest.approx(sum(demand))

    def test_zero_demand_chunk_is_skipped(self) -> None:
        """Always-on output in a chunk without demand is not an error."""
        must_run = make_must_run([1.0] * 8)
        gas = make_gas(8)
        order = Order([must_run, gas, make_user([0.0] * 4 + [2.0] * 4)])
        order.calculate(AveragingCalculator(4))

        assert must_run.load_curve.to_list() == pytest.approx([0.0] * 4 + [1.0] * 4)
        assert gas.load_curve.to_list() == pytest.approx([0.0] * 4 + [1.0] * 4)
        assert all(order.price_curve.producer_at(p) is None for p in range(4))
        assert all(order.price_curve.producer_at(p) is gas for p in range(4, 8))

    def test_last_partial_chunk_uses_its_own_mean(self) -> None:
        gas = make_gas(6)
        Order([gas, make_user([1.0, 1.0, 1.0, 1.0, 2.0, 4.0])]).calculate(AveragingCalculator(4))
        assert gas.load_curve.to_list() == pytest.approx([1.0, 1.0, 1.0, 1.0, 3.0, 3.0])

    def test_storage_discharge_limited_by_reserve_in_held_points(self) -> None:
        must_run = make_must_run([6.0] * 4 + [0.0] * 4)
        storage = make_storage(8, volume=100.0)
        gas = make_gas(8)
        demand = [4.0] * 8
        order = Order([must_run, storage, gas, make_user(demand)])
        order.calculate(AveragingCalculator(4))

        assert storage.load_curve.to_list() == pytest.approx([-2.0] * 4 + [4.0, 4.0, 0.0, 0.0])
        assert gas.load_curve.to_list() == pytest.approx([0.0] * 6 + [4.0, 4.0])

        for point in range(8):
            supplied = must_run.load_at(point) + storage.load_at(point) + gas.load_at(point)
            assert supplied == pytest.approx(demand[point])
