import pytest

from dropsim_core.models.state import FunnelMetrics
from dropsim_core.services.metrics_drift import (
    DEFAULT_BOUNDS,
    MetricsDriftModel,
    override_average_order_value,
)
from reproducibility.deterministic_rng import DeterministicRNG


def test_step_moves_each_metric_by_a_bounded_amount(scripted):
    model = MetricsDriftModel()
    # Draw order: conversion, abandonment, aov, returns
    stepped = model.step(FunnelMetrics(), scripted([1.0, 0.0, 0.75, 0.5]))
    assert stepped.conversion_rate == pytest.approx(2.7 + 0.1)
    assert stepped.abandonment_rate == pytest.approx(68.0 - 0.5)
    assert stepped.average_order_value == pytest.approx(47.0 + 0.5)
    assert stepped.return_rate == pytest.approx(8.0)


def test_step_clamps_at_the_edges(scripted):
    model = MetricsDriftModel()
    at_top = FunnelMetrics(
        conversion_rate=5.0, abandonment_rate=80.0, average_order_value=70.0, return_rate=15.0
    )
    assert model.step(at_top, scripted([0.999])) == at_top
    at_bottom = FunnelMetrics(
        conversion_rate=1.0, abandonment_rate=50.0, average_order_value=30.0, return_rate=5.0
    )
    assert model.step(at_bottom, scripted([0.0])) == at_bottom


def test_metrics_stay_in_bounds_over_many_steps():
    model = MetricsDriftModel()
    rng = DeterministicRNG("metrics_drift", 99)
    metrics = FunnelMetrics()
    for _ in range(1000):
        metrics = model.step(metrics, rng)
        assert model.within_bounds(metrics)


def test_clamp_repairs_out_of_range_values():
    model = MetricsDriftModel()
    repaired = model.clamp(
        FunnelMetrics(
            conversion_rate=9.0, abandonment_rate=10.0, average_order_value=500.0, return_rate=-1
        )
    )
    assert repaired == FunnelMetrics(
        conversion_rate=5.0, abandonment_rate=50.0, average_order_value=70.0, return_rate=5.0
    )


def test_override_average_order_value():
    metrics = FunnelMetrics()
    assert override_average_order_value(metrics, [29.99, 24.99, 39.99]).average_order_value == (
        pytest.approx((29.99 + 24.99 + 39.99) / 3)
    )
    # Mean outside the range is clamped
    assert override_average_order_value(metrics, [5.0]).average_order_value == (
        DEFAULT_BOUNDS["average_order_value"].low
    )
    assert override_average_order_value(metrics, []) is metrics
