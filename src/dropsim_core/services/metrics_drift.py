"""
Metrics Drift Model: a bounded random walk over the storefront funnel metrics.

Each metric moves by ``(u - 0.5) * step`` with ``u`` uniform in [0, 1) and is
clamped back into its range, so no sequence of draws can push a metric out of
bounds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from dropsim_core.models.state import FunnelMetrics
from reproducibility.deterministic_rng import RandomSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricBounds:
    low: float
    high: float
    step: float

    def clamp(self, value: float) -> float:
        return max(self.low, min(self.high, value))


DEFAULT_BOUNDS: Dict[str, MetricBounds] = {
    "conversion_rate": MetricBounds(1.0, 5.0, 0.2),
    "abandonment_rate": MetricBounds(50.0, 80.0, 1.0),
    "average_order_value": MetricBounds(30.0, 70.0, 2.0),
    "return_rate": MetricBounds(5.0, 15.0, 0.5),
}

# Draw order is fixed so that a seeded stream replays identically
_DRIFT_ORDER = ("conversion_rate", "abandonment_rate", "average_order_value", "return_rate")


class MetricsDriftModel:
    def __init__(self, bounds: Optional[Dict[str, MetricBounds]] = None) -> None:
        self.bounds = dict(DEFAULT_BOUNDS)
        if bounds:
            self.bounds.update(bounds)

    def step(self, metrics: FunnelMetrics, rng: RandomSource) -> FunnelMetrics:
        """Advance every metric by one bounded random-walk step."""
        values = {}
        for name in _DRIFT_ORDER:
            bound = self.bounds[name]
            current = getattr(metrics, name)
            values[name] = bound.clamp(current + (rng.random() - 0.5) * bound.step)
        return FunnelMetrics(**values)

    def clamp(self, metrics: FunnelMetrics) -> FunnelMetrics:
        """Force every metric into its range; used for values loaded from storage."""
        return FunnelMetrics(
            **{name: self.bounds[name].clamp(getattr(metrics, name)) for name in _DRIFT_ORDER}
        )

    def within_bounds(self, metrics: FunnelMetrics) -> bool:
        return all(
            self.bounds[name].low <= getattr(metrics, name) <= self.bounds[name].high
            for name in _DRIFT_ORDER
        )


def override_average_order_value(
    metrics: FunnelMetrics,
    selling_prices: Iterable[float],
    bounds: MetricBounds = DEFAULT_BOUNDS["average_order_value"],
) -> FunnelMetrics:
    """
    Reset the average order value to the catalog's mean selling price.

    The mean is clamped into the metric's range. An empty catalog leaves the
    metrics untouched.
    """
    prices = [float(p) for p in selling_prices]
    if not prices:
        return metrics
    mean_price = sum(prices) / len(prices)
    value = bounds.clamp(mean_price)
    logger.debug("Average order value reset from catalog: %.2f -> %.2f", mean_price, value)
    return FunnelMetrics(
        conversion_rate=metrics.conversion_rate,
        abandonment_rate=metrics.abandonment_rate,
        average_order_value=value,
        return_rate=metrics.return_rate,
    )


__all__ = [
    "DEFAULT_BOUNDS",
    "MetricBounds",
    "MetricsDriftModel",
    "override_average_order_value",
]
