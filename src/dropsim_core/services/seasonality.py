"""
Seasonality and trend factors computed from the catalog itself.

Used when no remote seasonality collaborator is configured. Seasonality comes
from a month-by-category table; trend comes from the last few days of a
product's reported performance and is clamped to [0.8, 1.5].
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from datetime import date
from typing import Callable, Deque, Dict, List, Optional, Sequence, Tuple

from dropsim_core.models.market import SeasonalityFactor
from dropsim_core.models.product import Product

logger = logging.getLogger(__name__)

TREND_MIN = 0.8
TREND_MAX = 1.5
TREND_WINDOW = 7

# Index 0 is January
SEASONAL_CATEGORIES: Dict[str, Tuple[float, ...]] = {
    "electronics": (0.8, 0.7, 0.9, 1.0, 1.1, 1.2, 1.3, 1.2, 1.1, 1.2, 1.4, 1.5),
    "fashion": (0.6, 0.7, 1.0, 1.1, 1.2, 1.1, 0.9, 0.8, 1.0, 1.1, 1.3, 1.4),
    "home": (0.9, 0.8, 1.0, 1.2, 1.3, 1.1, 0.9, 0.9, 1.0, 1.1, 1.2, 1.3),
    "beauty": (0.8, 0.9, 1.0, 1.1, 1.2, 1.1, 1.0, 0.9, 1.0, 1.1, 1.2, 1.3),
    "fitness": (1.3, 1.4, 1.2, 1.1, 1.0, 0.9, 0.8, 0.9, 1.0, 1.1, 1.0, 1.2),
    "toys": (0.7, 0.6, 0.8, 0.9, 1.0, 1.1, 1.0, 0.9, 0.8, 0.9, 1.3, 1.5),
    "general": (1.0, 0.9, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 1.1, 1.2),
}


def calculate_seasonality(category: str, month: int) -> float:
    """Seasonal demand factor for ``category`` in ``month`` (1-12)."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be within 1..12, got {month}")
    factors = SEASONAL_CATEGORIES.get((category or "").lower(), SEASONAL_CATEGORIES["general"])
    return factors[month - 1]


def _mean_recent_change(values: Sequence[float], denominator: int) -> float:
    recent = list(values)[-3:]
    change = sum(b - a for a, b in zip(recent, recent[1:]))
    return change / denominator


def calculate_trend(recent_orders: Sequence[float], recent_revenue: Sequence[float]) -> float:
    """
    Momentum score from recent daily orders and revenue, oldest first.

    Fewer than three data points is neutral (1.0). The change over the last
    three points is averaged over the whole window, the same way the
    dashboard's stored trend factors were computed.
    """
    if len(recent_orders) < 3 or len(recent_revenue) < 3:
        return 1.0
    order_trend = _mean_recent_change(recent_orders, len(recent_orders) - 1)
    revenue_trend = _mean_recent_change(recent_revenue, len(recent_revenue) - 1)
    score = 1.0 + order_trend * 0.1 + revenue_trend * 0.001
    return max(TREND_MIN, min(TREND_MAX, score))


class CatalogSeasonalityProvider:
    """
    Seasonality collaborator backed by the seasonal table and local performance.

    ``record`` is fed each day's per-product orders and revenue; only the last
    ``TREND_WINDOW`` days are kept per product.
    """

    def __init__(
        self,
        catalog: Callable[[], Sequence[Product]],
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._catalog = catalog
        self._today = today or date.today
        self._history: Dict[str, Deque[Tuple[int, float]]] = defaultdict(
            lambda: deque(maxlen=TREND_WINDOW)
        )

    def record(self, product_id: str, orders: int, revenue: float) -> None:
        self._history[product_id].append((orders, revenue))

    async def get_seasonality(self) -> List[SeasonalityFactor]:
        month = self._today().month
        factors = []
        for product in self._catalog():
            history = self._history.get(product.id) or ()
            trend = calculate_trend([o for o, _ in history], [r for _, r in history])
            factors.append(
                SeasonalityFactor(
                    product_id=product.id,
                    seasonality=calculate_seasonality(product.category, month),
                    trend=trend,
                )
            )
        return factors


__all__ = [
    "CatalogSeasonalityProvider",
    "SEASONAL_CATEGORIES",
    "TREND_MAX",
    "TREND_MIN",
    "calculate_seasonality",
    "calculate_trend",
]
