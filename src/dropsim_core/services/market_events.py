"""
Market Event Generator.

Once per simulated day a uniform draw decides whether a market event fires.
A fired event is picked uniformly from ``EVENT_CATALOG`` and lasts exactly one
day; a day without a fired event clears whatever event was active before.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from dropsim_core.models.state import MarketEvent
from reproducibility.deterministic_rng import RandomSource

logger = logging.getLogger(__name__)

DEFAULT_EVENT_PROBABILITY = 0.10

EVENT_CATALOG: Tuple[MarketEvent, ...] = (
    MarketEvent(
        title="Supply Chain Disruption",
        description="Global shipping delays are affecting delivery times.",
        sales_delta_pct=-15,
    ),
    MarketEvent(
        title="Trending Product",
        description="One of your products went viral on social media!",
        sales_delta_pct=30,
    ),
    MarketEvent(
        title="Supplier Price Increase",
        description="Your supplier has increased costs by 10%.",
        expense_delta_pct=10,
    ),
    MarketEvent(
        title="Competitor Sale",
        description="A major competitor is running a big promotion.",
        sales_delta_pct=-20,
    ),
    MarketEvent(
        title="Holiday Season",
        description="Seasonal shopping has increased overall demand.",
        sales_delta_pct=25,
    ),
    MarketEvent(
        title="Shipping Carrier Promotion",
        description="Your shipping carrier is offering a discount.",
        expense_delta_pct=-15,
    ),
    MarketEvent(
        title="Product Quality Issue",
        description="Customers reported issues with a recent batch.",
        sales_delta_pct=-10,
        expense_delta_pct=5,
    ),
)


class MarketEventGenerator:
    """Draws the market event for one simulated day."""

    def __init__(
        self,
        catalog: Sequence[MarketEvent] = EVENT_CATALOG,
        probability: float = DEFAULT_EVENT_PROBABILITY,
    ) -> None:
        if not catalog:
            raise ValueError("event catalog must not be empty")
        if not 0.0 <= probability <= 1.0:
            raise ValueError("event probability must be within [0, 1]")
        self.catalog: Tuple[MarketEvent, ...] = tuple(catalog)
        self.probability = probability

    def draw(self, rng: RandomSource) -> Optional[MarketEvent]:
        """
        Return today's event, or None when no event fires.

        Consumes one draw for the trigger and, when it fires, one more for the pick.
        """
        if rng.random() >= self.probability:
            return None
        index = min(int(rng.random() * len(self.catalog)), len(self.catalog) - 1)
        event = self.catalog[index]
        logger.debug("Market event triggered: %s", event.title)
        return event


def apply_sales_impact(conversion: float, event: Optional[MarketEvent]) -> float:
    """Scale a conversion probability by the active event's sales impact."""
    if event is None:
        return conversion
    return conversion * event.sales_multiplier


__all__ = [
    "DEFAULT_EVENT_PROBABILITY",
    "EVENT_CATALOG",
    "MarketEventGenerator",
    "apply_sales_impact",
]
