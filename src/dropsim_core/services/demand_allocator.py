"""
Demand Distribution Allocator.

Splits the day's visitor pool across the catalog and turns visitors into
order counts.

Primary path (some catalog product has a positive budget allocation):
    share_p    = allocated_p / total_allocated
    visitors_p = round(V * share_p)
    conv_p     = (conversion_rate / 100) * seasonality_p * trend_p
                 * (1 + allocated_p / marketing_divisor) * event_multiplier
    orders_p   = round(visitors_p * conv_p)

Fallback path (no qualifying allocation): one product is drawn uniformly and
receives the whole pool without the marketing multiplier; its orders are
capped by the inventory on hand.

``round`` is half-up throughout.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from dropsim_core.config import InventoryPolicy
from dropsim_core.errors import EmptyCatalogError
from dropsim_core.models.market import BudgetAllocation, SeasonalityFactor, neutral_factor
from dropsim_core.models.product import Product
from dropsim_core.models.state import MarketEvent
from dropsim_core.services.market_events import apply_sales_impact
from reproducibility.deterministic_rng import RandomSource

logger = logging.getLogger(__name__)

PRIMARY = "primary"
FALLBACK = "fallback"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, sending exact halves towards +inf."""
    return int(math.floor(value + 0.5))


def visitor_pool(day: int, base: float = 100.0, growth_per_day: float = 0.1) -> float:
    """Visitors available on the day that follows ``day`` completed days."""
    return base + day * growth_per_day


@dataclass(frozen=True)
class ProductDemand:
    """Demand resolved for one product on one day."""

    product_id: str
    visitors: int
    conversion: float
    potential_orders: int
    orders: int
    budget_share: float = 0.0
    allocated: float = 0.0
    available: float = 0.0
    seasonality: float = 1.0
    trend: float = 1.0


@dataclass(frozen=True)
class DemandAllocation:
    mode: str
    visitor_pool: float
    lines: Tuple[ProductDemand, ...]

    @property
    def total_orders(self) -> int:
        return sum(line.orders for line in self.lines)

    @property
    def total_visitors(self) -> int:
        return sum(line.visitors for line in self.lines)

    def orders_by_product(self) -> Dict[str, int]:
        return {line.product_id: line.orders for line in self.lines}


def merge_allocations(
    allocations: Sequence[BudgetAllocation], products: Sequence[Product]
) -> Dict[str, BudgetAllocation]:
    """
    Collapse allocations to one entry per catalog product.

    Entries for products outside the catalog are dropped; repeated entries for
    the same product are summed.
    """
    catalog_ids = {p.id for p in products}
    merged: Dict[str, BudgetAllocation] = {}
    for alloc in allocations:
        if alloc.product_id not in catalog_ids:
            continue
        prior = merged.get(alloc.product_id)
        if prior is not None:
            alloc = BudgetAllocation(
                product_id=alloc.product_id,
                allocated=prior.allocated + alloc.allocated,
                available=prior.available + alloc.available,
            )
        merged[alloc.product_id] = alloc
    return merged


class DemandAllocator:
    """Computes per-product order counts for one simulated day."""

    def __init__(
        self,
        inventory_policy: InventoryPolicy = InventoryPolicy.UNCAPPED,
        marketing_divisor: float = 1000.0,
    ) -> None:
        if marketing_divisor <= 0:
            raise ValueError("marketing_divisor must be > 0")
        self.inventory_policy = inventory_policy
        self.marketing_divisor = marketing_divisor

    def allocate(
        self,
        *,
        visitors: float,
        products: Sequence[Product],
        allocations: Sequence[BudgetAllocation],
        seasonality: Mapping[str, SeasonalityFactor],
        conversion_rate: float,
        event: Optional[MarketEvent],
        inventory: int,
        rng: RandomSource,
    ) -> DemandAllocation:
        if not products:
            raise EmptyCatalogError()

        merged = merge_allocations(allocations, products)
        qualifying = [
            (p, merged[p.id]) for p in products if p.id in merged and merged[p.id].allocated > 0
        ]
        if qualifying:
            return self._allocate_primary(
                visitors, qualifying, seasonality, conversion_rate, event, inventory
            )
        return self._allocate_fallback(
            visitors, products, merged, seasonality, conversion_rate, event, inventory, rng
        )

    def _allocate_primary(
        self,
        visitors: float,
        qualifying: List[Tuple[Product, BudgetAllocation]],
        seasonality: Mapping[str, SeasonalityFactor],
        conversion_rate: float,
        event: Optional[MarketEvent],
        inventory: int,
    ) -> DemandAllocation:
        total_allocated = sum(alloc.allocated for _, alloc in qualifying)
        lines: List[ProductDemand] = []
        for product, alloc in qualifying:
            factor = seasonality.get(product.id) or neutral_factor(product.id)
            share = alloc.allocated / total_allocated
            product_visitors = round_half_up(visitors * share)
            conversion = (
                (conversion_rate / 100.0)
                * factor.seasonality
                * factor.trend
                * (1 + alloc.allocated / self.marketing_divisor)
            )
            conversion = apply_sales_impact(conversion, event)
            orders = round_half_up(product_visitors * conversion)
            lines.append(
                ProductDemand(
                    product_id=product.id,
                    visitors=product_visitors,
                    conversion=conversion,
                    potential_orders=orders,
                    orders=orders,
                    budget_share=share,
                    allocated=alloc.allocated,
                    available=alloc.available,
                    seasonality=factor.seasonality,
                    trend=factor.trend,
                )
            )

        if self.inventory_policy is InventoryPolicy.CAPPED:
            lines = _cap_by_inventory(lines, inventory)

        return DemandAllocation(mode=PRIMARY, visitor_pool=visitors, lines=tuple(lines))

    def _allocate_fallback(
        self,
        visitors: float,
        products: Sequence[Product],
        merged: Mapping[str, BudgetAllocation],
        seasonality: Mapping[str, SeasonalityFactor],
        conversion_rate: float,
        event: Optional[MarketEvent],
        inventory: int,
        rng: RandomSource,
    ) -> DemandAllocation:
        index = min(int(rng.random() * len(products)), len(products) - 1)
        product = products[index]
        factor = seasonality.get(product.id) or neutral_factor(product.id)
        conversion = (conversion_rate / 100.0) * factor.seasonality * factor.trend
        conversion = apply_sales_impact(conversion, event)
        potential = round_half_up(visitors * conversion)
        actual = max(0, min(potential, inventory))
        alloc = merged.get(product.id)
        logger.debug(
            "No budget allocation; fallback to product %s (potential=%d, actual=%d)",
            product.id,
            potential,
            actual,
        )
        line = ProductDemand(
            product_id=product.id,
            visitors=round_half_up(visitors),
            conversion=conversion,
            potential_orders=potential,
            orders=actual,
            budget_share=1.0,
            allocated=alloc.allocated if alloc else 0.0,
            available=alloc.available if alloc else 0.0,
            seasonality=factor.seasonality,
            trend=factor.trend,
        )
        return DemandAllocation(mode=FALLBACK, visitor_pool=visitors, lines=(line,))


def _cap_by_inventory(lines: List[ProductDemand], inventory: int) -> List[ProductDemand]:
    """Grant stock to the largest allocations first; catalog order breaks ties."""
    remaining = max(0, inventory)
    granted: Dict[str, int] = {}
    ranked = sorted(enumerate(lines), key=lambda item: (-item[1].allocated, item[0]))
    for _, line in ranked:
        take = min(line.orders, remaining)
        granted[line.product_id] = take
        remaining -= take
    return [replace(line, orders=granted[line.product_id]) for line in lines]


__all__ = [
    "DemandAllocation",
    "DemandAllocator",
    "FALLBACK",
    "PRIMARY",
    "ProductDemand",
    "merge_allocations",
    "round_half_up",
    "visitor_pool",
]
