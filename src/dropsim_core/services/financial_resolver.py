"""
Per-Product Financial Resolver.

Turns the allocator's order counts into money for each product:

    revenue   = orders * selling_price
    cost      = orders * product_cost
    shipping  = orders * shipping_per_order
    returns   = revenue * (return_rate / 100) * return_loss_share
    marketing = min(allocated * marketing_spend_rate, available)
    expenses  = cost + shipping + returns + marketing
    profit    = revenue - expenses

Every figure is a cents-quantized ``Money``, so the per-product profit is exact.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple

from dropsim_core.models.product import Product
from dropsim_core.services.demand_allocator import DemandAllocation, ProductDemand
from money import Money, sum_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductFinancials:
    product_id: str
    orders: int
    revenue: Money
    cost: Money
    shipping: Money
    returns: Money
    marketing_spend: Money
    seasonality: float = 1.0
    trend: float = 1.0

    @property
    def expenses(self) -> Money:
        return self.cost + self.shipping + self.returns + self.marketing_spend

    @property
    def profit(self) -> Money:
        return self.revenue - self.expenses

    def to_report(self) -> PerformanceReport:
        return PerformanceReport(
            product_id=self.product_id,
            orders=self.orders,
            revenue=self.revenue,
            expenses=self.expenses,
            profit=self.profit,
            marketing_spend=self.marketing_spend,
            seasonality_applied=self.seasonality,
            trend_applied=self.trend,
        )


@dataclass(frozen=True)
class PerformanceReport:
    """What the reporting collaborator receives for one product and one day."""

    product_id: str
    orders: int
    revenue: Money
    expenses: Money
    profit: Money
    marketing_spend: Money
    seasonality_applied: float
    trend_applied: float

    def to_payload(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "orders": self.orders,
            "revenue": self.revenue.to_float(),
            "expenses": self.expenses.to_float(),
            "profit": self.profit.to_float(),
            "marketingSpend": self.marketing_spend.to_float(),
            "seasonalityApplied": self.seasonality_applied,
            "trendApplied": self.trend_applied,
        }


class FinancialResolver:
    def __init__(
        self,
        shipping_per_order: float = 5.0,
        return_loss_share: float = 0.5,
        marketing_spend_rate: float = 0.05,
    ) -> None:
        self.shipping_per_order = Money.from_dollars(shipping_per_order)
        self.return_loss_share = return_loss_share
        self.marketing_spend_rate = marketing_spend_rate

    def resolve_line(self, line: ProductDemand, product: Product, return_rate: float) -> ProductFinancials:
        revenue = product.selling_price * line.orders
        spend = min(line.allocated * self.marketing_spend_rate, line.available)
        return ProductFinancials(
            product_id=line.product_id,
            orders=line.orders,
            revenue=revenue,
            cost=product.cost * line.orders,
            shipping=self.shipping_per_order * line.orders,
            returns=revenue * ((return_rate / 100.0) * self.return_loss_share),
            marketing_spend=Money.from_dollars(max(0.0, spend)),
            seasonality=line.seasonality,
            trend=line.trend,
        )

    def resolve(
        self,
        allocation: DemandAllocation,
        catalog: Mapping[str, Product],
        return_rate: float,
    ) -> Tuple[ProductFinancials, ...]:
        """Resolve every allocated line; the return rate is the pre-drift metric."""
        results = []
        for line in allocation.lines:
            product = catalog.get(line.product_id)
            if product is None:
                # Allocator only emits catalog products
                raise KeyError(f"product {line.product_id!r} is not in the catalog")
            results.append(self.resolve_line(line, product, return_rate))
        return tuple(results)


def total_revenue(results: Tuple[ProductFinancials, ...]) -> Money:
    return sum_money(r.revenue for r in results)


def total_expenses(results: Tuple[ProductFinancials, ...]) -> Money:
    return sum_money(r.expenses for r in results)


def total_marketing_spend(results: Tuple[ProductFinancials, ...]) -> Money:
    return sum_money(r.marketing_spend for r in results)


__all__ = [
    "FinancialResolver",
    "PerformanceReport",
    "ProductFinancials",
    "total_expenses",
    "total_marketing_spend",
    "total_revenue",
]
