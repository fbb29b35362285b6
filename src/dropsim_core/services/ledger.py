"""
Aggregator & Ledger: folds per-product financials into the business state.

The transition is computed in full before a new ``BusinessState`` is built, so
callers either see the whole day applied or nothing at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from dropsim_core.config import MarketingDrawdown
from dropsim_core.models.state import BusinessState, MarketEvent
from dropsim_core.services.financial_resolver import (
    ProductFinancials,
    total_expenses,
    total_marketing_spend,
    total_revenue,
)
from money import Money, max_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DayTotals:
    """What one simulated day added to the ledger."""

    revenue: Money
    raw_expenses: Money
    expenses: Money
    orders: int
    marketing_drawdown: Money

    @property
    def profit(self) -> Money:
        return self.revenue - self.expenses


class Ledger:
    def __init__(
        self,
        drawdown: MarketingDrawdown = MarketingDrawdown.EXPENSE_SHARE,
        drawdown_rate: float = 0.10,
    ) -> None:
        self.drawdown = drawdown
        self.drawdown_rate = drawdown_rate

    def totals(
        self, results: Sequence[ProductFinancials], event: Optional[MarketEvent]
    ) -> DayTotals:
        revenue = total_revenue(tuple(results))
        raw = total_expenses(tuple(results))
        final = raw * event.expense_multiplier if event is not None else raw
        if self.drawdown is MarketingDrawdown.SPEND:
            drawdown = total_marketing_spend(tuple(results))
        else:
            drawdown = final * self.drawdown_rate
        return DayTotals(
            revenue=revenue,
            raw_expenses=raw,
            expenses=final,
            orders=sum(r.orders for r in results),
            marketing_drawdown=drawdown,
        )

    def apply(self, state: BusinessState, totals: DayTotals) -> BusinessState:
        """Return the state after the day's totals are booked."""
        zero = Money.zero(state.marketing.currency)
        return BusinessState(
            revenue=state.revenue + totals.revenue,
            expenses=state.expenses + totals.expenses,
            orders=state.orders + totals.orders,
            inventory=max(0, state.inventory - totals.orders),
            marketing=max_money(zero, state.marketing - totals.marketing_drawdown),
        )


__all__ = ["DayTotals", "Ledger"]
