"""
Pure day-step function.

``DayEngine.simulate_day`` takes a session value, the collaborator inputs for
the day and a seeded random source, and returns a new session. It performs no
I/O and never mutates its arguments; the Day Stepper owns everything
asynchronous around it.

Order of one simulated day:
    1. draw the market event           (events stream)
    2. allocate demand                 (demand stream, pre-drift metrics)
    3. resolve per-product financials  (pre-drift metrics)
    4. book totals on the ledger
    5. drift the funnel metrics        (drift stream)
    6. advance the day and append cumulative profit to history
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from dropsim_core.config import SimulationSettings
from dropsim_core.errors import EmptyCatalogError
from dropsim_core.models.market import BudgetAllocation, SeasonalityFactor
from dropsim_core.models.product import Product
from dropsim_core.models.state import MarketEvent, SimulationSession
from dropsim_core.services.demand_allocator import DemandAllocation, DemandAllocator, visitor_pool
from dropsim_core.services.financial_resolver import (
    FinancialResolver,
    PerformanceReport,
    ProductFinancials,
)
from dropsim_core.services.ledger import DayTotals, Ledger
from dropsim_core.services.market_events import MarketEventGenerator
from dropsim_core.services.metrics_drift import MetricsDriftModel
from reproducibility.deterministic_rng import SimulationRNG

logger = logging.getLogger(__name__)


def factors_by_product(factors: Iterable[SeasonalityFactor]) -> Dict[str, SeasonalityFactor]:
    return {f.product_id: f for f in factors}


@dataclass(frozen=True)
class DayInputs:
    """Collaborator data gathered before the arithmetic starts."""

    products: Tuple[Product, ...]
    allocations: Tuple[BudgetAllocation, ...] = ()
    seasonality: Mapping[str, SeasonalityFactor] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        products: Sequence[Product],
        allocations: Sequence[BudgetAllocation] = (),
        seasonality: Iterable[SeasonalityFactor] = (),
    ) -> DayInputs:
        return cls(
            products=tuple(products),
            allocations=tuple(allocations),
            seasonality=factors_by_product(seasonality),
        )


@dataclass(frozen=True)
class DayOutcome:
    session: SimulationSession
    event: Optional[MarketEvent]
    allocation: DemandAllocation
    financials: Tuple[ProductFinancials, ...]
    totals: DayTotals

    @property
    def reports(self) -> Tuple[PerformanceReport, ...]:
        return tuple(f.to_report() for f in self.financials)


class DayEngine:
    """Wires the day-model services together from ``SimulationSettings``."""

    def __init__(self, settings: Optional[SimulationSettings] = None) -> None:
        self.settings = settings or SimulationSettings()
        s = self.settings
        self.events = MarketEventGenerator(probability=s.event_probability)
        self.allocator = DemandAllocator(
            inventory_policy=s.inventory_policy,
            marketing_divisor=s.marketing_conversion_divisor,
        )
        self.resolver = FinancialResolver(
            shipping_per_order=s.shipping_per_order,
            return_loss_share=s.return_loss_share,
            marketing_spend_rate=s.marketing_spend_rate,
        )
        self.ledger = Ledger(drawdown=s.marketing_drawdown, drawdown_rate=s.marketing_drawdown_rate)
        self.drift = MetricsDriftModel()

    def simulate_day(
        self, session: SimulationSession, inputs: DayInputs, rng: SimulationRNG
    ) -> DayOutcome:
        if not inputs.products:
            raise EmptyCatalogError()

        event = self.events.draw(rng.events)
        visitors = visitor_pool(
            session.day, self.settings.visitor_base, self.settings.visitor_growth_per_day
        )
        allocation = self.allocator.allocate(
            visitors=visitors,
            products=inputs.products,
            allocations=inputs.allocations,
            seasonality=inputs.seasonality,
            conversion_rate=session.metrics.conversion_rate,
            event=event,
            inventory=session.state.inventory,
            rng=rng.demand,
        )
        catalog = {p.id: p for p in inputs.products}
        financials = self.resolver.resolve(allocation, catalog, session.metrics.return_rate)
        totals = self.ledger.totals(financials, event)
        state = self.ledger.apply(session.state, totals)
        metrics = self.drift.step(session.metrics, rng.drift)

        next_session = replace(
            session,
            state=state,
            metrics=metrics,
            day=session.day + 1,
            current_event=event,
            history=session.history + (state.profit,),
        )
        logger.debug(
            "Day %d simulated (%s path): orders=%d revenue=%s expenses=%s",
            next_session.day,
            allocation.mode,
            totals.orders,
            totals.revenue,
            totals.expenses,
        )
        return DayOutcome(
            session=next_session,
            event=event,
            allocation=allocation,
            financials=financials,
            totals=totals,
        )


def simulate_day(
    session: SimulationSession,
    inputs: DayInputs,
    rng: SimulationRNG,
    settings: Optional[SimulationSettings] = None,
) -> DayOutcome:
    """Convenience wrapper around ``DayEngine(settings).simulate_day``."""
    return DayEngine(settings).simulate_day(session, inputs, rng)


__all__ = ["DayEngine", "DayInputs", "DayOutcome", "factors_by_product", "simulate_day"]
