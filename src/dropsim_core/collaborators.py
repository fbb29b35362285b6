"""
Contracts for the external collaborators consumed by the Day Stepper, plus
in-memory implementations for tests, the CLI and single-process deployments.

Remote adapters (see ``dropsim_core.http_collaborators``) raise
``CollaboratorUnavailable`` when they cannot answer; the stepper decides how to
degrade.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Protocol, runtime_checkable

from dropsim_core.models.market import BudgetAllocation, SeasonalityFactor
from dropsim_core.models.product import Product
from dropsim_core.services.financial_resolver import PerformanceReport

logger = logging.getLogger(__name__)


@runtime_checkable
class CatalogProvider(Protocol):
    async def get_catalog(self) -> List[Product]: ...


@runtime_checkable
class BudgetProvider(Protocol):
    async def get_budget_allocations(self) -> List[BudgetAllocation]: ...


@runtime_checkable
class SeasonalityProvider(Protocol):
    async def get_seasonality(self) -> List[SeasonalityFactor]: ...


@runtime_checkable
class PerformanceReporter(Protocol):
    async def report_product_performance(self, report: PerformanceReport) -> None: ...


class StaticCatalog:
    """Catalog held in memory; ``products`` may be replaced between steps."""

    def __init__(self, products: Optional[Iterable[Product]] = None) -> None:
        self.products: List[Product] = list(products or [])

    def snapshot(self) -> List[Product]:
        return list(self.products)

    async def get_catalog(self) -> List[Product]:
        return self.snapshot()


class StaticBudget:
    def __init__(self, allocations: Optional[Iterable[BudgetAllocation]] = None) -> None:
        self.allocations: List[BudgetAllocation] = list(allocations or [])

    async def get_budget_allocations(self) -> List[BudgetAllocation]:
        return list(self.allocations)


class StaticSeasonality:
    def __init__(self, factors: Optional[Iterable[SeasonalityFactor]] = None) -> None:
        self.factors: List[SeasonalityFactor] = list(factors or [])

    async def get_seasonality(self) -> List[SeasonalityFactor]:
        return list(self.factors)


class RecordingReporter:
    """Keeps every delivered report; handy for assertions and the CLI summary."""

    def __init__(self) -> None:
        self.reports: List[PerformanceReport] = []

    async def report_product_performance(self, report: PerformanceReport) -> None:
        self.reports.append(report)


def demo_catalog() -> List[Product]:
    """Starter products offered to learners who have not built a catalog yet."""
    return [
        Product(
            id="DEMO1",
            name="Posture Corrector Pro",
            category="Health",
            cost=8.50,
            selling_price=29.99,
        ),
        Product(
            id="DEMO2",
            name="LED Strip Lights RGB",
            category="Home",
            cost=5.20,
            selling_price=24.99,
        ),
        Product(
            id="DEMO3",
            name="Wireless Earbuds TWS",
            category="Electronics",
            cost=12.00,
            selling_price=39.99,
        ),
    ]


__all__ = [
    "BudgetProvider",
    "CatalogProvider",
    "PerformanceReporter",
    "RecordingReporter",
    "SeasonalityProvider",
    "StaticBudget",
    "StaticCatalog",
    "StaticSeasonality",
    "demo_catalog",
]
