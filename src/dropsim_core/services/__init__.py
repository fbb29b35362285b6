"""Day-model services: events, demand, financials, ledger, drift and learner actions."""

from .business_actions import increase_marketing, restock_inventory
from .demand_allocator import DemandAllocation, DemandAllocator, ProductDemand, round_half_up
from .financial_resolver import FinancialResolver, PerformanceReport, ProductFinancials
from .ledger import DayTotals, Ledger
from .market_events import EVENT_CATALOG, MarketEventGenerator
from .metrics_drift import MetricBounds, MetricsDriftModel, override_average_order_value
from .seasonality import CatalogSeasonalityProvider, calculate_seasonality, calculate_trend

__all__ = [
    "CatalogSeasonalityProvider",
    "DayTotals",
    "DemandAllocation",
    "DemandAllocator",
    "EVENT_CATALOG",
    "FinancialResolver",
    "Ledger",
    "MarketEventGenerator",
    "MetricBounds",
    "MetricsDriftModel",
    "PerformanceReport",
    "ProductDemand",
    "ProductFinancials",
    "calculate_seasonality",
    "calculate_trend",
    "increase_marketing",
    "override_average_order_value",
    "restock_inventory",
    "round_half_up",
]
