"""Domain models consumed and produced by the simulation engine."""

from .market import BudgetAllocation, SeasonalityFactor, neutral_factor
from .product import Product
from .state import BusinessState, FunnelMetrics, MarketEvent, SimulationSession

__all__ = [
    "BudgetAllocation",
    "BusinessState",
    "FunnelMetrics",
    "MarketEvent",
    "Product",
    "SeasonalityFactor",
    "SimulationSession",
    "neutral_factor",
]
