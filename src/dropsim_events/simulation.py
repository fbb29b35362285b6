"""
Events published by the Day Stepper.

``DayCompleted`` is emitted once per successful step; ``MarketEventTriggered``
when a step draws a market event; ``ProductPerformanceReported`` per product
once its report reaches the reporting collaborator; ``SyncStatusChanged``
whenever snapshot persistence moves between states; ``LearnerActionApplied``
after a restock or marketing top-up is booked.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from money import Money

from .base import BaseEvent


@dataclass(kw_only=True)
class DayCompleted(BaseEvent):
    session_id: str
    day: int
    orders: int
    revenue: Money
    expenses: Money
    cumulative_profit: Money
    inventory: int
    mode: str = "primary"
    market_event: Optional[str] = None

    def __post_init__(self):
        super().__post_init__()
        if self.day < 1:
            raise ValueError(f"Completed day must be >= 1, got {self.day}")

    def to_summary_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "session_id": self.session_id,
            "day": self.day,
            "orders": self.orders,
            "revenue": str(self.revenue),
            "expenses": str(self.expenses),
            "cumulative_profit": str(self.cumulative_profit),
            "inventory": self.inventory,
            "mode": self.mode,
            "market_event": self.market_event,
        }


@dataclass(kw_only=True)
class MarketEventTriggered(BaseEvent):
    session_id: str
    day: int
    title: str
    description: str = ""
    sales_delta_pct: float = 0.0
    expense_delta_pct: float = 0.0

    def to_summary_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "session_id": self.session_id,
            "day": self.day,
            "title": self.title,
            "sales_delta_pct": self.sales_delta_pct,
            "expense_delta_pct": self.expense_delta_pct,
        }


@dataclass(kw_only=True)
class ProductPerformanceReported(BaseEvent):
    session_id: str
    day: int
    product_id: str
    orders: int
    revenue: Money
    profit: Money
    delivered: bool = True

    def to_summary_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "session_id": self.session_id,
            "day": self.day,
            "product_id": self.product_id,
            "orders": self.orders,
            "revenue": str(self.revenue),
            "profit": str(self.profit),
            "delivered": self.delivered,
        }


@dataclass(kw_only=True)
class SyncStatusChanged(BaseEvent):
    session_id: str
    status: str
    day: Optional[int] = None
    attempts: int = 0
    error: Optional[str] = None

    def to_summary_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "session_id": self.session_id,
            "status": self.status,
            "day": self.day,
            "attempts": self.attempts,
            "error": self.error,
        }


@dataclass(kw_only=True)
class LearnerActionApplied(BaseEvent):
    session_id: str
    action: str
    cost: Money
    details: Dict[str, Any] = field(default_factory=dict)

    def to_summary_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "session_id": self.session_id,
            "action": self.action,
            "cost": str(self.cost),
            "details": dict(self.details),
        }


__all__ = [
    "DayCompleted",
    "LearnerActionApplied",
    "MarketEventTriggered",
    "ProductPerformanceReported",
    "SyncStatusChanged",
]
