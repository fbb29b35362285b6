"""
Session state owned by one learner's simulation.

All values are immutable; the engine produces a new ``SimulationSession`` per
simulated day instead of mutating the old one. ``BusinessState.profit`` is a
derived property and is never stored, so ``profit == revenue - expenses`` holds
for every reachable state.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

from money import Money


@dataclass(frozen=True)
class MarketEvent:
    """A transient disruption or opportunity that lasts one simulated day."""

    title: str
    description: str
    sales_delta_pct: float = 0.0
    expense_delta_pct: float = 0.0

    @property
    def sales_multiplier(self) -> float:
        return 1 + self.sales_delta_pct / 100

    @property
    def expense_multiplier(self) -> float:
        return 1 + self.expense_delta_pct / 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "impact": {
                "salesDeltaPct": self.sales_delta_pct,
                "expenseDeltaPct": self.expense_delta_pct,
            },
        }


@dataclass(frozen=True)
class FunnelMetrics:
    """Storefront health figures. Percentages are stored as percents (2.7 == 2.7%)."""

    conversion_rate: float = 2.7
    abandonment_rate: float = 68.0
    average_order_value: float = 47.0
    return_rate: float = 8.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "conversionRate": self.conversion_rate,
            "abandonmentRate": self.abandonment_rate,
            "averageOrderValue": self.average_order_value,
            "returnRate": self.return_rate,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> FunnelMetrics:
        defaults = cls()
        data = data or {}
        return cls(
            conversion_rate=float(data.get("conversionRate", defaults.conversion_rate)),
            abandonment_rate=float(data.get("abandonmentRate", defaults.abandonment_rate)),
            average_order_value=float(
                data.get("averageOrderValue", defaults.average_order_value)
            ),
            return_rate=float(data.get("returnRate", defaults.return_rate)),
        )


@dataclass(frozen=True)
class BusinessState:
    revenue: Money = field(default_factory=Money.zero)
    expenses: Money = field(default_factory=Money.zero)
    orders: int = 0
    inventory: int = 15
    marketing: Money = field(default_factory=Money.zero)

    def __post_init__(self):
        if self.orders < 0:
            raise ValueError("orders cannot be negative")
        if self.inventory < 0:
            raise ValueError("inventory cannot be negative")
        if self.marketing.is_negative():
            raise ValueError("marketing budget cannot be negative")

    @property
    def profit(self) -> Money:
        return self.revenue - self.expenses


@dataclass(frozen=True)
class SimulationSession:
    """
    Everything the engine needs to step one learner's business forward.

    ``history`` holds the cumulative profit after each simulated day, in day order.
    """

    session_id: str
    state: BusinessState = field(default_factory=BusinessState)
    metrics: FunnelMetrics = field(default_factory=FunnelMetrics)
    day: int = 0
    current_event: Optional[MarketEvent] = None
    history: Tuple[Money, ...] = ()

    @classmethod
    def new(cls, session_id: str, starting_inventory: int = 15) -> SimulationSession:
        return cls(session_id=session_id, state=BusinessState(inventory=starting_inventory))

    def with_state(self, state: BusinessState) -> SimulationSession:
        return replace(self, state=state)

    def to_snapshot(self) -> Dict[str, Any]:
        """Serialize to the persisted snapshot layout."""
        state = self.state
        return {
            "revenue": state.revenue.to_float(),
            "expenses": state.expenses.to_float(),
            "profit": state.profit.to_float(),
            "orders": state.orders,
            "inventory": state.inventory,
            "marketing": state.marketing.to_float(),
            "day": self.day,
            "metrics": self.metrics.to_dict(),
            "simulationHistory": {"profit": [p.to_float() for p in self.history]},
        }

    @classmethod
    def from_snapshot(cls, session_id: str, snapshot: Dict[str, Any]) -> SimulationSession:
        """
        Rebuild a session from a persisted snapshot.

        The stored ``profit`` is ignored: it is always derived from revenue and expenses.
        """
        history = snapshot.get("simulationHistory") or {}
        state = BusinessState(
            revenue=Money.from_dollars(snapshot.get("revenue") or 0),
            expenses=Money.from_dollars(snapshot.get("expenses") or 0),
            orders=max(0, int(snapshot.get("orders") or 0)),
            inventory=max(0, int(snapshot.get("inventory") or 0)),
            marketing=Money.from_dollars(max(0.0, float(snapshot.get("marketing") or 0))),
        )
        return cls(
            session_id=session_id,
            state=state,
            metrics=FunnelMetrics.from_dict(snapshot.get("metrics")),
            day=max(0, int(snapshot.get("day") or 0)),
            history=tuple(Money.from_dollars(p) for p in history.get("profit") or ()),
        )
