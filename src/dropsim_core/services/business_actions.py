"""
Learner actions that change the business outside the day step.

Both actions are paid out of current profit: when the cost exceeds
``revenue - expenses`` the action is refused and the state is returned
untouched by raising ``InsufficientFunds``.
"""

from __future__ import annotations

import logging

from dropsim_core.config import ActionSettings
from dropsim_core.errors import InsufficientFunds
from dropsim_core.models.state import BusinessState
from money import Money

logger = logging.getLogger(__name__)


def _ensure_affordable(action: str, state: BusinessState, cost: Money) -> None:
    if cost > state.profit:
        logger.info("Rejected %s: cost %s exceeds profit %s", action, cost, state.profit)
        raise InsufficientFunds(action, cost, state.profit)


def restock_inventory(state: BusinessState, actions: ActionSettings = ActionSettings()) -> BusinessState:
    """Buy ``restock_quantity`` units at ``restock_unit_cost`` each."""
    cost = Money.from_dollars(actions.restock_unit_cost) * actions.restock_quantity
    _ensure_affordable("restock", state, cost)
    return BusinessState(
        revenue=state.revenue,
        expenses=state.expenses + cost,
        orders=state.orders,
        inventory=state.inventory + actions.restock_quantity,
        marketing=state.marketing,
    )


def increase_marketing(state: BusinessState, actions: ActionSettings = ActionSettings()) -> BusinessState:
    """Top up the marketing budget; the top-up is expensed immediately."""
    cost = Money.from_dollars(actions.marketing_increment)
    _ensure_affordable("increase_marketing", state, cost)
    return BusinessState(
        revenue=state.revenue,
        expenses=state.expenses + cost,
        orders=state.orders,
        inventory=state.inventory,
        marketing=state.marketing + cost,
    )


__all__ = ["increase_marketing", "restock_inventory"]
