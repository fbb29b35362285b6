import pytest

from dropsim_core.config import ActionSettings
from dropsim_core.errors import InsufficientFunds
from dropsim_core.models.state import BusinessState
from dropsim_core.services.business_actions import increase_marketing, restock_inventory
from money import Money


def _state(revenue, expenses=0, inventory=3, marketing=0):
    return BusinessState(
        revenue=Money.from_dollars(revenue),
        expenses=Money.from_dollars(expenses),
        inventory=inventory,
        marketing=Money.from_dollars(marketing),
    )


def test_restock_adds_units_and_expenses():
    after = restock_inventory(_state(500, 100))
    assert after.inventory == 23
    assert after.expenses == Money.from_dollars(400)
    assert after.profit == Money.from_dollars(100)


def test_restock_requires_enough_profit():
    before = _state(350, 100)
    with pytest.raises(InsufficientFunds) as info:
        restock_inventory(before)
    assert info.value.action == "restock"
    assert info.value.required == Money.from_dollars(300)
    assert info.value.available == Money.from_dollars(250)
    assert before.inventory == 3


def test_increase_marketing_adds_budget_and_expense():
    after = increase_marketing(_state(150, marketing=20))
    assert after.marketing == Money.from_dollars(120)
    assert after.expenses == Money.from_dollars(100)
    assert after.profit == Money.from_dollars(50)


def test_actions_fail_at_zero_profit():
    with pytest.raises(InsufficientFunds):
        increase_marketing(_state(0))


def test_action_settings_are_honored():
    actions = ActionSettings(restock_quantity=5, restock_unit_cost=2.0, marketing_increment=10)
    assert restock_inventory(_state(10), actions).inventory == 8
    assert increase_marketing(_state(10), actions).marketing == Money.from_dollars(10)
