from dropsim_core.config import MarketingDrawdown
from dropsim_core.models.state import BusinessState, MarketEvent
from dropsim_core.services.financial_resolver import ProductFinancials
from dropsim_core.services.ledger import Ledger
from money import Money


def _financials(orders=2, revenue="60", cost="20", shipping="10", returns="2.40", marketing="5"):
    return ProductFinancials(
        product_id="A",
        orders=orders,
        revenue=Money.from_dollars(revenue),
        cost=Money.from_dollars(cost),
        shipping=Money.from_dollars(shipping),
        returns=Money.from_dollars(returns),
        marketing_spend=Money.from_dollars(marketing),
    )


def test_totals_without_event():
    totals = Ledger().totals([_financials()], None)
    assert totals.revenue == Money.from_dollars(60)
    assert totals.raw_expenses == Money.from_dollars("37.40")
    assert totals.expenses == Money.from_dollars("37.40")
    assert totals.orders == 2
    # Expense share drawdown: 10% of final expenses
    assert totals.marketing_drawdown == Money.from_dollars("3.74")
    assert totals.profit == Money.from_dollars("22.60")


def test_event_scales_expenses_only():
    event = MarketEvent(title="Supplier Price Increase", description="", expense_delta_pct=10)
    totals = Ledger().totals([_financials(returns="0", marketing="0")], event)
    assert totals.revenue == Money.from_dollars(60)
    assert totals.raw_expenses == Money.from_dollars(30)
    assert totals.expenses == Money.from_dollars(33)


def test_spend_drawdown_uses_marketing_spend():
    ledger = Ledger(drawdown=MarketingDrawdown.SPEND)
    totals = ledger.totals([_financials(), _financials(marketing="7")], None)
    assert totals.marketing_drawdown == Money.from_dollars(12)


def test_apply_books_the_day():
    state = BusinessState(
        revenue=Money.from_dollars(100),
        expenses=Money.from_dollars(40),
        orders=3,
        inventory=10,
        marketing=Money.from_dollars(50),
    )
    totals = Ledger().totals([_financials()], None)
    after = Ledger().apply(state, totals)
    assert after.revenue == Money.from_dollars(160)
    assert after.expenses == Money.from_dollars("77.40")
    assert after.profit == after.revenue - after.expenses
    assert after.orders == 5
    assert after.inventory == 8
    assert after.marketing == Money.from_dollars("46.26")
    # The old state is untouched
    assert state.revenue == Money.from_dollars(100)


def test_apply_floors_inventory_and_marketing_at_zero():
    state = BusinessState(inventory=1, marketing=Money.from_dollars(1))
    totals = Ledger().totals([_financials(orders=5)], None)
    after = Ledger().apply(state, totals)
    assert after.inventory == 0
    assert after.marketing == Money.zero()
