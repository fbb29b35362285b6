from decimal import Decimal

import pytest

from money import Money, max_money, sum_money


def test_amounts_are_quantized_to_cents():
    m = Money.from_dollars("12.345")
    # ROUND_HALF_EVEN: 12.345 -> 12.34
    assert m.amount == Decimal("12.34")
    assert Money.from_dollars(0.1).amount == Decimal("0.10")


def test_multiplying_by_a_number_keeps_cents_exact():
    price = Money.from_dollars("29.99")
    assert price * 3 == Money.from_dollars("89.97")
    assert 2 * price == Money.from_dollars("59.98")
    with pytest.raises(TypeError):
        price * price


def test_profit_identity_holds_exactly():
    revenue = sum_money(Money.from_dollars(v) for v in ("0.10", "0.20", "0.30"))
    expenses = Money.from_dollars("0.15")
    profit = revenue - expenses
    assert profit + expenses == revenue
    assert profit == Money.from_dollars("0.45")


def test_sum_of_nothing_is_zero():
    assert sum_money([]) == Money.zero()
    assert sum([Money.from_dollars(1), Money.from_dollars(2)]) == Money.from_dollars(3)


def test_mixed_currencies_are_rejected():
    with pytest.raises(ValueError):
        Money.from_dollars(1, "USD") + Money.from_dollars(1, "EUR")


def test_helpers():
    a, b = Money.from_dollars(5), Money.from_dollars(-2)
    assert max_money(a, b) == a
    assert b.is_negative() and not a.is_negative()
    assert a.to_float() == 5.0


def test_every_currency_books_in_cents():
    assert Money.from_dollars("1.005", "eur").amount == Decimal("1.00")
    assert Money.from_dollars(3, "eur").currency == "EUR"
