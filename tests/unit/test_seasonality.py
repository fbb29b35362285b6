from datetime import date

import pytest

from dropsim_core.models.product import Product
from dropsim_core.services.seasonality import (
    TREND_MAX,
    TREND_MIN,
    CatalogSeasonalityProvider,
    calculate_seasonality,
    calculate_trend,
)


def test_seasonality_table_lookup():
    assert calculate_seasonality("electronics", 12) == 1.5
    assert calculate_seasonality("Fitness", 1) == 1.3
    assert calculate_seasonality("toys", 2) == 0.6
    # Unknown categories use the general row
    assert calculate_seasonality("gardening", 11) == 1.1


def test_seasonality_rejects_bad_month():
    with pytest.raises(ValueError):
        calculate_seasonality("general", 13)


def test_trend_needs_three_points():
    assert calculate_trend([1, 2], [10, 20]) == 1.0


def test_trend_from_recent_growth():
    # Orders change +2 over the last three points, averaged over 3 intervals
    orders = [1, 2, 3, 4]
    revenue = [10, 20, 30, 40]
    expected = 1.0 + (2 / 3) * 0.1 + (20 / 3) * 0.001
    assert calculate_trend(orders, revenue) == pytest.approx(expected)


def test_trend_is_clamped():
    assert calculate_trend([0, 0, 100], [0, 0, 10000]) == TREND_MAX
    assert calculate_trend([100, 0, 0], [10000, 0, 0]) == TREND_MIN


@pytest.mark.asyncio
async def test_provider_uses_category_month_and_history():
    catalog = [
        Product(id="E", category="Electronics", cost=1, selling_price=2),
        Product(id="G", cost=1, selling_price=2),
    ]
    provider = CatalogSeasonalityProvider(lambda: catalog, today=lambda: date(2024, 11, 5))
    for orders in (1, 2, 3):
        provider.record("E", orders, orders * 10.0)

    factors = {f.product_id: f for f in await provider.get_seasonality()}
    assert factors["E"].seasonality == 1.4
    assert factors["E"].trend > 1.0
    assert factors["G"].seasonality == 1.1
    assert factors["G"].trend == 1.0


@pytest.mark.asyncio
async def test_provider_keeps_a_bounded_window():
    provider = CatalogSeasonalityProvider(lambda: [Product(id="X", cost=1, selling_price=2)])
    for i in range(20):
        provider.record("X", i, float(i))
    assert len(provider._history["X"]) == 7
