"""
Analytics — Forecast Service Tests

History is written through the ledger with backdated movements.

@file analytics/tests/test_services.py
"""

from datetime import date, datetime, timezone as dt_timezone

import pytest

from analytics.services import ForecastService, monthly_dispensed
from analytics.tasks import refresh_forecasts_task
from catalog.models import Item
from catalog.services import CatalogService
from core.exceptions import BusinessRuleViolation, ResourceNotFoundError
from stock.models import StockMovement
from stock.services import StockLedger
from tests.factories import ItemFactory, SupplierFactory

pytestmark = pytest.mark.django_db

TODAY = date(2026, 7, 15)
HISTORY = [100, 110, 90, 105, 95, 100]


def _at(year, month, day=15):
    return datetime(year, month, day, 12, 0, tzinfo=dt_timezone.utc)


def _seed_history(item, monthly, closing_stock, year=2026, first_month=1):
    """Receive enough stock up front, then dispense ``monthly`` once per month."""
    StockLedger.append(
        item_id=item.pk, movement_type='RECEIPT',
        quantity_delta=sum(monthly) + closing_stock,
        occurred_at=_at(year, first_month, 1),
    )
    for offset, quantity in enumerate(monthly):
        if quantity:
            StockLedger.append(
                item_id=item.pk, movement_type='DISPENSE', quantity_delta=-quantity,
                occurred_at=_at(year, first_month + offset),
            )
    item.refresh_from_db()
    return item


@pytest.fixture
def steady_item():
    item = ItemFactory(
        name='Paracetamol 500',
        category=Item.CategoryChoices.TABLET,
        preferred_supplier=SupplierFactory(average_lead_time_days=7),
    )
    return _seed_history(item, HISTORY, closing_stock=60)


class TestMonthlyDispensed:
    def test_buckets_by_month(self, steady_item):
        months = [date(2026, m, 1) for m in range(1, 7)]
        totals = monthly_dispensed(Item.objects.filter(pk=steady_item.pk), months)
        assert [totals[m] for m in months] == HISTORY

    def test_receipts_are_not_consumption(self, steady_item):
        totals = monthly_dispensed(Item.objects.filter(pk=steady_item.pk), [date(2026, 1, 1)])
        assert totals[date(2026, 1, 1)] == 100


class TestItemForecast:
    def test_steady_history(self, steady_item):
        forecast = ForecastService.forecast(item_id=steady_item.pk, period_months=6, today=TODAY)
        assert forecast.current_stock == 60
        assert forecast.lead_time_days == 7
        assert forecast.average_daily_consumption == pytest.approx(3.33)
        assert forecast.days_until_stockout == pytest.approx(18.0)
        assert forecast.urgency == 'low'
        assert forecast.recommended_order == 64
        assert forecast.confidence == pytest.approx(93.5)
        assert forecast.label == 'Paracetamol 500'

    def test_forecast_is_read_only(self, steady_item):
        before = StockMovement.objects.count()
        ForecastService.forecast(item_id=steady_item.pk, today=TODAY)
        steady_item.refresh_from_db()
        assert StockMovement.objects.count() == before
        assert steady_item.current_stock == 60

    def test_new_movement_invalidates_cache(self, steady_item):
        first = ForecastService.forecast(item_id=steady_item.pk, period_months=6, today=TODAY)
        StockLedger.append(item_id=steady_item.pk, movement_type='DISPENSE', quantity_delta=-10)
        second = ForecastService.forecast(item_id=steady_item.pk, period_months=6, today=TODAY)
        assert first.current_stock == 60
        assert second.current_stock == 50

    def test_threshold_change_invalidates_cache(self, steady_item):
        first = ForecastService.forecast(item_id=steady_item.pk, period_months=6, today=TODAY)
        CatalogService.update_item(item_id=steady_item.pk, minimum_threshold=50)
        second = ForecastService.forecast(item_id=steady_item.pk, period_months=6, today=TODAY)
        assert first.minimum_threshold == 10
        assert second.minimum_threshold == 50

    def test_supplier_lead_time_change_invalidates_cache(self, steady_item):
        first = ForecastService.forecast(item_id=steady_item.pk, period_months=6, today=TODAY)
        CatalogService.update_supplier(
            supplier_id=steady_item.preferred_supplier_id, average_lead_time_days=14,
        )
        second = ForecastService.forecast(item_id=steady_item.pk, period_months=6, today=TODAY)
        assert first.lead_time_days == 7
        assert second.lead_time_days == 14
        assert second.recommended_order == 87

    def test_default_lead_time_without_supplier(self):
        item = ItemFactory(preferred_supplier=None)
        forecast = ForecastService.forecast(item_id=item.pk, today=TODAY)
        assert forecast.lead_time_days == 7
        assert forecast.data_points == 0
        assert forecast.recommended_order == 10

    def test_unknown_item(self):
        with pytest.raises(ResourceNotFoundError):
            ForecastService.forecast(item_id='00000000-0000-0000-0000-000000000000', today=TODAY)

    @pytest.mark.parametrize('period', [0, 25, '6', True])
    def test_invalid_period(self, period):
        with pytest.raises(BusinessRuleViolation):
            ForecastService.forecast(period_months=period, today=TODAY)


class TestCategoryForecast:
    def test_category_sums_items_and_takes_longest_lead_time(self, steady_item):
        other = ItemFactory(
            category=Item.CategoryChoices.TABLET,
            preferred_supplier=SupplierFactory(average_lead_time_days=12),
        )
        _seed_history(other, [10, 10, 10, 10, 10, 10], closing_stock=5)
        ItemFactory(category=Item.CategoryChoices.SYRUP)

        forecast = ForecastService.forecast(category='TABLET', period_months=6, today=TODAY)
        assert forecast.scope == 'category'
        assert forecast.current_stock == 65
        assert forecast.lead_time_days == 12
        assert [p.actual_consumption for p in forecast.series[:-1]] == [110, 120, 100, 115, 105, 110]

    def test_unknown_category(self):
        with pytest.raises(BusinessRuleViolation):
            ForecastService.forecast(category='POTION', today=TODAY)


class TestDashboard:
    def test_recommendations_most_urgent_first(self, steady_item):
        urgent = ItemFactory(preferred_supplier=SupplierFactory(average_lead_time_days=7))
        _seed_history(urgent, HISTORY, closing_stock=5)
        never_dispensed = ItemFactory()
        ItemFactory(current_stock=0, minimum_threshold=0)

        results = ForecastService.recommendations(period_months=6, today=TODAY)
        assert [r.scope_id for r in results] == [str(urgent.pk), str(steady_item.pk), str(never_dispensed.pk)]
        assert results[-1].recommended_order == 10
        assert results[0].urgency == 'high'

    def test_distribution(self, steady_item):
        syrup = ItemFactory(category=Item.CategoryChoices.SYRUP)
        _seed_history(syrup, [0, 0, 0, 0, 5, 0], closing_stock=0)
        distribution = ForecastService.distribution(today=TODAY)
        assert [row['category'] for row in distribution] == ['TABLET', 'SYRUP']
        assert distribution[0]['quantity'] == 195
        assert distribution[1]['quantity'] == 5
        assert sum(row['share'] for row in distribution) == pytest.approx(100, abs=0.2)

    def test_get_analytics_shape(self, steady_item):
        data = ForecastService.get_analytics(period_months=6, today=TODAY)
        assert set(data) == {'scope', 'period_months', 'series', 'forecast', 'distribution', 'recommendations'}
        assert data['scope'] == 'all'
        assert len(data['series']) == 7
        assert data['recommendations'][0]['scope_id'] == str(steady_item.pk)


class TestRefreshTask:
    def test_refresh(self, steady_item):
        ItemFactory(category=Item.CategoryChoices.SYRUP)
        result = refresh_forecasts_task(period_months=3)
        assert result == {'items': 2, 'categories': 2}
