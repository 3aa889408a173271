"""
Stock — Alert Generator Tests

@file stock/tests/test_alerts.py
"""

from datetime import date, timedelta

import pytest

from stock.alerts import (
    ACTION_DESTROY,
    ACTION_DISCOUNT,
    ACTION_PRIORITIZE,
    ACTION_REORDER,
    ACTION_REORDER_NOW,
    AlertService,
    classify_expiry,
)
from tests.factories import BatchFactory, ItemFactory

TODAY = date(2026, 3, 1)


class TestClassifyExpiry:
    @pytest.mark.parametrize('days, expected', [
        (-1, ('expired', 'high', ACTION_DESTROY)),
        (0, ('expiring', 'high', ACTION_PRIORITIZE)),
        (30, ('expiring', 'high', ACTION_PRIORITIZE)),
        (31, ('expiring', 'medium', ACTION_DISCOUNT)),
        (90, ('expiring', 'medium', ACTION_DISCOUNT)),
        (91, None),
    ])
    def test_bands(self, days, expected):
        assert classify_expiry(days) == expected

    def test_bands_follow_settings(self, settings):
        settings.PHARMASTOCK = {'EXPIRY_HIGH_DAYS': 10, 'EXPIRY_MEDIUM_DAYS': 20}
        assert classify_expiry(15)[1] == 'medium'
        assert classify_expiry(21) is None


@pytest.mark.django_db
class TestAlertService:
    def _batch(self, stock_item, item, days, quantity=5):
        batch = BatchFactory(item=item, expiry_date=TODAY + timedelta(days=days))
        stock_item(item, quantity, batch=batch)
        return batch

    def test_expiry_alerts(self, stock_item):
        item = ItemFactory(minimum_threshold=0)
        self._batch(stock_item, item, -2)
        self._batch(stock_item, item, 10)
        self._batch(stock_item, item, 60)
        self._batch(stock_item, item, 200)
        alerts = AlertService.expiry_alerts(today=TODAY)
        assert sorted((a.kind, a.priority, a.days_remaining) for a in alerts) == [
            ('expired', 'high', -2),
            ('expiring', 'high', 10),
            ('expiring', 'medium', 60),
        ]

    def test_empty_batches_not_reported(self):
        BatchFactory(expiry_date=TODAY - timedelta(days=5))
        assert AlertService.expiry_alerts(today=TODAY) == []

    def test_stock_alerts(self, stock_item):
        ItemFactory(name='Empty', minimum_threshold=5)
        stock_item(ItemFactory(name='Low', minimum_threshold=5), 5)
        stock_item(ItemFactory(name='Fine', minimum_threshold=5), 6)
        alerts = {a.item_name: a for a in AlertService.stock_alerts()}
        assert set(alerts) == {'Empty', 'Low'}
        assert alerts['Empty'].action == ACTION_REORDER_NOW
        assert alerts['Empty'].priority == 'high'
        assert alerts['Low'].action == ACTION_REORDER
        assert alerts['Low'].priority == 'medium'

    def test_scan_orders_by_priority_then_days(self, stock_item):
        item = ItemFactory(minimum_threshold=0)
        self._batch(stock_item, item, 60)
        self._batch(stock_item, item, 20)
        self._batch(stock_item, item, -1)
        ItemFactory(name='Empty', minimum_threshold=5)
        alerts = AlertService.scan(today=TODAY)
        assert [(a.priority, a.days_remaining) for a in alerts] == [
            ('high', -1),
            ('high', 20),
            ('high', None),
            ('medium', 60),
        ]

    def test_scan_writes_nothing(self, stock_item):
        from stock.models import StockMovement

        item = ItemFactory()
        self._batch(stock_item, item, -1)
        before = StockMovement.objects.count()
        AlertService.scan(today=TODAY)
        assert StockMovement.objects.count() == before
