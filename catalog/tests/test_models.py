"""
Catalog — Model Tests

Stock status, value and expiry helpers; database constraints.

@file catalog/tests/test_models.py
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import IntegrityError
from django.utils import timezone

from catalog.models import Item
from tests.factories import BatchFactory, ItemFactory

pytestmark = pytest.mark.django_db


class TestItem:
    def test_new_item_starts_empty(self):
        item = ItemFactory()
        assert item.current_stock == 0
        assert item.stock_version == 0
        assert item.stock_status == 'critical'

    def test_stock_status_thresholds(self, stock_item):
        item = ItemFactory(minimum_threshold=10)
        stock_item(item, 10)
        assert item.stock_status == 'low'
        stock_item(item, 1)
        assert item.stock_status == 'normal'

    def test_total_value(self, stock_item):
        item = ItemFactory(unit_cost=Decimal('2.50'))
        stock_item(item, 4)
        assert item.total_value == Decimal('10.00')

    def test_negative_stock_rejected_by_database(self):
        item = ItemFactory()
        with pytest.raises(IntegrityError):
            Item.objects.filter(pk=item.pk).update(current_stock=-1)

    def test_code_is_unique(self):
        ItemFactory(code='PARA-500')
        with pytest.raises(IntegrityError):
            ItemFactory(code='PARA-500')


class TestBatch:
    def test_days_to_expiry(self):
        batch = BatchFactory(expiry_date=timezone.localdate() + timedelta(days=12))
        assert batch.days_to_expiry == 12
        assert batch.is_expired is False

    def test_expired(self):
        batch = BatchFactory(expiry_date=timezone.localdate() - timedelta(days=1))
        assert batch.is_expired is True

    def test_lot_unique_per_item(self):
        batch = BatchFactory(lot_number='L1')
        BatchFactory(lot_number='L1')  # other item, allowed
        with pytest.raises(IntegrityError):
            BatchFactory(item=batch.item, lot_number='L1')
