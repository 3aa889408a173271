"""
Catalog — Service Tests

CatalogService writes, protected balance fields, batch lookup, and the
inventory listing from InventoryRepository.

@file catalog/tests/test_services.py
"""

from datetime import date
from decimal import Decimal

import pytest

from catalog.models import Batch, Item
from catalog.services import CatalogService
from core.exceptions import BusinessRuleViolation
from core.models import AuditLog
from stock.repository import InventoryRepository
from tests.factories import BatchFactory, ItemFactory, UserFactory

pytestmark = pytest.mark.django_db


class TestCatalogService:
    def test_create_item_starts_at_zero_and_is_audited(self):
        user = UserFactory()
        item = CatalogService.create_item(
            actor=user, code='AMOX-250', name='Amoxicillin 250mg',
            category=Item.CategoryChoices.CAPSULE, unit_cost=Decimal('1.20'),
        )
        assert item.current_stock == 0
        log = AuditLog.objects.get(model_name='Item', object_id=str(item.pk))
        assert log.action == 'CREATE'
        assert log.actor == user

    def test_update_item_audits_changes(self):
        item = ItemFactory(name='Old name')
        CatalogService.update_item(item_id=item.pk, name='New name')
        log = AuditLog.objects.filter(model_name='Item', object_id=str(item.pk), action='UPDATE').get()
        assert log.old_values['name'] == 'Old name'
        assert log.new_values['name'] == 'New name'

    @pytest.mark.parametrize('field', ['current_stock', 'stock_version'])
    def test_balance_fields_cannot_be_edited(self, field):
        item = ItemFactory()
        with pytest.raises(BusinessRuleViolation):
            CatalogService.update_item(item_id=item.pk, **{field: 100})
        item.refresh_from_db()
        assert item.current_stock == 0

    def test_get_or_create_batch_reuses_lot(self):
        item = ItemFactory()
        first = CatalogService.get_or_create_batch(item=item, lot_number='L-1', expiry_date=date(2030, 1, 31))
        again = CatalogService.get_or_create_batch(item=item, lot_number='L-1', expiry_date=date(2030, 1, 31))
        assert first.pk == again.pk
        assert Batch.objects.filter(item=item).count() == 1

    def test_get_or_create_batch_rejects_expiry_mismatch(self):
        batch = BatchFactory(expiry_date=date(2030, 1, 31))
        with pytest.raises(BusinessRuleViolation):
            CatalogService.get_or_create_batch(
                item=batch.item, lot_number=batch.lot_number, expiry_date=date(2031, 1, 31),
            )


class TestListInventory:
    def test_search_matches_name_code_and_ingredient(self):
        ItemFactory(name='Doliprane', code='D-1', active_ingredient='Paracetamol')
        ItemFactory(name='Augmentin', code='A-1', active_ingredient='Amoxicillin')
        names = {i.name for i in InventoryRepository.list_inventory(search='parac')}
        assert names == {'Doliprane'}
        names = {i.name for i in InventoryRepository.list_inventory(search='a-1')}
        assert names == {'Augmentin'}

    @pytest.mark.parametrize('search', ['x', 'y' * 101])
    def test_search_length_bounds(self, search):
        with pytest.raises(BusinessRuleViolation):
            list(InventoryRepository.list_inventory(search=search))

    def test_category_filter(self):
        ItemFactory(category=Item.CategoryChoices.SYRUP)
        ItemFactory(category=Item.CategoryChoices.TABLET)
        result = InventoryRepository.list_inventory(category='SYRUP')
        assert [i.category for i in result] == ['SYRUP']
        assert InventoryRepository.list_inventory(category='all').count() == 2

    def test_unknown_category(self):
        with pytest.raises(BusinessRuleViolation):
            InventoryRepository.list_inventory(category='LIQUID_GOLD')

    def test_sort_and_direction(self, stock_item):
        a = ItemFactory(name='A')
        b = ItemFactory(name='B')
        stock_item(a, 5)
        stock_item(b, 50)
        result = list(InventoryRepository.list_inventory(sort='current_stock', direction='desc'))
        assert [i.name for i in result] == ['B', 'A']

    def test_invalid_sort(self):
        with pytest.raises(BusinessRuleViolation):
            InventoryRepository.list_inventory(sort='password')

    def test_soft_deleted_items_hidden(self):
        item = ItemFactory()
        item.soft_delete()
        assert InventoryRepository.list_inventory().count() == 0

    def test_status_annotation(self, stock_item):
        item = ItemFactory(minimum_threshold=10)
        stock_item(item, 8)
        row = InventoryRepository.list_inventory().get(pk=item.pk)
        assert row.stock_status_label == 'low'
        assert row.total_value_amount == Decimal('20.00')
