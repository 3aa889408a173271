"""
Stock — Model Tests

INSERT ONLY: StockMovement cannot be updated or deleted through the ORM
instance API; the hash covers every business field.

@file stock/tests/test_models.py
"""

import pytest
from django.db.models import ProtectedError

from stock.models import GENESIS_HASH, StockMovement
from stock.repository import InventoryRepository
from stock.services import StockLedger
from tests.factories import ItemFactory, UserFactory

pytestmark = pytest.mark.django_db


def _receipt(item, quantity=10):
    return StockLedger.append(item_id=item.pk, movement_type='RECEIPT', quantity_delta=quantity)


class TestStockMovementImmutability:
    def test_update_raises(self):
        movement = _receipt(ItemFactory())
        movement.note = 'edited'
        with pytest.raises(NotImplementedError):
            movement.save()

    def test_delete_raises(self):
        movement = _receipt(ItemFactory())
        with pytest.raises(NotImplementedError):
            movement.delete()
        assert StockMovement.objects.filter(pk=movement.pk).exists()

    def test_actor_cannot_be_hard_deleted(self):
        actor = UserFactory()
        item = ItemFactory()
        movement = StockLedger.append(
            item_id=item.pk, movement_type='RECEIPT', quantity_delta=5, actor=actor,
        )
        with pytest.raises(ProtectedError):
            actor.delete()
        movement.refresh_from_db()
        assert movement.created_by_id == actor.pk
        assert InventoryRepository.verify_ledger(item.pk).is_valid

    def test_actor_soft_delete_keeps_ledger_valid(self):
        actor = UserFactory()
        item = ItemFactory()
        StockLedger.append(item_id=item.pk, movement_type='RECEIPT', quantity_delta=5, actor=actor)
        actor.soft_delete()
        assert InventoryRepository.verify_ledger(item.pk).is_valid


class TestHashChain:
    def test_first_movement_links_to_genesis(self):
        movement = _receipt(ItemFactory())
        assert movement.sequence == 1
        assert movement.previous_hash == GENESIS_HASH
        assert movement.entry_hash == movement.compute_hash()

    def test_movements_are_chained(self):
        item = ItemFactory()
        first = _receipt(item)
        second = _receipt(item, 5)
        assert second.sequence == 2
        assert second.previous_hash == first.entry_hash

    def test_hash_survives_database_round_trip(self):
        movement = _receipt(ItemFactory())
        stored = StockMovement.objects.get(pk=movement.pk)
        assert stored.compute_hash() == movement.entry_hash

    def test_hash_changes_with_content(self):
        movement = _receipt(ItemFactory())
        original = movement.compute_hash()
        movement.quantity_delta = 11
        assert movement.compute_hash() != original

    def test_chains_are_per_item(self):
        a, b = ItemFactory(), ItemFactory()
        _receipt(a)
        movement_b = _receipt(b)
        assert movement_b.sequence == 1
        assert movement_b.previous_hash == GENESIS_HASH
