"""
Stock — Management Command: rebuild_stock_cache

Recomputes Item.current_stock, Item.stock_version and
Batch.quantity_on_hand by replaying the ledger from empty state.

Usage::

    python manage.py rebuild_stock_cache

Idempotent: a consistent database is left unchanged.

@file stock/management/commands/rebuild_stock_cache.py
"""

from django.core.management.base import BaseCommand

from catalog.models import Item
from stock.repository import InventoryRepository


class Command(BaseCommand):
    help = 'Rebuild cached item and batch balances from the stock ledger.'

    def handle(self, *args, **options):
        changed = 0
        items = list(Item.objects.values_list('id', 'current_stock', 'stock_version'))
        for item_id, old_stock, old_version in items:
            item = InventoryRepository.rebuild_balances(item_id)
            if (item.current_stock, item.stock_version) != (old_stock, old_version):
                changed += 1
                self.stdout.write(
                    f'  Fixed {item_id}: stock {old_stock} -> {item.current_stock}, '
                    f'version {old_version} -> {item.stock_version}'
                )
        self.stdout.write(self.style.SUCCESS(
            f'Done. {len(items)} items rebuilt, {changed} corrected.'
        ))
