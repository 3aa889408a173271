"""
Stock — Management Command: verify_ledger

Replays the movements of every item (or the ones given) and reports
sequence gaps, balance drift and broken hash links.

Usage::

    python manage.py verify_ledger
    python manage.py verify_ledger --item <uuid> --item <uuid>

Exits with an error when any item fails.

@file stock/management/commands/verify_ledger.py
"""

from django.core.management.base import BaseCommand, CommandError

from catalog.models import Item
from stock.repository import InventoryRepository


class Command(BaseCommand):
    help = 'Verify ledger balances and hash chains.'

    def add_arguments(self, parser):
        parser.add_argument('--item', action='append', dest='items', help='Item UUID (repeatable)')

    def handle(self, *args, **options):
        item_ids = options.get('items') or list(Item.objects.values_list('id', flat=True))
        failed = 0
        for item_id in item_ids:
            try:
                report = InventoryRepository.verify_ledger(item_id)
            except Item.DoesNotExist:
                raise CommandError(f'Unknown item: {item_id}')
            if report.is_valid:
                self.stdout.write(f'  OK {report.item_id}: {report.movement_count} movements, balance {report.replayed_balance}')
                continue
            failed += 1
            self.stdout.write(self.style.ERROR(f'  FAIL {report.item_id}'))
            for error in report.errors:
                self.stdout.write(f'    - {error}')
        if failed:
            raise CommandError(f'{failed} of {len(item_ids)} items failed verification.')
        self.stdout.write(self.style.SUCCESS(f'Done. {len(item_ids)} items verified.'))
