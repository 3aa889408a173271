"""
Stock — Celery Tasks

Nightly ledger verification.

@file stock/tasks.py
"""

import logging

from celery import shared_task

logger = logging.getLogger('pharmastock')


@shared_task(name='stock.verify_ledger')
def verify_ledger_task():
    """
    Replay every item's movements and check balances and hash chains.
    Failures are logged as warnings by InventoryRepository.verify_ledger.
    """
    from catalog.models import Item

    from .repository import InventoryRepository

    failed = []
    item_ids = list(Item.objects.values_list('id', flat=True))
    for item_id in item_ids:
        report = InventoryRepository.verify_ledger(item_id)
        if not report.is_valid:
            failed.append(report.item_id)
    logger.info('verify_ledger_task completed: %d items checked, %d failed.', len(item_ids), len(failed))
    return {'checked': len(item_ids), 'failed': failed}
