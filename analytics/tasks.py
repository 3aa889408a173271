"""
Analytics — Celery Tasks

Periodic cache warm-up for forecasts. Read-only against the ledger.

@file analytics/tasks.py
"""

import logging

from celery import shared_task

logger = logging.getLogger('pharmastock')


@shared_task(name='analytics.refresh_forecasts')
def refresh_forecasts_task(period_months=None):
    """
    Recompute and cache the forecast of every active item plus the
    pharmacy-wide and per-category overviews. Registered with Celery Beat
    to run hourly.
    """
    from catalog.models import Item

    from .services import ForecastService

    item_ids = list(Item.objects.filter(is_deleted=False).values_list('id', flat=True))
    for item_id in item_ids:
        ForecastService.forecast(item_id=item_id, period_months=period_months)
    categories = set(Item.objects.filter(is_deleted=False).values_list('category', flat=True))
    for category in categories:
        ForecastService.forecast(category=category, period_months=period_months)
    ForecastService.forecast(period_months=period_months)
    logger.info(
        'refresh_forecasts_task completed: %d items, %d categories.',
        len(item_ids), len(categories),
    )
    return {'items': len(item_ids), 'categories': len(categories)}
