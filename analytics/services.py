"""
Analytics — Forecast Service

Feeds analytics.forecasting from the stock ledger and caches the result.
Read-only: nothing here writes to the ledger or the catalog.

Cache keys carry the ledger version of the scope (the item's
stock_version, or the sum over a category), so any new movement makes the
previous entry unreachable instead of serving a stale forecast.

@file analytics/services.py
"""

import logging
from dataclasses import asdict
from datetime import datetime

from django.core.cache import cache
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Count, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from catalog.models import Item
from core.conf import pharmastock_setting
from core.exceptions import BusinessRuleViolation, ResourceNotFoundError
from stock.models import StockMovement

from . import forecasting

logger = logging.getLogger('pharmastock')

SCOPE_ITEM = 'item'
SCOPE_CATEGORY = 'category'
SCOPE_ALL = 'all'
DISTRIBUTION_MONTHS = 3
DISTRIBUTION_TOP = 5


def _month_start(day) -> datetime:
    return timezone.make_aware(datetime(day.year, day.month, 1))


def _validate_period(period_months) -> int:
    if period_months is None:
        return pharmastock_setting('FORECAST_DEFAULT_PERIOD_MONTHS')
    maximum = pharmastock_setting('FORECAST_MAX_PERIOD_MONTHS')
    if isinstance(period_months, bool) or not isinstance(period_months, int) or not 1 <= period_months <= maximum:
        raise BusinessRuleViolation(detail=f'period_months must be between 1 and {maximum}.')
    return period_months


def monthly_dispensed(items_qs, months) -> dict:
    """{first-of-month date: units dispensed} for the given items and months."""
    if not months:
        return {}
    start = _month_start(months[0])
    end = _month_start(forecasting.next_month(months[-1]))
    rows = (
        StockMovement.objects.filter(
            item__in=items_qs,
            movement_type=StockMovement.MovementType.DISPENSE,
            created_at__gte=start,
            created_at__lt=end,
        )
        .annotate(month=TruncMonth('created_at'))
        .values('month')
        .annotate(total=Sum('quantity_delta'))
        .order_by('month')
    )
    totals = {}
    for row in rows:
        month = row['month']
        if isinstance(month, datetime):
            month = timezone.localtime(month).date() if timezone.is_aware(month) else month.date()
        totals[month.replace(day=1)] = -(row['total'] or 0)
    return totals


class ForecastService:
    """Consumption forecasts and reorder recommendations."""

    @staticmethod
    def _lead_time(items: list[Item]) -> int:
        """Longest preferred-supplier lead time in scope, or the configured default."""
        lead_times = [
            item.preferred_supplier.average_lead_time_days
            for item in items
            if item.preferred_supplier_id and item.preferred_supplier.average_lead_time_days
        ]
        return max(lead_times) if lead_times else pharmastock_setting('DEFAULT_LEAD_TIME_DAYS')

    @staticmethod
    def _resolve_scope(item_id=None, category=None):
        items_qs = Item.objects.filter(is_deleted=False).select_related('preferred_supplier')
        if item_id is not None:
            try:
                item = items_qs.filter(pk=item_id).first()
            except (ValueError, DjangoValidationError):
                item = None
            if item is None:
                raise ResourceNotFoundError(detail='Item not found.', resource_id=item_id)
            return SCOPE_ITEM, str(item.pk), item.name, items_qs.filter(pk=item.pk)
        if category:
            if category not in Item.CategoryChoices.values:
                raise BusinessRuleViolation(detail=f'Unknown category: {category}')
            label = Item.CategoryChoices(category).label
            return SCOPE_CATEGORY, category, str(label), items_qs.filter(category=category)
        return SCOPE_ALL, SCOPE_ALL, 'All items', items_qs

    @staticmethod
    def forecast(*, item_id=None, category=None, period_months=None, today=None) -> forecasting.Forecast:
        """
        Forecast one item, one category, or (with neither) the whole
        pharmacy, over ``period_months`` complete months.
        """
        period_months = _validate_period(period_months)
        today = today or timezone.localdate()
        scope, scope_id, label, items_qs = ForecastService._resolve_scope(item_id, category)

        state = items_qs.aggregate(
            version=Sum('stock_version'),
            count=Count('id'),
            stock=Sum('current_stock'),
            threshold=Sum('minimum_threshold'),
        )
        items = list(items_qs)
        lead_time_days = ForecastService._lead_time(items)
        cache_key = (
            f'forecast:{scope}:{scope_id}:{period_months}:{today:%Y-%m}:'
            f'{state["count"]}:{state["version"] or 0}:{state["threshold"] or 0}:{lead_time_days}'
        )
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

        months = forecasting.month_window(today, period_months)
        result = forecasting.build_forecast(
            scope=scope,
            scope_id=scope_id,
            label=label,
            months=months,
            monthly_totals=monthly_dispensed(items_qs, months),
            current_stock=state['stock'] or 0,
            minimum_threshold=state['threshold'] or 0,
            lead_time_days=lead_time_days,
            safety_factor=float(pharmastock_setting('SAFETY_STOCK_FACTOR')),
        )
        cache.set(cache_key, result, pharmastock_setting('FORECAST_CACHE_TIMEOUT'))
        logger.debug('Forecast computed for %s %s: %s', scope, scope_id, result.method)
        return result

    @staticmethod
    def recommendations(*, period_months=None, category=None, today=None) -> list[forecasting.Forecast]:
        """Items that need reordering, most urgent first."""
        items = Item.objects.filter(is_deleted=False)
        if category:
            items = items.filter(category=category)
        results = []
        for item_id in items.values_list('id', flat=True):
            result = ForecastService.forecast(item_id=item_id, period_months=period_months, today=today)
            if result.recommended_order > 0:
                results.append(result)
        results.sort(key=lambda f: (
            forecasting.URGENCY_RANK[f.urgency],
            f.days_until_stockout is None,
            f.days_until_stockout or 0,
        ))
        return results[:pharmastock_setting('REORDER_RECOMMENDATION_LIMIT')]

    @staticmethod
    def distribution(*, today=None) -> list[dict]:
        """Top categories by units dispensed over the last three months, current month included."""
        today = today or timezone.localdate()
        since = _month_start(forecasting.month_window(today, DISTRIBUTION_MONTHS - 1)[0])
        rows = (
            StockMovement.objects.filter(
                movement_type=StockMovement.MovementType.DISPENSE,
                created_at__gte=since,
                item__is_deleted=False,
            )
            .values('item__category')
            .annotate(total=Sum('quantity_delta'))
            .order_by('total')[:DISTRIBUTION_TOP]
        )
        entries = [(row['item__category'], -(row['total'] or 0)) for row in rows]
        grand_total = sum(quantity for _, quantity in entries)
        labels = dict(Item.CategoryChoices.choices)
        return [
            {
                'category': category,
                'label': str(labels.get(category, category)),
                'quantity': quantity,
                'share': round(100 * quantity / grand_total, 1) if grand_total else 0.0,
            }
            for category, quantity in entries
        ]

    @staticmethod
    def get_analytics(*, period_months=None, category=None, today=None) -> dict:
        """{series, distribution, recommendations} for the analytics dashboard."""
        period_months = _validate_period(period_months)
        overview = ForecastService.forecast(category=category, period_months=period_months, today=today)
        return {
            'scope': overview.scope,
            'period_months': period_months,
            'series': [asdict(point) for point in overview.series],
            'forecast': overview.to_dict(),
            'distribution': ForecastService.distribution(today=today),
            'recommendations': [
                f.to_dict() for f in ForecastService.recommendations(
                    period_months=period_months, category=category, today=today,
                )
            ],
        }
