"""
Stock — Alert Generator

Expiry and low-stock alerts, recomputed from Item and Batch state on every
call. Nothing is stored and nothing is written.

Expiry rules (days = expiry date − today, batches with stock only):
  expired      → high,   destroy
  ≤ 30 days    → high,   prioritize dispensing
  ≤ 90 days    → medium, discount/transfer
  beyond       → not reported

@file stock/alerts.py
"""

from dataclasses import asdict, dataclass
from datetime import timedelta

from django.db.models import F
from django.utils import timezone

from catalog.models import Batch, Item
from core.conf import pharmastock_setting

PRIORITY_HIGH = 'high'
PRIORITY_MEDIUM = 'medium'
PRIORITY_LOW = 'low'
PRIORITY_RANK = {PRIORITY_HIGH: 0, PRIORITY_MEDIUM: 1, PRIORITY_LOW: 2}

KIND_EXPIRED = 'expired'
KIND_EXPIRING = 'expiring'
KIND_OUT_OF_STOCK = 'out_of_stock'
KIND_LOW_STOCK = 'low_stock'

ACTION_DESTROY = 'destroy'
ACTION_PRIORITIZE = 'prioritize dispensing'
ACTION_DISCOUNT = 'discount/transfer'
ACTION_REORDER_NOW = 'reorder immediately'
ACTION_REORDER = 'reorder'


@dataclass(frozen=True)
class Alert:
    kind: str
    priority: str
    action: str
    message: str
    item_id: str
    item_name: str
    current_stock: int
    minimum_threshold: int
    batch_id: str | None = None
    lot_number: str | None = None
    expiry_date: str | None = None
    days_remaining: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    def sort_key(self):
        missing = self.days_remaining is None
        return (PRIORITY_RANK[self.priority], missing, self.days_remaining if not missing else 0)


def classify_expiry(days_remaining: int) -> tuple[str, str, str] | None:
    """(kind, priority, action) for a batch, or None when it is far from expiry."""
    if days_remaining < 0:
        return KIND_EXPIRED, PRIORITY_HIGH, ACTION_DESTROY
    if days_remaining <= pharmastock_setting('EXPIRY_HIGH_DAYS'):
        return KIND_EXPIRING, PRIORITY_HIGH, ACTION_PRIORITIZE
    if days_remaining <= pharmastock_setting('EXPIRY_MEDIUM_DAYS'):
        return KIND_EXPIRING, PRIORITY_MEDIUM, ACTION_DISCOUNT
    return None


class AlertService:
    """Read-only scan of the repository."""

    @staticmethod
    def expiry_alerts(today=None) -> list[Alert]:
        today = today or timezone.localdate()
        horizon = today + timedelta(days=pharmastock_setting('EXPIRY_MEDIUM_DAYS'))
        batches = (
            Batch.objects.filter(
                is_deleted=False,
                item__is_deleted=False,
                quantity_on_hand__gt=0,
                expiry_date__lte=horizon,
            )
            .select_related('item')
        )
        alerts = []
        for batch in batches:
            days = (batch.expiry_date - today).days
            classified = classify_expiry(days)
            if classified is None:
                continue
            kind, priority, action = classified
            if kind == KIND_EXPIRED:
                message = f'Lot {batch.lot_number} of {batch.item.name} expired {-days} day(s) ago.'
            else:
                message = f'Lot {batch.lot_number} of {batch.item.name} expires in {days} day(s).'
            alerts.append(Alert(
                kind=kind,
                priority=priority,
                action=action,
                message=message,
                item_id=str(batch.item_id),
                item_name=batch.item.name,
                current_stock=batch.item.current_stock,
                minimum_threshold=batch.item.minimum_threshold,
                batch_id=str(batch.pk),
                lot_number=batch.lot_number,
                expiry_date=batch.expiry_date.isoformat(),
                days_remaining=days,
            ))
        return alerts

    @staticmethod
    def stock_alerts() -> list[Alert]:
        items = Item.objects.filter(is_deleted=False, current_stock__lte=F('minimum_threshold'))
        alerts = []
        for item in items:
            if item.current_stock <= 0:
                kind, priority, action = KIND_OUT_OF_STOCK, PRIORITY_HIGH, ACTION_REORDER_NOW
                message = f'{item.name} is out of stock.'
            else:
                kind, priority, action = KIND_LOW_STOCK, PRIORITY_MEDIUM, ACTION_REORDER
                message = f'{item.name} is at {item.current_stock} (minimum {item.minimum_threshold}).'
            alerts.append(Alert(
                kind=kind,
                priority=priority,
                action=action,
                message=message,
                item_id=str(item.pk),
                item_name=item.name,
                current_stock=item.current_stock,
                minimum_threshold=item.minimum_threshold,
            ))
        return alerts

    @staticmethod
    def scan(today=None) -> list[Alert]:
        """All alerts, highest priority first, then soonest first."""
        alerts = AlertService.expiry_alerts(today) + AlertService.stock_alerts()
        return sorted(alerts, key=Alert.sort_key)
