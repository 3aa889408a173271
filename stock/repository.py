"""
Stock — Inventory Repository

The single place where balances are read, and the compare-and-swap the
ledger uses to write them. Everything here except _compare_and_swap and
rebuild_balances is read-only.

Stock status is a pure function of the cached balance and the item's
threshold, never a stored field:

  critical — nothing left (balance ≤ 0)
  low      — at or below the minimum threshold
  normal   — above the threshold

@file stock/repository.py
"""

import logging
from dataclasses import dataclass, field

from django.db import transaction
from django.db.models import (
    Case,
    CharField,
    Count,
    DecimalField,
    ExpressionWrapper,
    F,
    Q,
    Sum,
    Value,
    When,
)

from catalog.models import Batch, Item
from core.exceptions import BusinessRuleViolation, ResourceNotFoundError

from .models import GENESIS_HASH, StockMovement

logger = logging.getLogger('pharmastock')

STOCK_STATUS_NORMAL = 'normal'
STOCK_STATUS_LOW = 'low'
STOCK_STATUS_CRITICAL = 'critical'

INVENTORY_SORT_FIELDS = {'name', 'current_stock', 'unit_cost', 'created_at'}
SEARCH_MIN_LENGTH = 2
SEARCH_MAX_LENGTH = 100


def stock_status(current_stock: int, minimum_threshold: int) -> str:
    if current_stock <= 0:
        return STOCK_STATUS_CRITICAL
    if current_stock <= minimum_threshold:
        return STOCK_STATUS_LOW
    return STOCK_STATUS_NORMAL


@dataclass
class LedgerReport:
    """Outcome of replaying one item's movements from empty state."""

    item_id: str
    cached_balance: int
    replayed_balance: int
    movement_count: int
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class InventoryRepository:
    """Balances, listings and ledger verification."""

    @staticmethod
    def inventory_queryset():
        """Active items annotated with stock_status_label and total_value_amount."""
        return (
            Item.objects.filter(is_deleted=False)
            .select_related('preferred_supplier')
            .annotate(
                stock_status_label=Case(
                    When(current_stock__lte=0, then=Value(STOCK_STATUS_CRITICAL)),
                    When(current_stock__lte=F('minimum_threshold'), then=Value(STOCK_STATUS_LOW)),
                    default=Value(STOCK_STATUS_NORMAL),
                    output_field=CharField(),
                ),
                total_value_amount=ExpressionWrapper(
                    F('current_stock') * F('unit_cost'),
                    output_field=DecimalField(max_digits=18, decimal_places=2),
                ),
            )
        )

    @staticmethod
    def list_inventory(*, search=None, category=None, sort='name', direction='asc'):
        """
        Filtered, sorted inventory. Pagination is left to the caller.

        search matches name, code or active ingredient (2–100 characters);
        category 'all' or empty means every category.
        """
        qs = InventoryRepository.inventory_queryset()
        if search:
            search = search.strip()
            if not SEARCH_MIN_LENGTH <= len(search) <= SEARCH_MAX_LENGTH:
                raise BusinessRuleViolation(
                    detail=f'Search must be between {SEARCH_MIN_LENGTH} and {SEARCH_MAX_LENGTH} characters.',
                )
            qs = qs.filter(
                Q(name__icontains=search)
                | Q(code__icontains=search)
                | Q(active_ingredient__icontains=search)
            )
        if category and category != 'all':
            if category not in Item.CategoryChoices.values:
                raise BusinessRuleViolation(detail=f'Unknown category: {category}')
            qs = qs.filter(category=category)

        sort = sort or 'name'
        if sort not in INVENTORY_SORT_FIELDS:
            raise BusinessRuleViolation(
                detail=f'Invalid sort field: {sort}. Expected one of {sorted(INVENTORY_SORT_FIELDS)}.',
            )
        if direction not in ('asc', 'desc'):
            raise BusinessRuleViolation(detail='Direction must be asc or desc.')
        prefix = '-' if direction == 'desc' else ''
        return qs.order_by(f'{prefix}{sort}', 'id')

    @staticmethod
    def get_item(item_id) -> Item:
        try:
            return Item.objects.get(pk=item_id, is_deleted=False)
        except (Item.DoesNotExist, ValueError):
            raise ResourceNotFoundError(detail='Item not found.', resource_id=item_id)

    @staticmethod
    def get_balance(item_id) -> int:
        return InventoryRepository.get_item(item_id).current_stock

    @staticmethod
    def get_batch(batch_id) -> Batch:
        try:
            return Batch.objects.select_related('item').get(pk=batch_id, is_deleted=False)
        except (Batch.DoesNotExist, ValueError):
            raise ResourceNotFoundError(detail='Batch not found.', resource_id=batch_id)

    @staticmethod
    def replay_balance(item_id) -> int:
        """Balance recomputed from the ledger alone."""
        total = StockMovement.objects.filter(item_id=item_id).aggregate(
            total=Sum('quantity_delta'),
        )['total']
        return total or 0

    @staticmethod
    def last_movement(item_id) -> StockMovement | None:
        return StockMovement.objects.filter(item_id=item_id).order_by('-sequence').first()

    @staticmethod
    def recent_movements(item_id, limit: int = 20):
        return (
            StockMovement.objects.filter(item_id=item_id)
            .select_related('batch', 'created_by', 'related_order')
            .order_by('-sequence')[:limit]
        )

    @staticmethod
    def _compare_and_swap(item_id, expected_version: int, new_balance: int) -> bool:
        """
        Move the item from expected_version to expected_version + 1. Returns
        False when another writer got there first. Only StockLedger calls this.
        """
        updated = Item.objects.filter(pk=item_id, stock_version=expected_version).update(
            current_stock=new_balance,
            stock_version=expected_version + 1,
        )
        return updated == 1

    @staticmethod
    def verify_ledger(item_id) -> LedgerReport:
        """
        Replay an item's movements in sequence order, checking the sequence,
        the running balance, the hash chain and the cached balances.
        """
        item = Item.objects.get(pk=item_id)
        report = LedgerReport(
            item_id=str(item.pk),
            cached_balance=item.current_stock,
            replayed_balance=0,
            movement_count=0,
        )
        running = 0
        batch_totals: dict = {}
        previous_hash = GENESIS_HASH
        expected_sequence = 1
        for movement in StockMovement.objects.filter(item=item).order_by('sequence').iterator():
            report.movement_count += 1
            running += movement.quantity_delta
            if movement.batch_id:
                batch_totals[movement.batch_id] = batch_totals.get(movement.batch_id, 0) + movement.quantity_delta
            if movement.sequence != expected_sequence:
                report.errors.append(
                    f'Sequence gap: expected {expected_sequence}, found {movement.sequence}.',
                )
            if movement.balance_after != running:
                report.errors.append(
                    f'Movement #{movement.sequence}: balance_after {movement.balance_after} != replayed {running}.',
                )
            if movement.previous_hash != previous_hash:
                report.errors.append(f'Movement #{movement.sequence}: broken hash link.')
            if movement.compute_hash() != movement.entry_hash:
                report.errors.append(f'Movement #{movement.sequence}: content does not match its hash.')
            previous_hash = movement.entry_hash
            expected_sequence = movement.sequence + 1

        report.replayed_balance = running
        if item.current_stock != running:
            report.errors.append(f'Cached balance {item.current_stock} != replayed {running}.')
        if item.stock_version != report.movement_count:
            report.errors.append(
                f'Stock version {item.stock_version} != movement count {report.movement_count}.',
            )
        for batch in item.batches.all():
            expected = batch_totals.get(batch.pk, 0)
            if batch.quantity_on_hand != expected:
                report.errors.append(
                    f'Batch {batch.lot_number}: cached {batch.quantity_on_hand} != replayed {expected}.',
                )

        if report.errors:
            logger.warning('Ledger verification failed for item %s: %s', item.pk, report.errors)
        return report

    @staticmethod
    @transaction.atomic
    def rebuild_balances(item_id) -> Item:
        """
        Recompute the cached item and batch balances from the ledger. The
        item row is locked so no append interleaves with the rebuild.
        """
        item = Item.objects.select_for_update().get(pk=item_id)
        last = StockMovement.objects.filter(item=item).order_by('-sequence').first()
        item.current_stock = InventoryRepository.replay_balance(item.pk)
        item.stock_version = last.sequence if last else 0
        Item.objects.filter(pk=item.pk).update(
            current_stock=item.current_stock,
            stock_version=item.stock_version,
        )
        batch_totals = dict(
            StockMovement.objects.filter(item=item, batch__isnull=False)
            .order_by()
            .values_list('batch_id')
            .annotate(total=Sum('quantity_delta'))
        )
        for batch in item.batches.all():
            Batch.objects.filter(pk=batch.pk).update(quantity_on_hand=batch_totals.get(batch.pk, 0) or 0)
        return item

    @staticmethod
    def summary() -> dict:
        """Headline figures for the stock dashboard."""
        qs = Item.objects.filter(is_deleted=False)
        totals = qs.aggregate(
            total_value=Sum(
                F('current_stock') * F('unit_cost'),
                output_field=DecimalField(max_digits=18, decimal_places=2),
            ),
            critical=Count('id', filter=Q(current_stock__lte=0)),
            low=Count('id', filter=Q(current_stock__gt=0, current_stock__lte=F('minimum_threshold'))),
        )
        return {
            'total_items': qs.count(),
            'total_value': totals['total_value'] or 0,
            'critical_count': totals['critical'] or 0,
            'low_count': totals['low'] or 0,
        }
