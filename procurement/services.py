"""
Procurement — Service Layer

Purchase order lifecycle (create, submit, cancel) and receiving. Every
status change goes through _transition, which enforces ORDER_TRANSITIONS;
receiving never sets a status directly, it derives one from line state
after the ledger writes.

@file procurement/services.py
"""

import logging
import random
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from catalog.models import Batch, Item, Supplier
from catalog.services import CatalogService
from core.concurrency import retry_on_conflict
from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_STATUS_CHANGE
from core.exceptions import (
    BusinessRuleViolation,
    InvalidStateTransition,
    OverReceiptError,
    ResourceNotFoundError,
)
from core.services import AuditService
from stock.models import StockMovement
from stock.services import StockLedger

from .models import PurchaseOrder, PurchaseOrderLine

logger = logging.getLogger('pharmastock')

Status = PurchaseOrder.StatusChoices

# Valid status transitions: from_status -> set of allowed to_status
ORDER_TRANSITIONS = {
    Status.DRAFT: {Status.ORDERED, Status.CANCELLED},
    Status.ORDERED: {Status.PARTIALLY_RECEIVED, Status.RECEIVED, Status.CANCELLED},
    Status.PARTIALLY_RECEIVED: {Status.RECEIVED, Status.CANCELLED},
    Status.RECEIVED: set(),
    Status.CANCELLED: set(),
}

RECEIVABLE_STATUSES = {Status.ORDERED, Status.PARTIALLY_RECEIVED}
REFERENCE_ATTEMPTS = 20


def _encode_date(day) -> str:
    """yymj: two-digit year, month as 1-9/A-C, day as 1-9/A-V."""
    month = str(day.month) if day.month <= 9 else chr(64 + day.month - 9)
    dom = str(day.day) if day.day <= 9 else chr(64 + day.day - 9)
    return f'{day.year % 100:02d}{month}{dom}'


def generate_reference(prefix: str, exists, day=None) -> str:
    """
    PREFIX-yymjXXX with a random three-digit suffix. ``exists`` is called
    with each candidate and must return True when it is already taken.
    """
    day = day or timezone.localdate()
    stem = f'{prefix}-{_encode_date(day)}'
    for _ in range(REFERENCE_ATTEMPTS):
        candidate = f'{stem}{random.randint(0, 999):03d}'
        if not exists(candidate):
            return candidate
    raise BusinessRuleViolation(detail=f'Could not allocate a free {prefix} number for {day}.')


def generate_order_number(day=None) -> str:
    return generate_reference(
        'CMD', lambda n: PurchaseOrder.objects.filter(order_number=n).exists(), day,
    )


def generate_lot_number(item: Item, day=None) -> str:
    return generate_reference(
        'LOT', lambda n: Batch.objects.filter(item=item, lot_number=n).exists(), day,
    )


def derive_status(lines, current: str) -> str:
    """
    Order status implied by line state: RECEIVED when every line is complete,
    PARTIALLY_RECEIVED as soon as anything has been received, otherwise
    unchanged. Terminal statuses never change.
    """
    if current in (Status.RECEIVED, Status.CANCELLED):
        return current
    lines = list(lines)
    if lines and all(line.received_quantity >= line.ordered_quantity for line in lines):
        return Status.RECEIVED
    if any(line.received_quantity > 0 for line in lines):
        return Status.PARTIALLY_RECEIVED
    return current


def _transition(order: PurchaseOrder, new_status: str, actor=None, **extra) -> PurchaseOrder:
    allowed = ORDER_TRANSITIONS.get(order.status, set())
    if new_status not in allowed:
        raise InvalidStateTransition(
            detail=f'Cannot transition order {order.order_number} from {order.status} to {new_status}.',
        )
    old_status = order.status
    now = timezone.now()
    order.status = new_status
    update_fields = ['status', 'updated_by', 'updated_at']
    if new_status == Status.ORDERED:
        order.ordered_at = now
        order.expected_delivery_date = now.date() + timedelta(days=order.supplier.average_lead_time_days)
        update_fields += ['ordered_at', 'expected_delivery_date']
    elif new_status == Status.RECEIVED:
        order.received_at = now
        update_fields.append('received_at')
    elif new_status == Status.CANCELLED:
        order.cancelled_at = now
        update_fields.append('cancelled_at')
    order.updated_by = actor if getattr(actor, 'is_authenticated', False) else None
    order.save(update_fields=update_fields)

    AuditService.log(
        actor=actor,
        action=AUDIT_ACTION_STATUS_CHANGE,
        model_name='PurchaseOrder',
        object_id=str(order.pk),
        old_values={'status': old_status},
        new_values={'status': new_status, **extra},
    )
    logger.info('PurchaseOrder %s: %s -> %s', order.order_number, old_status, new_status)
    return order


def _lock_order(order_id) -> PurchaseOrder:
    try:
        return (
            PurchaseOrder.objects.select_for_update()
            .select_related('supplier')
            .get(pk=order_id, is_deleted=False)
        )
    except (PurchaseOrder.DoesNotExist, ValueError, DjangoValidationError):
        raise ResourceNotFoundError(detail='Purchase order not found.', resource_id=order_id)


def _to_decimal(value, name) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise BusinessRuleViolation(detail=f'{name} must be a number.')


class PurchaseOrderService:
    """Order creation and lifecycle."""

    @staticmethod
    @transaction.atomic
    def create_order(
        *,
        supplier_id,
        lines: list[dict],
        actor=None,
        as_draft: bool = False,
        notes: str = '',
    ) -> PurchaseOrder:
        """
        Create an order with its lines. Each line is
        ``{item_id, quantity, unit_price?}``; the price defaults to the item's
        unit cost. Status is ORDERED, or DRAFT with ``as_draft``.
        """
        if not lines:
            raise BusinessRuleViolation(detail='An order needs at least one line.')

        normalized = []
        seen = set()
        for row in lines:
            quantity = row.get('quantity')
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise BusinessRuleViolation(detail='Ordered quantity must be a positive integer.')
            price = row.get('unit_price')
            if price is not None:
                price = _to_decimal(price, 'unit_price')
                if price < 0:
                    raise BusinessRuleViolation(detail='Unit price cannot be negative.')
            item_key = str(row.get('item_id'))
            if item_key in seen:
                raise BusinessRuleViolation(detail=f'Item {item_key} appears on more than one line.')
            seen.add(item_key)
            normalized.append((row.get('item_id'), quantity, price))

        try:
            supplier = Supplier.objects.filter(pk=supplier_id, is_deleted=False).first()
        except (ValueError, DjangoValidationError):
            supplier = None
        if supplier is None:
            raise ResourceNotFoundError(detail='Supplier not found.', resource_id=supplier_id)
        if not supplier.is_active:
            raise BusinessRuleViolation(detail=f'Supplier {supplier.name} is inactive.')

        actor_or_none = actor if getattr(actor, 'is_authenticated', False) else None
        order = PurchaseOrder.objects.create(
            order_number=generate_order_number(),
            supplier=supplier,
            status=Status.DRAFT,
            notes=notes,
            created_by=actor_or_none,
        )
        total = Decimal('0')
        for item_id, quantity, price in normalized:
            try:
                item = Item.objects.filter(pk=item_id, is_deleted=False).first()
            except (ValueError, DjangoValidationError):
                item = None
            if item is None:
                raise ResourceNotFoundError(detail='Item not found.', resource_id=item_id)
            unit_price = price if price is not None else item.unit_cost
            PurchaseOrderLine.objects.create(
                order=order,
                item=item,
                ordered_quantity=quantity,
                unit_price=unit_price,
                created_by=actor_or_none,
            )
            total += unit_price * quantity
        order.total_amount = total
        order.save(update_fields=['total_amount'])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='PurchaseOrder',
            object_id=str(order.pk),
            new_values={
                'order_number': order.order_number,
                'supplier_id': str(supplier.pk),
                'lines': len(normalized),
                'total_amount': str(total),
            },
        )
        logger.info('PurchaseOrder %s created for %s (%s lines, total %s)',
                    order.order_number, supplier.name, len(normalized), total)

        if not as_draft:
            _transition(order, Status.ORDERED, actor)
        return order

    @staticmethod
    @transaction.atomic
    def submit_order(*, order_id, actor=None) -> PurchaseOrder:
        order = _lock_order(order_id)
        if not order.supplier.is_active:
            raise BusinessRuleViolation(detail=f'Supplier {order.supplier.name} is inactive.')
        return _transition(order, Status.ORDERED, actor)

    @staticmethod
    @transaction.atomic
    def cancel_order(*, order_id, actor=None, reason: str = '') -> PurchaseOrder:
        """
        Freeze a non-terminal order. Quantities already received and their
        receipt movements stay as they are.
        """
        order = _lock_order(order_id)
        received_units = sum(line.received_quantity for line in order.lines.all())
        return _transition(order, Status.CANCELLED, actor, reason=reason, received_units=received_units)

    @staticmethod
    def get_order(order_id) -> PurchaseOrder:
        try:
            return (
                PurchaseOrder.objects.filter(is_deleted=False)
                .select_related('supplier')
                .prefetch_related('lines__item')
                .get(pk=order_id)
            )
        except (PurchaseOrder.DoesNotExist, ValueError, DjangoValidationError):
            raise ResourceNotFoundError(detail='Purchase order not found.', resource_id=order_id)

    @staticmethod
    def pending_orders():
        return (
            PurchaseOrder.objects.filter(is_deleted=False, status__in=RECEIVABLE_STATUSES)
            .select_related('supplier')
            .prefetch_related('lines__item')
            .order_by('expected_delivery_date', 'created_at')
        )

    @staticmethod
    def recent_orders(limit: int = 10):
        return (
            PurchaseOrder.objects.filter(is_deleted=False)
            .select_related('supplier')
            .prefetch_related('lines__item')
            .order_by('-created_at')[:limit]
        )


class ReceivingService:
    """Applies deliveries to order lines and the stock ledger."""

    @staticmethod
    @retry_on_conflict
    @transaction.atomic
    def receive(*, order_id, receipts: list[dict], actor=None) -> PurchaseOrder:
        """
        Post a delivery. Each receipt is
        ``{line_id, quantity, lot_number?, expiry_date?}``.

        All receipts are validated before anything is written: one bad
        receipt rejects the whole call. Quantities for the same line are
        summed. The order status is derived once every receipt is posted.
        """
        order = _lock_order(order_id)
        if not receipts:
            return order
        if order.status not in RECEIVABLE_STATUSES:
            raise InvalidStateTransition(
                detail=f'Cannot receive against order {order.order_number} in status {order.status}.',
            )

        lines = {str(line.pk): line for line in order.lines.select_for_update().select_related('item')}
        requested = defaultdict(int)
        for receipt in receipts:
            quantity = receipt.get('quantity')
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise BusinessRuleViolation(detail='Received quantity must be a positive integer.')
            line_key = str(receipt.get('line_id'))
            if line_key not in lines:
                raise ResourceNotFoundError(
                    detail=f'Line not found on order {order.order_number}.',
                    resource_id=receipt.get('line_id'),
                )
            if receipt.get('lot_number') and not receipt.get('expiry_date'):
                line = lines[line_key]
                if not Batch.objects.filter(item=line.item, lot_number=receipt['lot_number']).exists():
                    raise BusinessRuleViolation(
                        detail=f'Lot {receipt["lot_number"]} is new; an expiry date is required.',
                    )
            requested[line_key] += quantity

        for line_key, quantity in requested.items():
            line = lines[line_key]
            if quantity > line.remaining_quantity:
                raise OverReceiptError(
                    detail=(
                        f'Line for {line.item.name}: receiving {quantity} but only '
                        f'{line.remaining_quantity} remain of {line.ordered_quantity}.'
                    ),
                )

        versions = {line.item_id: line.item.stock_version for line in lines.values()}
        for receipt in receipts:
            line = lines[str(receipt['line_id'])]
            batch = ReceivingService._resolve_batch(line.item, receipt, actor)
            StockLedger.append(
                item_id=line.item_id,
                movement_type=StockMovement.MovementType.RECEIPT,
                quantity_delta=receipt['quantity'],
                batch_id=batch.pk if batch else None,
                unit_cost=line.unit_price,
                actor=actor,
                related_order_id=order.pk,
                note=f'Receipt for {order.order_number}',
                expected_version=versions[line.item_id],
            )
            versions[line.item_id] += 1

        for line_key, quantity in requested.items():
            line = lines[line_key]
            line.received_quantity += quantity
            line.save(update_fields=['received_quantity', 'updated_at'])

        new_status = derive_status(lines.values(), order.status)
        if new_status != order.status:
            _transition(order, new_status, actor, received=dict(requested))
        logger.info(
            'Received %s unit(s) over %s line(s) on %s; status %s',
            sum(requested.values()), len(requested), order.order_number, order.status,
        )
        return order

    @staticmethod
    def _resolve_batch(item: Item, receipt: dict, actor=None) -> Batch | None:
        lot_number = receipt.get('lot_number')
        expiry_date = receipt.get('expiry_date')
        if expiry_date:
            return CatalogService.get_or_create_batch(
                item=item,
                lot_number=lot_number or generate_lot_number(item),
                expiry_date=expiry_date,
                actor=actor,
            )
        if lot_number:
            return Batch.objects.get(item=item, lot_number=lot_number)
        return None

    @staticmethod
    def receive_remaining(*, order_id, actor=None) -> PurchaseOrder:
        """Receive every outstanding quantity on the order."""
        order = PurchaseOrderService.get_order(order_id)
        receipts = [
            {'line_id': line.pk, 'quantity': line.remaining_quantity}
            for line in order.lines.all()
            if line.remaining_quantity > 0
        ]
        if not receipts and order.status not in RECEIVABLE_STATUSES:
            raise InvalidStateTransition(
                detail=f'Order {order.order_number} is {order.status}; nothing to receive.',
            )
        return ReceivingService.receive(order_id=order.pk, receipts=receipts, actor=actor)
